# FILE: backend/lumendocs/services/corpus_service.py
# Client for the managed retrieval corpus (Vertex AI RAG Engine, REST v1).
# 1. Corpus display names are sanitized: anything outside [a-zA-Z0-9_-] becomes '_'.
# 2. Import is asynchronous on the service side: we only get an operation name back.
# 3. Persistent httpx client with a per-request timeout.

import re
import threading
from typing import Any, Dict, Iterator, List, Optional

import httpx
import structlog

from ..core.config import Settings
from ..core.exceptions import CorpusError, CorpusNotFoundError, ResolutionTimeout
from ..models.document import CorpusFile, CorpusRef
from .polling import BackoffPolicy, poll_until

logger = structlog.get_logger(__name__)

_UNSAFE_CORPUS_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


def sanitize_corpus_name(corpus_name: str) -> str:
    return _UNSAFE_CORPUS_CHARS.sub("_", corpus_name)


def extract_file_id(resource_name: str) -> str:
    # projects/.../ragCorpora/.../ragFiles/{ragFileId}
    return resource_name.rstrip("/").split("/")[-1]


class VertexRagCorpus:
    def __init__(
        self,
        http_client: httpx.Client,
        project_id: str,
        location: str,
        create_timeout: float = 60.0,
    ):
        self.http = http_client
        self.project_id = project_id
        self.location = location
        self.create_timeout = create_timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "VertexRagCorpus":
        headers = {"Content-Type": "application/json"}
        if settings.CORPUS_ACCESS_TOKEN:
            headers["Authorization"] = f"Bearer {settings.CORPUS_ACCESS_TOKEN}"
        client = httpx.Client(
            base_url=settings.corpus_base_url,
            headers=headers,
            timeout=settings.CORPUS_TIMEOUT_SECONDS,
            limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
        )
        return cls(client, settings.CORPUS_PROJECT_ID, settings.CORPUS_LOCATION, settings.CORPUS_CREATE_TIMEOUT_SECONDS)

    @property
    def parent(self) -> str:
        return f"projects/{self.project_id}/locations/{self.location}"

    def close(self) -> None:
        self.http.close()

    # --- transport ---

    def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = self.http.request(method, f"/{path.lstrip('/')}", **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise CorpusError(
                f"corpus service returned {e.response.status_code} for {method} {path}: {e.response.text[:300]}", e
            ) from e
        except httpx.HTTPError as e:
            raise CorpusError(f"corpus service request {method} {path} failed: {e}", e) from e
        if not response.content:
            return {}
        return response.json()

    def _paginate(self, path: str, items_key: str) -> Iterator[Dict[str, Any]]:
        params: Dict[str, str] = {}
        while True:
            data = self._request("GET", path, params=params)
            yield from data.get(items_key, [])
            token = data.get("nextPageToken")
            if not token:
                return
            params = {"pageToken": token}

    # --- corpora ---

    def list_corpora(self) -> List[CorpusRef]:
        return [CorpusRef.model_validate(c) for c in self._paginate(f"{self.parent}/ragCorpora", "ragCorpora")]

    def find_corpus(self, corpus_name: str) -> Optional[CorpusRef]:
        display_name = sanitize_corpus_name(corpus_name)
        for corpus in self.list_corpora():
            if corpus.display_name == display_name:
                return corpus
        return None

    def get_corpus(self, corpus_name: str) -> CorpusRef:
        corpus = self.find_corpus(corpus_name)
        if corpus is None:
            raise CorpusNotFoundError(corpus_name)
        return corpus

    def _done_or_none(self, operation_name: str) -> Optional[Dict[str, Any]]:
        operation = self.get_operation(operation_name)
        return operation if operation.get("done") else None

    def ensure_corpus(self, corpus_name: str, cancel_event: Optional[threading.Event] = None) -> CorpusRef:
        existing = self.find_corpus(corpus_name)
        if existing:
            return existing

        display_name = sanitize_corpus_name(corpus_name)
        logger.info("corpus.create", corpus=corpus_name, display_name=display_name)
        operation = self._request("POST", f"{self.parent}/ragCorpora", json={"displayName": display_name})

        if not operation.get("done"):
            policy = BackoffPolicy(initial_delay=0.5, max_delay=5.0, deadline=self.create_timeout)
            try:
                operation = poll_until(
                    lambda: self._done_or_none(operation["name"]), policy, cancel_event, label="corpus.create"
                )
            except ResolutionTimeout:
                logger.warning("corpus.create_still_running", corpus=corpus_name)

        if operation.get("error"):
            raise CorpusError(f"corpus creation failed: {operation['error']}")
        if (response := operation.get("response")) and response.get("name"):
            return CorpusRef.model_validate(response)

        # Creation still settling on the service side: the listing is authoritative.
        created = self.find_corpus(corpus_name)
        if created is None:
            raise CorpusError(f"corpus '{corpus_name}' was not visible after creation")
        return created

    # --- files ---

    def import_file(self, corpus: CorpusRef, blob_uri: str) -> str:
        body = {"importRagFilesConfig": {"gcsSource": {"uris": [blob_uri]}}}
        operation = self._request("POST", f"{corpus.name}/ragFiles:import", json=body)
        name = operation.get("name")
        if not name:
            raise CorpusError("corpus import returned no operation name")
        logger.info("corpus.import_started", corpus=corpus.name, blob_uri=blob_uri, operation=name)
        return name

    def get_operation(self, operation_name: str) -> Dict[str, Any]:
        return self._request("GET", operation_name)

    def list_files(self, corpus: CorpusRef) -> List[CorpusFile]:
        files = []
        for raw in self._paginate(f"{corpus.name}/ragFiles", "ragFiles"):
            files.append(CorpusFile(
                id=extract_file_id(raw.get("name", "")),
                name=raw.get("name", ""),
                displayName=raw.get("displayName", ""),
                createTime=raw.get("createTime"),
            ))
        return files

    def delete_file(self, corpus: CorpusRef, file_id: str) -> None:
        self._request("DELETE", f"{corpus.name}/ragFiles/{file_id}")
        logger.info("corpus.file_deleted", corpus=corpus.name, file_id=file_id)
