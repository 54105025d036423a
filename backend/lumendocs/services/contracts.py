# FILE: backend/lumendocs/services/contracts.py
# Collaborator contracts consumed by the lifecycle engine.
# Concrete clients: storage_service.S3ObjectStore, corpus_service.VertexRagCorpus,
# document_repository.DocumentRepository, task_queue.CeleryTaskQueue.

import threading
from typing import Any, Dict, List, Mapping, Optional, Protocol

from ..models.document import CorpusFile, CorpusRef, DocumentInDB
from ..models.tasks import AddDocumentToCorpusTask, ReconcileCorpusTask


class ObjectStore(Protocol):
    bucket: str

    def upload(self, key: str, data: bytes, content_type: str, original_filename: str = "") -> int: ...

    def exists(self, key: str) -> bool: ...

    def rename(self, old_key: str, new_key: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def signed_url(self, key: str, ttl_seconds: int) -> str: ...

    def blob_uri(self, key: str) -> str: ...


class Corpus(Protocol):
    def ensure_corpus(self, corpus_name: str, cancel_event: Optional[threading.Event] = None) -> CorpusRef: ...

    def find_corpus(self, corpus_name: str) -> Optional[CorpusRef]: ...

    def list_corpora(self) -> List[CorpusRef]: ...

    def import_file(self, corpus: CorpusRef, blob_uri: str) -> str: ...

    def get_operation(self, operation_name: str) -> Dict[str, Any]: ...

    def list_files(self, corpus: CorpusRef) -> List[CorpusFile]: ...

    def delete_file(self, corpus: CorpusRef, file_id: str) -> None: ...


class MetadataStore(Protocol):
    def create(self, record: DocumentInDB) -> None: ...

    def get_by_file_id(self, file_id: str) -> DocumentInDB: ...

    def find_by_file_id(self, file_id: str) -> Optional[DocumentInDB]: ...

    def get_by_corpus(self, corpus_name: str) -> List[DocumentInDB]: ...

    def patch_fields(
        self, file_id: str, fields: Mapping[str, Any], expect: Optional[Mapping[str, Any]] = None
    ) -> bool: ...

    def delete(self, file_id: str) -> bool: ...


class TaskQueue(Protocol):
    def enqueue_import(self, task: AddDocumentToCorpusTask) -> str: ...

    def enqueue_reconcile(self, task: ReconcileCorpusTask) -> str: ...
