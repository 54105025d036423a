"""Shared pytest fixtures: in-memory stand-ins for the three stores and the queue.

Provides:
- ``storage``: FakeObjectStore (bucket dict, optional failure switches)
- ``corpus``: FakeCorpus (corpora, listings and import operations)
- ``documents``: FakeMetadataStore (honours ``expect`` preconditions)
- ``task_queue``: FakeTaskQueue (records enqueued payloads)
- ``fake_redis``: FakeRedis (the commands the task metrics use)
- ``context``: AppContext wired from the fakes with a fast backoff policy
"""

from __future__ import annotations

import itertools
import threading
from datetime import timedelta
from typing import Any, Dict, List, Mapping, Optional

import pytest
import redis

from lumendocs.core.config import Settings
from lumendocs.core.context import AppContext
from lumendocs.core.exceptions import (
    CorpusError,
    DocumentNotFoundError,
    ImmutableFieldError,
    MetadataStoreError,
    StorageError,
)
from lumendocs.models.document import CorpusFile, CorpusRef, DocumentInDB, DocumentStatus, utcnow
from lumendocs.models.tasks import AddDocumentToCorpusTask, ReconcileCorpusTask
from lumendocs.services.document_repository import IMMUTABLE_FIELDS
from lumendocs.services.matching import key_basename
from lumendocs.services.polling import BackoffPolicy


class FakeObjectStore:
    def __init__(self, bucket: str = "test-bucket"):
        self.bucket = bucket
        self.blobs: Dict[str, bytes] = {}
        self.fail_upload = False
        self.fail_rename = False
        self.fail_delete = False
        self.hide_uploads = False

    def upload(self, key: str, data: bytes, content_type: str, original_filename: str = "") -> int:
        if self.fail_upload:
            raise StorageError("bucket unreachable")
        if not self.hide_uploads:
            self.blobs[key] = data
        return len(data)

    def exists(self, key: str) -> bool:
        return key in self.blobs

    def rename(self, old_key: str, new_key: str) -> None:
        if self.fail_rename:
            raise StorageError(f"copy of '{old_key}' failed")
        if old_key not in self.blobs:
            raise StorageError(f"source object '{old_key}' not found")
        self.blobs[new_key] = self.blobs.pop(old_key)

    def delete(self, key: str) -> None:
        if self.fail_delete:
            raise StorageError(f"delete of '{key}' failed")
        self.blobs.pop(key, None)

    def signed_url(self, key: str, ttl_seconds: int) -> str:
        return f"https://signed.example/{self.bucket}/{key}?expires={ttl_seconds}"

    def blob_uri(self, key: str) -> str:
        return f"gs://{self.bucket}/{key}"


class FakeCorpus:
    """
    Files imported from a blob appear in the listing under the blob basename,
    the way the managed corpus names bucket imports.
    """

    def __init__(self):
        self.corpora: Dict[str, CorpusRef] = {}
        self.files: Dict[str, List[CorpusFile]] = {}
        self.operations: Dict[str, Dict[str, Any]] = {}
        self.imports: List[str] = []
        self.unavailable = False
        self.index_imports = True
        self.operation_error: Optional[Dict[str, Any]] = None
        self._ids = itertools.count(1001)
        self._ticks = itertools.count(1)

    def _check(self) -> None:
        if self.unavailable:
            raise CorpusError("connection refused")

    def add_corpus(self, corpus_name: str) -> CorpusRef:
        ref = CorpusRef(name=f"projects/p/locations/l/ragCorpora/{len(self.corpora) + 1}", displayName=corpus_name)
        self.corpora[corpus_name] = ref
        self.files.setdefault(ref.name, [])
        return ref

    def add_file(self, corpus_name: str, display_name: str, file_id: Optional[str] = None) -> CorpusFile:
        ref = self.corpora.get(corpus_name) or self.add_corpus(corpus_name)
        file_id = file_id or str(next(self._ids))
        entry = CorpusFile(
            id=file_id,
            name=f"{ref.name}/ragFiles/{file_id}",
            displayName=display_name,
            createTime=f"2026-01-01T00:00:{next(self._ticks):02d}Z",
        )
        self.files[ref.name].append(entry)
        return entry

    def ensure_corpus(self, corpus_name: str, cancel_event: Optional[threading.Event] = None) -> CorpusRef:
        self._check()
        return self.corpora.get(corpus_name) or self.add_corpus(corpus_name)

    def find_corpus(self, corpus_name: str) -> Optional[CorpusRef]:
        self._check()
        return self.corpora.get(corpus_name)

    def list_corpora(self) -> List[CorpusRef]:
        self._check()
        return list(self.corpora.values())

    def import_file(self, corpus: CorpusRef, blob_uri: str) -> str:
        self._check()
        self.imports.append(blob_uri)
        operation_name = f"{corpus.name}/operations/{len(self.imports)}"
        self.operations[operation_name] = {"name": operation_name, "done": True}
        if self.operation_error:
            self.operations[operation_name]["error"] = self.operation_error
        elif self.index_imports:
            corpus_name = next(n for n, ref in self.corpora.items() if ref.name == corpus.name)
            self.add_file(corpus_name, key_basename(blob_uri))
        return operation_name

    def get_operation(self, operation_name: str) -> Dict[str, Any]:
        self._check()
        return self.operations.get(operation_name, {"name": operation_name, "done": False})

    def list_files(self, corpus: CorpusRef) -> List[CorpusFile]:
        self._check()
        return list(self.files.get(corpus.name, []))

    def delete_file(self, corpus: CorpusRef, file_id: str) -> None:
        self._check()
        listing = self.files.get(corpus.name, [])
        remaining = [f for f in listing if f.id != file_id]
        if len(remaining) == len(listing):
            raise CorpusError(f"corpus service returned 404 for DELETE ragFiles/{file_id}")
        self.files[corpus.name] = remaining

    def file_ids(self, corpus_name: str) -> List[str]:
        return [f.id for f in self.files.get(self.corpora[corpus_name].name, [])]


class FakeMetadataStore:
    def __init__(self):
        self.docs: Dict[str, Dict[str, Any]] = {}
        self.unavailable = False

    def _check(self) -> None:
        if self.unavailable:
            raise MetadataStoreError("server selection timeout")

    def create(self, record: DocumentInDB) -> None:
        self._check()
        if record.file_id in self.docs:
            raise MetadataStoreError(f"document with fileId '{record.file_id}' already exists")
        self.docs[record.file_id] = record.to_mongo()

    def get_by_file_id(self, file_id: str) -> DocumentInDB:
        self._check()
        if file_id not in self.docs:
            raise DocumentNotFoundError(file_id)
        return DocumentInDB.model_validate(self.docs[file_id])

    def find_by_file_id(self, file_id: str) -> Optional[DocumentInDB]:
        try:
            return self.get_by_file_id(file_id)
        except DocumentNotFoundError:
            return None

    def get_by_corpus(self, corpus_name: str) -> List[DocumentInDB]:
        self._check()
        docs = [d for d in self.docs.values() if d["corpusName"] == corpus_name]
        return [DocumentInDB.model_validate(d) for d in sorted(docs, key=lambda d: d["createdAt"])]

    def patch_fields(
        self, file_id: str, fields: Mapping[str, Any], expect: Optional[Mapping[str, Any]] = None
    ) -> bool:
        self._check()
        for field in fields:
            if field in IMMUTABLE_FIELDS:
                raise ImmutableFieldError(field)
        doc = self.docs.get(file_id)
        if doc is None:
            return False
        if any(doc.get(k, "") != v for k, v in (expect or {}).items()):
            return False
        doc.update(fields)
        doc["updatedAt"] = utcnow()
        return True

    def delete(self, file_id: str) -> bool:
        self._check()
        return self.docs.pop(file_id, None) is not None

    def insert(self, **fields: Any) -> DocumentInDB:
        """Test helper: store a record directly, bypassing the coordinator."""
        base = {
            "fileId": f"file-{len(self.docs) + 1}",
            "displayName": "doc.pdf",
            "objectKey": "",
            "bucket": "test-bucket",
            "corpusName": "algebra-101",
            "externalFileId": "",
            "status": DocumentStatus.COMPLETED.value,
            "size": 10,
            "contentType": "application/pdf",
            "createdAt": utcnow() + timedelta(microseconds=len(self.docs)),
        }
        base.update(fields)
        if not base["objectKey"]:
            base["objectKey"] = f"documents/{base['fileId']}/{base['displayName']}"
        record = DocumentInDB.model_validate(base)
        self.docs[record.file_id] = record.to_mongo()
        return record


class FakeTaskQueue:
    def __init__(self):
        self.imports: List[AddDocumentToCorpusTask] = []
        self.reconciles: List[ReconcileCorpusTask] = []
        self.fail = False

    def enqueue_import(self, task: AddDocumentToCorpusTask) -> str:
        if self.fail:
            raise ConnectionError("Error 111 connecting to redis:6379. Connection refused.")
        self.imports.append(task)
        return task.file_id

    def enqueue_reconcile(self, task: ReconcileCorpusTask) -> str:
        self.reconciles.append(task)
        return f"reconcile-{len(self.reconciles)}"


class FakeRedis:
    """The handful of Redis commands the metrics recorder uses, on plain dicts."""

    def __init__(self):
        self.sets: Dict[str, set] = {}
        self.hashes: Dict[str, Dict[str, str]] = {}
        self.lists: Dict[str, List[str]] = {}
        self.unavailable = False

    def _check(self) -> None:
        if self.unavailable:
            raise redis.ConnectionError("Error 111 connecting to redis:6379. Connection refused.")

    def ping(self) -> bool:
        self._check()
        return True

    def close(self) -> None:
        pass

    def pipeline(self) -> "FakePipeline":
        return FakePipeline(self)

    def sadd(self, key: str, *values: str) -> int:
        self._check()
        self.sets.setdefault(key, set()).update(values)
        return len(values)

    def smembers(self, key: str) -> set:
        self._check()
        return set(self.sets.get(key, set()))

    def hincrby(self, key: str, field: str, amount: int = 1) -> int:
        self._check()
        bucket = self.hashes.setdefault(key, {})
        bucket[field] = str(int(bucket.get(field, 0)) + amount)
        return int(bucket[field])

    def hgetall(self, key: str) -> Dict[str, str]:
        self._check()
        return dict(self.hashes.get(key, {}))

    def lpush(self, key: str, *values: str) -> int:
        self._check()
        items = self.lists.setdefault(key, [])
        for value in values:
            items.insert(0, value)
        return len(items)

    def ltrim(self, key: str, start: int, end: int) -> bool:
        self._check()
        self.lists[key] = self.lists.get(key, [])[start:end + 1]
        return True

    def lrange(self, key: str, start: int, end: int) -> List[str]:
        self._check()
        items = self.lists.get(key, [])
        return items[start:] if end == -1 else items[start:end + 1]

    def llen(self, key: str) -> int:
        self._check()
        return len(self.lists.get(key, []))


class FakePipeline:
    def __init__(self, client: FakeRedis):
        self.client = client
        self.commands: List[Any] = []

    def __getattr__(self, name: str):
        def queue(*args):
            self.commands.append((name, args))
            return self
        return queue

    def execute(self) -> List[Any]:
        return [getattr(self.client, name)(*args) for name, args in self.commands]


FAST_POLICY = BackoffPolicy(initial_delay=0.001, max_delay=0.002, factor=2.0, deadline=0.05)


@pytest.fixture
def storage() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def corpus() -> FakeCorpus:
    return FakeCorpus()


@pytest.fixture
def documents() -> FakeMetadataStore:
    return FakeMetadataStore()


@pytest.fixture
def task_queue() -> FakeTaskQueue:
    return FakeTaskQueue()


@pytest.fixture
def fast_policy() -> BackoffPolicy:
    return FAST_POLICY


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def context(storage, corpus, documents, task_queue, fake_redis) -> AppContext:
    settings = Settings(
        RESOLUTION_INITIAL_DELAY_SECONDS=FAST_POLICY.initial_delay,
        RESOLUTION_MAX_DELAY_SECONDS=FAST_POLICY.max_delay,
        RESOLUTION_DEADLINE_SECONDS=FAST_POLICY.deadline,
    )
    return AppContext(
        settings=settings,
        documents=documents,
        storage=storage,
        corpus=corpus,
        task_queue=task_queue,
        redis=fake_redis,
    )
