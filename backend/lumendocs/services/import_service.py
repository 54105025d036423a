# FILE: backend/lumendocs/services/import_service.py
# Import Worker: push a staged blob into the corpus and resolve its external id.
# 1. The corpus assigns ids asynchronously; resolution polls the file listing
#    with bounded backoff and never sleeps a fixed interval.
# 2. Terminal patches carry the precondition status == pending.
# 3. An unresolved import is `failed`. There is no fallback id.

import threading
from typing import Optional, Set

import structlog

from ..core.exceptions import (
    CorpusError,
    ExternalServiceError,
    ImportOperationError,
    MetadataStoreError,
    ResolutionCancelled,
    ResolutionTimeout,
    StorageError,
)
from ..models.document import DocumentStatus
from ..models.tasks import AddDocumentToCorpusTask
from .contracts import Corpus, MetadataStore, ObjectStore
from .matching import find_best_match, key_basename
from .polling import BackoffPolicy, poll_until

logger = structlog.get_logger(__name__)

PENDING_ONLY = {"status": DocumentStatus.PENDING.value}


def describe_failure(error: Exception) -> str:
    """Prefixes the record's errorMsg so operators can tell the causes apart."""
    if isinstance(error, ResolutionTimeout):
        return f"resolution timeout: {error}"
    if isinstance(error, ResolutionCancelled):
        return f"resolution cancelled: {error}"
    if isinstance(error, ImportOperationError):
        return f"corpus import operation failed: {error}"
    if isinstance(error, CorpusError):
        return f"corpus unavailable: {error}"
    if isinstance(error, ExternalServiceError):
        return f"{error.store} unavailable: {error}"
    return str(error)


class ImportWorker:
    def __init__(
        self,
        corpus: Corpus,
        storage: ObjectStore,
        documents: MetadataStore,
        policy: Optional[BackoffPolicy] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.corpus = corpus
        self.storage = storage
        self.documents = documents
        self.policy = policy or BackoffPolicy()
        self.cancel_event = cancel_event or threading.Event()

    def process(self, task: AddDocumentToCorpusTask) -> Optional[DocumentStatus]:
        """
        Runs one import to a terminal state and returns it.

        Returns None when the record no longer exists or is already terminal;
        a redelivered task never overwrites a finished record.
        """
        log = logger.bind(file_id=task.file_id, corpus=task.corpus_name)

        record = self.documents.find_by_file_id(task.file_id)
        if record is None:
            log.warning("import.record_gone", stage="start")
            return None
        if record.status.is_terminal:
            log.info("import.already_terminal", status=record.status.value)
            return None

        try:
            external_file_id = self._import_and_resolve(task, log)
        except (ExternalServiceError, ResolutionTimeout, ResolutionCancelled) as e:
            message = describe_failure(e)
            log.error("import.failed", error=message)
            self._finish(task, {"status": DocumentStatus.FAILED.value, "errorMsg": message}, log)
            return DocumentStatus.FAILED

        object_key = self._move_to_final_key(task, external_file_id, log)
        try:
            self._finish(
                task,
                {
                    "status": DocumentStatus.COMPLETED.value,
                    "externalFileId": external_file_id,
                    "objectKey": object_key,
                },
                log,
            )
        except MetadataStoreError:
            # The record still points at the temp key; put the blob back there.
            if object_key != task.temp_key:
                self._restore_temp_key(task, object_key, log)
            raise
        log.info("import.completed", external_file_id=external_file_id, object_key=object_key)
        return DocumentStatus.COMPLETED

    def _import_and_resolve(self, task: AddDocumentToCorpusTask, log) -> str:
        corpus_ref = self.corpus.ensure_corpus(task.corpus_name, self.cancel_event)
        operation_name = self.corpus.import_file(corpus_ref, self.storage.blob_uri(task.temp_key))
        log.info("import.submitted", operation=operation_name, corpus_ref=corpus_ref.name)

        # The corpus lists bucket imports under the blob basename, not the upload name.
        search_terms = [task.display_name, key_basename(task.temp_key)]

        def check() -> Optional[str]:
            self._raise_if_operation_failed(operation_name)
            claimed = self._claimed_ids(task)
            match = find_best_match(search_terms, self.corpus.list_files(corpus_ref), exclude_ids=claimed)
            return match.id if match else None

        external_file_id = poll_until(check, self.policy, self.cancel_event, label=f"resolve {task.file_id}")
        log.info("import.resolved", external_file_id=external_file_id)
        return external_file_id

    def _raise_if_operation_failed(self, operation_name: str) -> None:
        operation = self.corpus.get_operation(operation_name)
        if operation.get("done") and operation.get("error"):
            error = operation["error"]
            detail = error.get("message") if isinstance(error, dict) else None
            raise ImportOperationError(detail or str(error))

    def _claimed_ids(self, task: AddDocumentToCorpusTask) -> Set[str]:
        return {
            doc.external_file_id
            for doc in self.documents.get_by_corpus(task.corpus_name)
            if doc.external_file_id and doc.file_id != task.file_id
        }

    def _move_to_final_key(self, task: AddDocumentToCorpusTask, external_file_id: str, log) -> str:
        final_key = task.final_key(external_file_id)
        try:
            self.storage.rename(task.temp_key, final_key)
        except StorageError as e:
            # The temp blob is still in place, so the record stays consistent.
            log.warning("import.rename_failed", temp_key=task.temp_key, final_key=final_key, error=str(e))
            return task.temp_key
        return final_key

    def _restore_temp_key(self, task: AddDocumentToCorpusTask, object_key: str, log) -> None:
        try:
            self.storage.rename(object_key, task.temp_key)
        except StorageError as e:
            log.error("import.rename_rollback_failed", object_key=object_key, temp_key=task.temp_key, error=str(e))

    def _finish(self, task: AddDocumentToCorpusTask, fields: dict, log) -> None:
        if not self.documents.patch_fields(task.file_id, fields, expect=PENDING_ONLY):
            # Deleted (or finished) concurrently; nothing left to update.
            log.warning("import.record_gone", stage="finish", status=fields["status"])
