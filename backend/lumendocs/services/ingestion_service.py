# FILE: backend/lumendocs/services/ingestion_service.py
# Ingestion Coordinator: validate, stage the blob under a temp key, create the
# pending record, hand off to the import worker. Never waits on the corpus.

import os
import uuid
from typing import Optional

import structlog

from ..core.exceptions import ExternalServiceError, IngestionError, StorageError, ValidationError
from ..models.document import ALLOWED_EXTENSIONS, DocumentInDB, DocumentStatus, UploadAcceptedOut
from ..models.tasks import AddDocumentToCorpusTask
from .contracts import MetadataStore, ObjectStore, TaskQueue

logger = structlog.get_logger(__name__)


def validate_upload(corpus_name: Optional[str], file_name: Optional[str]) -> str:
    """Returns the lower-cased extension; raises ValidationError before any I/O."""
    if not corpus_name or not corpus_name.strip():
        raise ValidationError("corpusName is required")
    if not file_name or not file_name.strip():
        raise ValidationError("file is required")

    extension = os.path.splitext(file_name)[1].lower()
    if extension not in ALLOWED_EXTENSIONS:
        raise ValidationError(
            f"Unsupported file type: {extension or '(none)'}. Allowed types: {', '.join(ALLOWED_EXTENSIONS)}"
        )
    return extension


def temp_object_key(temp_token: str, extension: str) -> str:
    return f"temp/{temp_token}{extension}"


def final_key_template(file_id: str, extension: str) -> str:
    return f"documents/{file_id}/{{external_file_id}}{extension}"


class IngestionCoordinator:
    def __init__(self, storage: ObjectStore, documents: MetadataStore, task_queue: TaskQueue):
        self.storage = storage
        self.documents = documents
        self.task_queue = task_queue

    def upload(
        self,
        corpus_name: str,
        file_bytes: bytes,
        file_name: str,
        content_type: Optional[str] = None,
        uploaded_by: str = "system",
    ) -> UploadAcceptedOut:
        extension = validate_upload(corpus_name, file_name)

        file_id = uuid.uuid4().hex
        temp_key = temp_object_key(uuid.uuid4().hex, extension)
        log = logger.bind(file_id=file_id, corpus=corpus_name, display_name=file_name)

        size = self.storage.upload(temp_key, file_bytes, content_type or "application/octet-stream", file_name)
        if not self.storage.exists(temp_key):
            log.error("upload.verification_failed", temp_key=temp_key)
            raise StorageError(f"uploaded object '{temp_key}' is not visible in the bucket")
        log.info("upload.staged", temp_key=temp_key, size=size)

        record = DocumentInDB(
            fileId=file_id,
            displayName=file_name,
            objectKey=temp_key,
            bucket=self.storage.bucket,
            corpusName=corpus_name,
            externalFileId="",
            status=DocumentStatus.PENDING,
            size=size,
            contentType=content_type or "application/octet-stream",
            uploadedBy=uploaded_by,
        )
        try:
            self.documents.create(record)
        except ExternalServiceError:
            log.error("upload.record_create_failed", temp_key=temp_key, exc_info=True)
            try:
                self.storage.delete(temp_key)
            except StorageError:
                log.error("upload.cleanup_failed", temp_key=temp_key, exc_info=True)
            raise

        task = AddDocumentToCorpusTask(
            file_id=file_id,
            temp_key=temp_key,
            final_key_template=final_key_template(file_id, extension),
            corpus_name=corpus_name,
            display_name=file_name,
        )
        try:
            self.task_queue.enqueue_import(task)
        except Exception as e:
            # Broker errors come from kombu/redis and carry no common base class.
            log.error("upload.enqueue_failed", error=str(e))
            self.documents.patch_fields(
                file_id,
                {"status": DocumentStatus.FAILED.value, "errorMsg": f"task enqueue failed: {e}"},
                expect={"status": DocumentStatus.PENDING.value},
            )
            raise IngestionError("Failed to enqueue background processing task") from e

        log.info("upload.accepted")
        return UploadAcceptedOut(fileId=file_id, status=DocumentStatus.PENDING)
