# FILE: backend/lumendocs/tasks/document_processing.py
# Consumer side of the import queue.
# 1. One attempt per upload: acks_late=False, max_retries=0.
# 2. The soft time limit sits above the resolution deadline; hitting it still
#    leaves the record in a terminal state. Only the prefork pool enforces it.
# 3. Every terminal outcome is counted in the task metrics.

import time

import structlog
from celery import shared_task
from celery.exceptions import SoftTimeLimitExceeded

from ..core.config import settings
from ..core.exceptions import DocumentLifecycleError, UnknownTaskPayloadError
from ..models.document import DocumentStatus
from ..models.tasks import AddDocumentToCorpusTask, parse_task_payload
from ..services.task_queue import IMPORT_TASK_NAME
from ..worker import get_worker_context

logger = structlog.get_logger(__name__)


def _mark_failed(file_id: str, message: str, log) -> None:
    try:
        updated = get_worker_context().documents.patch_fields(
            file_id,
            {"status": DocumentStatus.FAILED.value, "errorMsg": message},
            expect={"status": DocumentStatus.PENDING.value},
        )
    except DocumentLifecycleError as e:
        log.error("task.mark_failed_error", error=str(e))
        return
    if not updated:
        log.warning("import.record_gone", stage="task_failure")


def _record_outcome(succeeded: bool, started: float) -> None:
    recorder = get_worker_context().metrics()
    if recorder is None:
        return
    duration = time.monotonic() - started
    if succeeded:
        recorder.record_success(IMPORT_TASK_NAME, duration)
    else:
        recorder.record_failure(IMPORT_TASK_NAME, duration)


@shared_task(
    bind=True,
    name=IMPORT_TASK_NAME,
    acks_late=False,
    max_retries=0,
    soft_time_limit=settings.import_task_time_limit,
    time_limit=settings.import_task_time_limit + 30,
)
def add_document_to_corpus(self, payload: dict):
    log = logger.bind(task_id=self.request.id, task=IMPORT_TASK_NAME)

    task = parse_task_payload(payload)
    if not isinstance(task, AddDocumentToCorpusTask):
        log.error("task.rejected", kind=task.kind)
        raise UnknownTaskPayloadError(f"'{IMPORT_TASK_NAME}' cannot process payload kind '{task.kind}'")

    log = log.bind(file_id=task.file_id, corpus=task.corpus_name)
    log.info("task.received")
    started = time.monotonic()

    try:
        status = get_worker_context().import_worker().process(task)
    except SoftTimeLimitExceeded:
        log.error("task.time_limit_exceeded")
        _mark_failed(task.file_id, "resolution timeout: import task exceeded its time limit", log)
        _record_outcome(False, started)
        raise
    except Exception as e:
        log.error("task.failed.generic", error=str(e), exc_info=True)
        _mark_failed(task.file_id, f"import failed: {e}", log)
        _record_outcome(False, started)
        raise

    # None: the record was deleted or already finished; nothing was imported.
    if status is not None:
        _record_outcome(status is DocumentStatus.COMPLETED, started)
    log.info("task.completed", status=status.value if status else None)
    return {"fileId": task.file_id, "status": status.value if status else None}
