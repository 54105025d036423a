# FILE: backend/lumendocs/services/task_queue.py
# Producer side of the durable task queue. Payloads travel as tagged JSON.

import structlog
from celery import Celery

from ..models.tasks import AddDocumentToCorpusTask, ReconcileCorpusTask

logger = structlog.get_logger(__name__)

IMPORT_TASK_NAME = "add_document_to_corpus"
RECONCILE_TASK_NAME = "reconcile_corpus"


class CeleryTaskQueue:
    def __init__(self, app: Celery):
        self.app = app

    def enqueue_import(self, task: AddDocumentToCorpusTask) -> str:
        # task_id == fileId: one import task per upload, visible in broker tooling.
        result = self.app.send_task(IMPORT_TASK_NAME, args=[task.model_dump()], task_id=task.file_id)
        logger.info("task.enqueued", task=IMPORT_TASK_NAME, file_id=task.file_id, task_id=result.id)
        return result.id

    def enqueue_reconcile(self, task: ReconcileCorpusTask) -> str:
        result = self.app.send_task(RECONCILE_TASK_NAME, args=[task.model_dump()])
        logger.info("task.enqueued", task=RECONCILE_TASK_NAME, corpus=task.corpus_name, task_id=result.id)
        return result.id
