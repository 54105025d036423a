# FILE: backend/lumendocs/tasks/corpus_sync.py
# Background reconciliation, same engine as POST /documents/sync.

import structlog
from celery import shared_task

from ..core.exceptions import UnknownTaskPayloadError
from ..models.tasks import ReconcileCorpusTask, parse_task_payload
from ..services.task_queue import RECONCILE_TASK_NAME
from ..worker import get_worker_context

logger = structlog.get_logger(__name__)


@shared_task(bind=True, name=RECONCILE_TASK_NAME, max_retries=0)
def reconcile_corpus(self, payload: dict):
    task = parse_task_payload(payload)
    if not isinstance(task, ReconcileCorpusTask):
        raise UnknownTaskPayloadError(f"'{RECONCILE_TASK_NAME}' cannot process payload kind '{task.kind}'")

    log = logger.bind(task_id=self.request.id, corpus=task.corpus_name)
    log.info("task.received")
    report = get_worker_context().reconciliation().sync(task.corpus_name)
    log.info("task.completed", newly_updated=report.newly_updated)
    return report.to_dict()
