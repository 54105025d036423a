# FILE: backend/lumendocs/core/context.py
# Explicit application context: every store client is built once per process
# (API lifespan or worker process init) and handed to the services.

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .config import Settings

from ..services.contracts import Corpus, MetadataStore, ObjectStore, TaskQueue
from ..services.deletion_service import DeletionOrchestrator
from ..services.document_service import DocumentService
from ..services.import_service import ImportWorker
from ..services.ingestion_service import IngestionCoordinator
from ..services.metrics_service import TaskMetricsRecorder
from ..services.polling import BackoffPolicy
from ..services.reconciliation_service import ReconciliationEngine

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    documents: MetadataStore
    storage: ObjectStore
    corpus: Corpus
    task_queue: TaskQueue
    mongo_client: Optional[Any] = None
    redis: Optional[Any] = None
    cancel_event: threading.Event = field(default_factory=threading.Event)

    def ingestion(self) -> IngestionCoordinator:
        return IngestionCoordinator(self.storage, self.documents, self.task_queue)

    def import_worker(self) -> ImportWorker:
        return ImportWorker(
            self.corpus,
            self.storage,
            self.documents,
            policy=BackoffPolicy.from_settings(self.settings),
            cancel_event=self.cancel_event,
        )

    def document_service(self) -> DocumentService:
        return DocumentService(self.documents, self.storage, self.corpus, self.settings.SIGNED_URL_TTL_SECONDS)

    def reconciliation(self) -> ReconciliationEngine:
        return ReconciliationEngine(self.documents, self.corpus)

    def deletion(self) -> DeletionOrchestrator:
        return DeletionOrchestrator(self.documents, self.storage, self.corpus)

    def metrics(self) -> Optional[TaskMetricsRecorder]:
        if self.redis is None:
            return None
        return TaskMetricsRecorder(
            self.redis,
            queue_name=self.settings.CELERY_QUEUE_NAME,
            min_success_rate=self.settings.METRICS_MIN_SUCCESS_RATE,
            max_queue_depth=self.settings.METRICS_MAX_QUEUE_DEPTH,
        )

    def health(self) -> Dict[str, str]:
        checks = {"mongo": "unknown", "redis": "unknown"}
        if self.mongo_client is not None:
            try:
                self.mongo_client.admin.command('ping')
                checks["mongo"] = "ok"
            except Exception as e:
                logger.warning(f"--- [Health] MongoDB ping failed: {e} ---")
                checks["mongo"] = "unavailable"
        if self.redis is not None:
            try:
                self.redis.ping()
                checks["redis"] = "ok"
            except Exception as e:
                logger.warning(f"--- [Health] Redis ping failed: {e} ---")
                checks["redis"] = "unavailable"
        return checks

    def close(self) -> None:
        """Signals in-flight resolutions to stop, then releases every client."""
        self.cancel_event.set()
        close_corpus = getattr(self.corpus, "close", None)
        if close_corpus is not None:
            close_corpus()
        if self.redis is not None:
            self.redis.close()
        if self.mongo_client is not None:
            self.mongo_client.close()
        logger.info("--- [Context] All connections closed. ---")


def build_context(settings: Settings) -> AppContext:
    # Driver modules are only needed for the real context.
    from ..celery_app import celery_app
    from ..services.corpus_service import VertexRagCorpus
    from ..services.document_repository import DocumentRepository
    from ..services.storage_service import S3ObjectStore
    from ..services.task_queue import CeleryTaskQueue
    from .db import connect_to_mongo, connect_to_redis

    mongo_client, db = connect_to_mongo(settings)
    documents = DocumentRepository(db[settings.DOCUMENTS_COLLECTION])
    try:
        documents.ensure_indexes()
        logger.info("--- [Context] Document indexes verified. ---")
    except Exception as e:
        logger.error(f"--- [Context] Index creation failed: {e} ---")

    context = AppContext(
        settings=settings,
        documents=documents,
        storage=S3ObjectStore.from_settings(settings),
        corpus=VertexRagCorpus.from_settings(settings),
        task_queue=CeleryTaskQueue(celery_app),
        mongo_client=mongo_client,
        redis=connect_to_redis(settings),
    )
    logger.info("--- [Context] Application context ready. ---")
    return context
