# FILE: backend/lumendocs/celery_app.py
# Defines the Celery application and its task modules. Holds no connections;
# worker processes build their own context (see tasks/document_processing.py).

import logging

from celery import Celery

from .core.config import settings

celery_app = Celery(
    "lumendocs",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=[
        'lumendocs.tasks.document_processing',
        'lumendocs.tasks.corpus_sync',
    ],
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
    worker_prefetch_multiplier=1,
    # At most one import attempt per upload: ack on receipt, never redeliver.
    task_acks_late=False,
    result_expires=3600,
    broker_connection_retry_on_startup=True,
    # Tasks run in the process that receives the shutdown signal, so the
    # cancel event reaches in-flight resolutions.
    worker_pool=settings.CELERY_WORKER_POOL,
    worker_concurrency=settings.CELERY_WORKER_CONCURRENCY,
    task_default_queue=settings.CELERY_QUEUE_NAME,
)

logging.getLogger(__name__).info("--- [Celery App] Celery application configured. ---")
