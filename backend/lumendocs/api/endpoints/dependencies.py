# FILE: backend/lumendocs/api/endpoints/dependencies.py
# Request-scoped access to the AppContext built in the lifespan.

from fastapi import Depends, HTTPException, Request, status

from ...core.context import AppContext
from ...services.deletion_service import DeletionOrchestrator
from ...services.document_service import DocumentService
from ...services.ingestion_service import IngestionCoordinator
from ...services.metrics_service import TaskMetricsRecorder
from ...services.reconciliation_service import ReconciliationEngine


def get_context(request: Request) -> AppContext:
    context = getattr(request.app.state, "context", None)
    if context is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Service is starting up.")
    return context


def get_ingestion(context: AppContext = Depends(get_context)) -> IngestionCoordinator:
    return context.ingestion()


def get_document_service(context: AppContext = Depends(get_context)) -> DocumentService:
    return context.document_service()


def get_reconciliation(context: AppContext = Depends(get_context)) -> ReconciliationEngine:
    return context.reconciliation()


def get_deletion(context: AppContext = Depends(get_context)) -> DeletionOrchestrator:
    return context.deletion()


def get_metrics(context: AppContext = Depends(get_context)) -> TaskMetricsRecorder:
    recorder = context.metrics()
    if recorder is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Task metrics are not available.")
    return recorder
