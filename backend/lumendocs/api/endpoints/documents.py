# FILE: backend/lumendocs/api/endpoints/documents.py
# 1. Store calls are blocking; every handler hops to a thread.
# 2. DELETE always answers 200 with the per-store report.

import asyncio
from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from ...core.exceptions import ValidationError
from ...models.document import DocumentStatusOut, DocumentViewOut, UploadAcceptedOut
from ...services.deletion_service import DeletionOrchestrator
from ...services.document_service import DocumentService
from ...services.ingestion_service import IngestionCoordinator, validate_upload
from ...services.reconciliation_service import ReconciliationEngine
from .dependencies import get_deletion, get_document_service, get_ingestion, get_reconciliation

router = APIRouter(tags=["Documents"])


@router.post("", response_model=UploadAcceptedOut)
async def upload_document(
    ingestion: Annotated[IngestionCoordinator, Depends(get_ingestion)],
    corpusName: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
):
    """Stages the file and queues it for corpus import. Returns before the import runs."""
    file_name = file.filename if file is not None else None
    validate_upload(corpusName, file_name)

    content = await file.read()
    return await asyncio.to_thread(
        ingestion.upload,
        corpus_name=corpusName,
        file_bytes=content,
        file_name=file_name,
        content_type=file.content_type,
    )


@router.post("/sync")
async def sync_documents(
    reconciliation: Annotated[ReconciliationEngine, Depends(get_reconciliation)],
    corpusName: Optional[str] = Query(None),
) -> Dict[str, Any]:
    if not corpusName:
        raise ValidationError("corpusName query parameter is required")
    report = await asyncio.to_thread(reconciliation.sync, corpusName)
    return report.to_dict()


@router.get("/{fileId}/status", response_model=DocumentStatusOut)
async def get_document_status(fileId: str, service: Annotated[DocumentService, Depends(get_document_service)]):
    return await asyncio.to_thread(service.get_status, fileId)


@router.get("/{fileId}/view", response_model=DocumentViewOut)
async def view_document(fileId: str, service: Annotated[DocumentService, Depends(get_document_service)]):
    return await asyncio.to_thread(service.get_view_url, fileId)


@router.delete("/{fileId}")
async def delete_document(
    fileId: str,
    deletion: Annotated[DeletionOrchestrator, Depends(get_deletion)],
    corpusName: Optional[str] = Query(None),
) -> Dict[str, Any]:
    report = await asyncio.to_thread(deletion.delete, fileId, corpusName)
    return report.to_dict()
