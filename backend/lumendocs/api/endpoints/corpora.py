# FILE: backend/lumendocs/api/endpoints/corpora.py
# Corpus-facing read endpoints and the ensure-corpus call.

import asyncio
from typing import Annotated, Any, Dict, List

from fastapi import APIRouter, Depends, Query

from ...core.context import AppContext
from ...models.document import CorpusCreateIn, CorpusDocumentsOut, CorpusFile, CorpusRef
from ...services.document_service import DocumentService
from .dependencies import get_context, get_document_service

router = APIRouter(tags=["Corpora"])


@router.get("/corpora", response_model=List[CorpusRef])
async def list_corpora(context: Annotated[AppContext, Depends(get_context)]):
    return await asyncio.to_thread(context.corpus.list_corpora)


@router.post("/corpora", response_model=CorpusRef)
async def ensure_corpus(body: CorpusCreateIn, context: Annotated[AppContext, Depends(get_context)]):
    return await asyncio.to_thread(context.corpus.ensure_corpus, body.corpusName)


@router.get("/corpora/{corpusName}/files", response_model=List[CorpusFile])
async def list_corpus_files(corpusName: str, service: Annotated[DocumentService, Depends(get_document_service)]):
    return await asyncio.to_thread(service.list_corpus_files, corpusName)


@router.get("/corpora/{corpusName}/documents", response_model=CorpusDocumentsOut)
async def list_corpus_documents(
    corpusName: str, service: Annotated[DocumentService, Depends(get_document_service)]
):
    return await asyncio.to_thread(service.list_corpus_documents, corpusName)


@router.get("/operations/status")
async def get_operation_status(
    context: Annotated[AppContext, Depends(get_context)],
    name: str = Query(..., min_length=1),
) -> Dict[str, Any]:
    operation = await asyncio.to_thread(context.corpus.get_operation, name)
    return {
        "name": operation.get("name", name),
        "done": bool(operation.get("done")),
        "error": operation.get("error"),
        "metadata": operation.get("metadata"),
    }
