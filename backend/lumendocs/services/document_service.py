# FILE: backend/lumendocs/services/document_service.py
# Read side of the lifecycle: status polling, signed view links and the
# unified corpus listing (metadata records cross-checked with the corpus).

from typing import Dict, List

import structlog

from ..core.exceptions import CorpusNotFoundError, DocumentNotFoundError
from ..models.document import (
    CorpusDocumentOut,
    CorpusDocumentsOut,
    CorpusFile,
    DocumentStatusOut,
    DocumentViewOut,
)
from .contracts import Corpus, MetadataStore, ObjectStore

logger = structlog.get_logger(__name__)


class DocumentService:
    def __init__(self, documents: MetadataStore, storage: ObjectStore, corpus: Corpus, signed_url_ttl: int = 1800):
        self.documents = documents
        self.storage = storage
        self.corpus = corpus
        self.signed_url_ttl = signed_url_ttl

    def get_status(self, file_id: str) -> DocumentStatusOut:
        record = self.documents.get_by_file_id(file_id)
        return DocumentStatusOut(
            fileId=record.file_id,
            status=record.status,
            externalFileId=record.external_file_id or None,
            errorMsg=record.error_msg or None,
            updatedAt=record.updated_at,
        )

    def get_view_url(self, file_id: str) -> DocumentViewOut:
        record = self.documents.get_by_file_id(file_id)
        if not record.object_key or not self.storage.exists(record.object_key):
            logger.warning("view.blob_missing", file_id=file_id, object_key=record.object_key)
            raise DocumentNotFoundError(file_id)

        url = self.storage.signed_url(record.object_key, self.signed_url_ttl)
        return DocumentViewOut(
            url=url,
            expiresIn=self.signed_url_ttl,
            fileId=record.file_id,
            displayName=record.display_name,
            contentType=record.content_type,
            size=record.size,
            corpusName=record.corpus_name,
        )

    def list_corpus_files(self, corpus_name: str) -> List[CorpusFile]:
        corpus_ref = self.corpus.find_corpus(corpus_name)
        if corpus_ref is None:
            raise CorpusNotFoundError(corpus_name)
        return self.corpus.list_files(corpus_ref)

    def list_corpus_documents(self, corpus_name: str) -> CorpusDocumentsOut:
        records = self.documents.get_by_corpus(corpus_name)

        # A corpus that was never created simply has no files yet.
        corpus_ref = self.corpus.find_corpus(corpus_name)
        files = self.corpus.list_files(corpus_ref) if corpus_ref else []
        by_id: Dict[str, CorpusFile] = {f.id: f for f in files}

        documents = []
        for record in records:
            corpus_file = by_id.get(record.external_file_id) if record.external_file_id else None
            documents.append(CorpusDocumentOut(
                fileId=record.file_id,
                displayName=record.display_name,
                corpusName=record.corpus_name,
                externalFileId=record.external_file_id,
                objectKey=record.object_key,
                status=record.status,
                createdAt=record.created_at,
                inDatabase=True,
                inCorpus=corpus_file is not None,
                corpusFile=corpus_file,
            ))

        logger.info("corpus.documents_listed", corpus=corpus_name, records=len(records), files=len(files))
        return CorpusDocumentsOut(
            corpusName=corpus_name,
            documents=documents,
            totalDocuments=len(documents),
            databaseCount=len(records),
            corpusCount=len(files),
        )
