# FILE: backend/lumendocs/services/deletion_service.py
# Deletion Orchestrator: resolve an ambiguous identifier, then delete from the
# corpus, the bucket and the metadata store independently.
# 1. Every step yields a StoreOutcome; none rolls back another.
# 2. "Not found" in a store is a failure to delete, not a separate code.

from typing import Optional, Set, Tuple

import structlog

from ..core.exceptions import DocumentLifecycleError
from ..models.document import CorpusRef, DocumentInDB
from ..models.results import DeletionReport, StoreName, StoreOutcome
from .contracts import Corpus, MetadataStore, ObjectStore
from .matching import find_best_match
from .reconciliation_service import search_terms_for

logger = structlog.get_logger(__name__)


class DeletionOrchestrator:
    def __init__(self, documents: MetadataStore, storage: ObjectStore, corpus: Corpus):
        self.documents = documents
        self.storage = storage
        self.corpus = corpus

    def delete(self, identifier: str, corpus_name: Optional[str] = None) -> DeletionReport:
        log = logger.bind(identifier=identifier, corpus=corpus_name)

        record, lookup_error = self._resolve(identifier, corpus_name)
        if record is not None:
            corpus_name = record.corpus_name
            log = log.bind(file_id=record.file_id, corpus=corpus_name)
        log.info("delete.resolved", found=record is not None)

        report = DeletionReport(file_identifier=identifier, corpus_name=corpus_name)
        report.outcomes.append(self._delete_from_corpus(identifier, record, corpus_name))
        report.outcomes.append(self._delete_blob(record, lookup_error))
        report.outcomes.append(self._delete_record(record, lookup_error))

        log.info("delete.finished", status=report.status.value, errors=report.errors)
        return report

    def _resolve(self, identifier: str, corpus_name: Optional[str]) -> Tuple[Optional[DocumentInDB], Optional[str]]:
        """Exact fileId first, then externalFileId or displayName within the corpus."""
        try:
            record = self.documents.find_by_file_id(identifier)
            if record is not None:
                return record, None
            if not corpus_name:
                return None, None
            for candidate in self.documents.get_by_corpus(corpus_name):
                if identifier in (candidate.external_file_id, candidate.display_name):
                    return candidate, None
        except DocumentLifecycleError as e:
            logger.error("delete.lookup_failed", identifier=identifier, error=str(e))
            return None, f"Database lookup error: {e}"
        return None, None

    def _delete_from_corpus(
        self, identifier: str, record: Optional[DocumentInDB], corpus_name: Optional[str]
    ) -> StoreOutcome:
        if not corpus_name:
            return StoreOutcome.failed(StoreName.CORPUS, "Corpus name unknown; cannot delete from corpus")
        try:
            corpus_ref = self.corpus.find_corpus(corpus_name)
            if corpus_ref is None:
                return StoreOutcome.failed(StoreName.CORPUS, f"Corpus '{corpus_name}' not found")

            target = self._corpus_target(identifier, record, corpus_name, corpus_ref)
            if target is None:
                return StoreOutcome.failed(StoreName.CORPUS, f"File '{identifier}' not found in corpus")

            self.corpus.delete_file(corpus_ref, target)
            return StoreOutcome.ok(StoreName.CORPUS)
        except DocumentLifecycleError as e:
            logger.error("delete.corpus_failed", identifier=identifier, error=str(e))
            return StoreOutcome.failed(StoreName.CORPUS, f"Corpus deletion error: {e}")

    def _corpus_target(
        self, identifier: str, record: Optional[DocumentInDB], corpus_name: str, corpus_ref: CorpusRef
    ) -> Optional[str]:
        if record is not None and record.external_file_id:
            return record.external_file_id
        # Ids owned by other records are never candidates, even for a same-named retry.
        claimed = self._claimed_ids(corpus_name, record)
        # Corpus file ids are numeric; such an identifier can be used directly.
        if identifier.isdigit():
            return identifier if identifier not in claimed else None
        search_terms = [identifier]
        if record is not None:
            search_terms.extend(t for t in search_terms_for(record) if t != identifier)
        match = find_best_match(search_terms, self.corpus.list_files(corpus_ref), exclude_ids=claimed)
        return match.id if match else None

    def _claimed_ids(self, corpus_name: str, record: Optional[DocumentInDB]) -> Set[str]:
        return {
            doc.external_file_id
            for doc in self.documents.get_by_corpus(corpus_name)
            if doc.external_file_id and (record is None or doc.file_id != record.file_id)
        }

    def _delete_blob(self, record: Optional[DocumentInDB], lookup_error: Optional[str]) -> StoreOutcome:
        if record is None:
            return StoreOutcome.failed(StoreName.BLOB, lookup_error or "Document record not found; blob location unknown")
        if not record.object_key:
            return StoreOutcome.failed(StoreName.BLOB, "Document has no object key")
        try:
            if not self.storage.exists(record.object_key):
                return StoreOutcome.failed(StoreName.BLOB, f"Blob '{record.object_key}' not found")
            self.storage.delete(record.object_key)
            return StoreOutcome.ok(StoreName.BLOB)
        except DocumentLifecycleError as e:
            logger.error("delete.blob_failed", object_key=record.object_key, error=str(e))
            return StoreOutcome.failed(StoreName.BLOB, f"Blob deletion error: {e}")

    def _delete_record(self, record: Optional[DocumentInDB], lookup_error: Optional[str]) -> StoreOutcome:
        if record is None:
            return StoreOutcome.failed(StoreName.DATABASE, lookup_error or "Document record not found")
        try:
            if self.documents.delete(record.file_id):
                return StoreOutcome.ok(StoreName.DATABASE)
            return StoreOutcome.failed(StoreName.DATABASE, f"Document '{record.file_id}' was already deleted")
        except DocumentLifecycleError as e:
            logger.error("delete.record_failed", file_id=record.file_id, error=str(e))
            return StoreOutcome.failed(StoreName.DATABASE, f"Database deletion error: {e}")
