# FILE: backend/lumendocs/services/reconciliation_service.py
# Reconciliation Engine: backfill externalFileId on records the import worker
# could not resolve, using the same name heuristic.
# 1. Assignment is global by tier: every exact match is placed before any
#    substring match, and every substring match before any stem match.
# 2. A corpus file id is claimed by at most one record.
# 3. Only externalFileId is written, guarded by externalFileId == "".

from typing import List, Set

import structlog

from ..models.document import DocumentInDB
from ..models.results import SyncReport
from .contracts import Corpus, MetadataStore
from .matching import MatchTier, candidates_at_tier, key_basename

logger = structlog.get_logger(__name__)


def search_terms_for(record: DocumentInDB) -> List[str]:
    terms = [record.display_name]
    basename = key_basename(record.object_key) if record.object_key else ""
    if basename and basename != record.display_name:
        terms.append(basename)
    return terms


class ReconciliationEngine:
    def __init__(self, documents: MetadataStore, corpus: Corpus):
        self.documents = documents
        self.corpus = corpus

    def sync(self, corpus_name: str) -> SyncReport:
        log = logger.bind(corpus=corpus_name)

        records = self.documents.get_by_corpus(corpus_name)
        corpus_ref = self.corpus.find_corpus(corpus_name)
        files = self.corpus.list_files(corpus_ref) if corpus_ref else []
        log.info("sync.loaded", records=len(records), files=len(files))

        claimed: Set[str] = {r.external_file_id for r in records if r.external_file_id}
        unmatched = [r for r in records if not r.external_file_id]
        already_matched = len(records) - len(unmatched)

        newly_updated = 0
        for tier in MatchTier:
            still_unmatched = []
            for record in unmatched:
                candidates = candidates_at_tier(search_terms_for(record), files, tier, exclude_ids=claimed)
                if not candidates:
                    still_unmatched.append(record)
                    continue

                chosen = candidates[0]
                # Claimed even if the patch loses a race: another writer filled this record.
                claimed.add(chosen.id)
                if self.documents.patch_fields(
                    record.file_id, {"externalFileId": chosen.id}, expect={"externalFileId": ""}
                ):
                    newly_updated += 1
                    log.info("sync.matched", file_id=record.file_id, external_file_id=chosen.id, tier=tier.name)
                else:
                    log.info("sync.skipped_concurrent_fill", file_id=record.file_id)
            unmatched = still_unmatched

        for record in unmatched:
            log.info("sync.no_match", file_id=record.file_id, display_name=record.display_name)

        report = SyncReport(
            corpus_name=corpus_name,
            documents_in_db=len(records),
            files_in_corpus=len(files),
            already_matched=already_matched,
            newly_updated=newly_updated,
        )
        log.info("sync.finished", newly_updated=newly_updated, already_matched=already_matched)
        return report
