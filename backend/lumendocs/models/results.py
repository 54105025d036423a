# FILE: backend/lumendocs/models/results.py
# Structured outcomes for the multi-store operations.

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class StoreName(str, Enum):
    CORPUS = "corpus"
    BLOB = "blob"
    DATABASE = "database"


class DeletionStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    ERROR = "error"


@dataclass(frozen=True)
class StoreOutcome:
    store: StoreName
    deleted: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls, store: StoreName) -> "StoreOutcome":
        return cls(store=store, deleted=True)

    @classmethod
    def failed(cls, store: StoreName, error: str) -> "StoreOutcome":
        return cls(store=store, deleted=False, error=error)


@dataclass
class DeletionReport:
    file_identifier: str
    corpus_name: Optional[str]
    outcomes: List[StoreOutcome] = field(default_factory=list)

    def deleted(self, store: StoreName) -> bool:
        return any(o.deleted for o in self.outcomes if o.store == store)

    @property
    def errors(self) -> List[str]:
        return [o.error for o in self.outcomes if o.error]

    @property
    def status(self) -> DeletionStatus:
        succeeded = sum(1 for o in self.outcomes if o.deleted)
        if succeeded == len(StoreName):
            return DeletionStatus.SUCCESS
        if succeeded == 0:
            return DeletionStatus.ERROR
        return DeletionStatus.PARTIAL_SUCCESS

    @property
    def message(self) -> str:
        if self.status is DeletionStatus.SUCCESS:
            return f"Successfully deleted document '{self.file_identifier}' from all locations"
        if self.status is DeletionStatus.ERROR:
            return f"Failed to delete document '{self.file_identifier}' from all locations"
        return f"Document '{self.file_identifier}' deletion completed with some issues"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "message": self.message,
            "fileIdentifier": self.file_identifier,
            "corpusName": self.corpus_name,
            "deletionResults": {
                "corpusDeleted": self.deleted(StoreName.CORPUS),
                "blobDeleted": self.deleted(StoreName.BLOB),
                "databaseDeleted": self.deleted(StoreName.DATABASE),
                "errors": self.errors,
            },
        }


@dataclass(frozen=True)
class SyncReport:
    corpus_name: str
    documents_in_db: int
    files_in_corpus: int
    already_matched: int
    newly_updated: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": "success",
            "corpusName": self.corpus_name,
            "documentsInDB": self.documents_in_db,
            "filesInCorpus": self.files_in_corpus,
            "alreadyMatched": self.already_matched,
            "newlyUpdated": self.newly_updated,
            "message": f"Sync completed: {self.newly_updated} documents updated with corpus file IDs",
        }
