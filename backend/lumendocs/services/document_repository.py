# FILE: backend/lumendocs/services/document_repository.py
# Metadata store for document records (MongoDB, keyed by fileId).
# 1. All writes are $set field patches; no whole-document replacement.
# 2. `expect` adds preconditions to the filter (e.g. status == pending).
# 3. fileId, _id and createdAt are immutable.

import logging
from typing import Any, Dict, List, Mapping, Optional

from pymongo import ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..core.exceptions import DocumentNotFoundError, ImmutableFieldError, MetadataStoreError
from ..models.document import DocumentInDB, utcnow

logger = logging.getLogger(__name__)

IMMUTABLE_FIELDS = frozenset({"fileId", "_id", "createdAt"})


class DocumentRepository:
    def __init__(self, collection: Collection):
        self.collection = collection

    def ensure_indexes(self) -> None:
        self.collection.create_index([("fileId", ASCENDING)], unique=True)
        self.collection.create_index([("corpusName", ASCENDING), ("createdAt", DESCENDING)])
        self.collection.create_index([("externalFileId", ASCENDING)])

    def create(self, record: DocumentInDB) -> None:
        now = utcnow()
        record.created_at = now
        record.updated_at = now
        try:
            self.collection.insert_one(record.to_mongo())
        except DuplicateKeyError as e:
            raise MetadataStoreError(f"document with fileId '{record.file_id}' already exists", e) from e
        except PyMongoError as e:
            raise MetadataStoreError(f"failed to insert document '{record.file_id}': {e}", e) from e

    def get_by_file_id(self, file_id: str) -> DocumentInDB:
        try:
            data = self.collection.find_one({"fileId": file_id})
        except PyMongoError as e:
            raise MetadataStoreError(f"failed to retrieve document '{file_id}': {e}", e) from e
        if not data:
            raise DocumentNotFoundError(file_id)
        return DocumentInDB.model_validate(data)

    def find_by_file_id(self, file_id: str) -> Optional[DocumentInDB]:
        try:
            return self.get_by_file_id(file_id)
        except DocumentNotFoundError:
            return None

    def get_by_corpus(self, corpus_name: str) -> List[DocumentInDB]:
        try:
            cursor = self.collection.find({"corpusName": corpus_name}).sort("createdAt", ASCENDING)
            return [DocumentInDB.model_validate(doc) for doc in cursor]
        except PyMongoError as e:
            raise MetadataStoreError(f"failed to list documents for corpus '{corpus_name}': {e}", e) from e

    def patch_fields(
        self, file_id: str, fields: Mapping[str, Any], expect: Optional[Mapping[str, Any]] = None
    ) -> bool:
        """
        Sets only the given fields (plus updatedAt) on the record.
        Returns False when no record matched fileId together with `expect`.
        """
        for field in fields:
            if field in IMMUTABLE_FIELDS:
                raise ImmutableFieldError(field)

        update: Dict[str, Any] = {"$set": {**fields, "updatedAt": utcnow()}}
        query: Dict[str, Any] = {"fileId": file_id, **(expect or {})}
        try:
            result = self.collection.update_one(query, update)
        except PyMongoError as e:
            raise MetadataStoreError(f"failed to update document '{file_id}': {e}", e) from e
        return result.matched_count > 0

    def delete(self, file_id: str) -> bool:
        try:
            result = self.collection.delete_one({"fileId": file_id})
        except PyMongoError as e:
            raise MetadataStoreError(f"failed to delete document '{file_id}': {e}", e) from e
        return result.deleted_count > 0
