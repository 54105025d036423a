# FILE: backend/lumendocs/core/exceptions.py
# Error taxonomy shared by services, tasks and the HTTP layer.
# main.py maps these onto status codes; tasks turn them into record fields.

from typing import Optional


class DocumentLifecycleError(Exception):
    """Base class for every error raised by the document lifecycle engine."""


class ValidationError(DocumentLifecycleError):
    """Bad input caught before any store is touched."""


class DocumentNotFoundError(DocumentLifecycleError):
    def __init__(self, file_id: str):
        super().__init__(f"Document with fileId '{file_id}' not found.")
        self.file_id = file_id


class CorpusNotFoundError(DocumentLifecycleError):
    def __init__(self, corpus_name: str):
        super().__init__(f"Corpus '{corpus_name}' not found.")
        self.corpus_name = corpus_name


class ImmutableFieldError(DocumentLifecycleError):
    def __init__(self, field: str):
        super().__init__(f"Cannot update immutable field: {field}")
        self.field = field


class ExternalServiceError(DocumentLifecycleError):
    """A call to one of the backing stores failed (network, auth, 5xx)."""

    store: str = "external"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class StorageError(ExternalServiceError):
    store = "object_store"


class CorpusError(ExternalServiceError):
    store = "corpus"


class ImportOperationError(CorpusError):
    """The corpus reported the import operation itself as failed."""


class MetadataStoreError(ExternalServiceError):
    store = "metadata_store"


class IngestionError(DocumentLifecycleError):
    """Upload could not be handed off; the record (if any) is already marked failed."""


class ResolutionTimeout(DocumentLifecycleError):
    """No corpus listing entry matched before the resolution deadline."""


class ResolutionCancelled(DocumentLifecycleError):
    """The worker is shutting down while a resolution was in flight."""


class UnknownTaskPayloadError(DocumentLifecycleError):
    """A task payload did not decode into any known task kind."""
