# FILE: backend/lumendocs/models/document.py

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
from enum import Enum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not DocumentStatus.PENDING


ALLOWED_EXTENSIONS = (".pdf", ".txt", ".docx", ".doc", ".html", ".md")


class DocumentInDB(BaseModel):
    """A document record as stored in the metadata store (camelCase on disk)."""

    file_id: str = Field(alias="fileId")
    display_name: str = Field(alias="displayName")
    object_key: str = Field(alias="objectKey")
    bucket: str = ""
    corpus_name: str = Field(alias="corpusName")
    external_file_id: str = Field(default="", alias="externalFileId")
    status: DocumentStatus = DocumentStatus.PENDING
    error_msg: Optional[str] = Field(default=None, alias="errorMsg")
    size: int = 0
    content_type: str = Field(default="application/octet-stream", alias="contentType")
    uploaded_by: str = Field(default="system", alias="uploadedBy")
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")
    updated_at: datetime = Field(default_factory=utcnow, alias="updatedAt")

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
        extra='ignore',
    )

    def to_mongo(self) -> Dict[str, Any]:
        data = self.model_dump(by_alias=True, mode="python")
        data["status"] = self.status.value
        if not self.error_msg:
            data.pop("errorMsg", None)
        return data


# --- API Schemas ---

class UploadAcceptedOut(BaseModel):
    fileId: str
    status: DocumentStatus
    message: str = "Document uploaded successfully and queued for processing"


class DocumentStatusOut(BaseModel):
    fileId: str
    status: DocumentStatus
    externalFileId: Optional[str] = None
    errorMsg: Optional[str] = None
    updatedAt: datetime


class DocumentViewOut(BaseModel):
    url: str
    expiresIn: int
    fileId: str
    displayName: str
    contentType: str
    size: int
    corpusName: str


class CorpusFile(BaseModel):
    """One entry of the corpus file listing. `id` is the short external id."""

    id: str
    name: str = ""
    display_name: str = Field(default="", alias="displayName")
    create_time: Optional[str] = Field(default=None, alias="createTime")

    model_config = ConfigDict(populate_by_name=True)


class CorpusRef(BaseModel):
    name: str
    display_name: str = Field(default="", alias="displayName")
    create_time: Optional[str] = Field(default=None, alias="createTime")
    update_time: Optional[str] = Field(default=None, alias="updateTime")

    model_config = ConfigDict(populate_by_name=True)


class CorpusDocumentOut(BaseModel):
    fileId: str
    displayName: str
    corpusName: str
    externalFileId: str
    objectKey: str
    status: DocumentStatus
    createdAt: datetime
    inDatabase: bool = True
    inCorpus: bool = False
    corpusFile: Optional[CorpusFile] = None


class CorpusDocumentsOut(BaseModel):
    corpusName: str
    documents: List[CorpusDocumentOut]
    totalDocuments: int
    databaseCount: int
    corpusCount: int


class CorpusCreateIn(BaseModel):
    corpusName: str = Field(min_length=1)
