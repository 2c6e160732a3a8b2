from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class DocumentStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class FileType(str, Enum):
    PDF = "pdf"
    DOCX = "docx"
    PPTX = "pptx"

    @property
    def label(self) -> str:
        return {
            FileType.PDF: "PDF",
            FileType.DOCX: "Word document",
            FileType.PPTX: "PowerPoint",
        }[self]


class DocumentResponse(BaseModel):
    id: str
    user_id: str
    file_name: str
    file_path: str
    file_url: str | None = None
    file_size: int
    file_type: str
    status: DocumentStatus
    status_message: str | None = None
    summary: str | None = None
    chunk_count: int = 0
    created_at: datetime


class IngestResult(BaseModel):
    """Outcome of an upload: accepted (with the new document id) or rejected."""

    success: bool
    message: str
    document_id: str | None = None
    error_code: str | None = None


class StorageUsage(BaseModel):
    used_bytes: int
    total_bytes: int
