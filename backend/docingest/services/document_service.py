import logging
import re
import threading
import uuid
from typing import Callable

from langsmith import traceable
from supabase import create_client

from docingest.config import settings
from docingest.models.documents import (
    DocumentStatus,
    FileType,
    IngestResult,
    StorageUsage,
)
from docingest.services.chunker import split_text_into_chunks
from docingest.services.compensation import CompensationLog
from docingest.services.errors import (
    BlobStoreError,
    ChunkPersistenceError,
    DocumentStoreError,
    DuplicateDocumentError,
    ExtractionError,
)
from docingest.services.extractors import extract_text
from docingest.services.sanitizer import sanitize_text
from docingest.services.storage import (
    BlobStore,
    DocumentStore,
    SupabaseBlobStore,
    SupabaseDocumentStore,
)
from docingest.services.summarizer import summarize_document

logger = logging.getLogger(__name__)

ACCEPTED_MIME_TYPES = {
    "application/pdf": FileType.PDF,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": FileType.DOCX,
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": FileType.PPTX,
}

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]")

Scheduler = Callable[..., None]


def resolve_file_type(file_name: str, mime_type: str | None) -> FileType | None:
    """Resolve the format from the declared MIME type, then the file extension."""
    if mime_type in ACCEPTED_MIME_TYPES:
        return ACCEPTED_MIME_TYPES[mime_type]
    extension = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""
    try:
        return FileType(extension)
    except ValueError:
        return None


def build_storage_path(user_id: str, file_name: str) -> str:
    safe_name = _UNSAFE_FILENAME_CHARS.sub("_", file_name)
    return f"{user_id}/{uuid.uuid4()}_{safe_name}"


def _rejected(message: str, error_code: str) -> IngestResult:
    return IngestResult(success=False, message=message, error_code=error_code)


def _duplicate_message(file_name: str) -> str:
    return (
        f'A file named "{file_name}" has already been uploaded. '
        "Please rename the file or delete the existing one first."
    )


class DocumentIngestor:
    """Accepts uploads and turns them into persisted chunks and a summary."""

    def __init__(
        self,
        documents: DocumentStore,
        blobs: BlobStore,
        summarizer: Callable[[list[str]], str | None] = summarize_document,
    ):
        self._documents = documents
        self._blobs = blobs
        self._summarizer = summarizer

    @property
    def documents(self) -> DocumentStore:
        return self._documents

    def ingest(
        self,
        content: bytes | None,
        file_name: str,
        mime_type: str | None,
        user_id: str,
        schedule: Scheduler | None = None,
    ) -> IngestResult:
        """Validate and store an upload, then hand it to the processing pipeline.

        ``schedule`` receives ``process_document`` and its arguments; without
        one the pipeline runs inline. Processing failures are recorded on the
        document, never returned here.
        """
        if not content or not file_name:
            return _rejected("No file was provided.", "invalid_file")

        file_type = resolve_file_type(file_name, mime_type)
        if file_type is None:
            return _rejected(
                "Only PDF, Word (.docx), and PowerPoint (.pptx) files are supported.",
                "invalid_file",
            )

        if len(content) > settings.max_upload_mb * 1024 * 1024:
            return _rejected(
                f"File is too large. Maximum size is {settings.max_upload_mb} MB.",
                "too_large",
            )

        try:
            existing = self._documents.find_by_file_name(user_id, file_name)
        except DocumentStoreError as e:
            return _rejected(f"Database error: {e}", "database_error")
        if existing:
            return _rejected(_duplicate_message(file_name), "duplicate")

        storage_path = build_storage_path(user_id, file_name)
        content_type = mime_type or "application/octet-stream"
        compensation = CompensationLog()

        compensation.record(
            f"remove blob {storage_path}", lambda: self._blobs.delete(storage_path)
        )
        try:
            self._blobs.put(storage_path, content, content_type)
        except BlobStoreError as e:
            logger.error(f"Blob upload failed for {file_name}: {e}")
            return _rejected(str(e), "storage_error")

        try:
            doc = self._documents.create_document(
                {
                    "user_id": user_id,
                    "file_name": file_name,
                    "file_url": self._blobs.public_url(storage_path),
                    "file_size": len(content),
                    "file_type": content_type,
                    "file_path": storage_path,
                    "status": DocumentStatus.QUEUED.value,
                }
            )
        except DuplicateDocumentError:
            compensation.rollback()
            return _rejected(_duplicate_message(file_name), "duplicate")
        except DocumentStoreError as e:
            compensation.rollback()
            return _rejected(f"Database error: {e}", "database_error")
        except BlobStoreError as e:
            compensation.rollback()
            return _rejected(str(e), "storage_error")
        except Exception as e:
            logger.error(f"Unexpected error recording {file_name}: {e}")
            compensation.rollback()
            return _rejected(f"Database error: {e}", "database_error")
        compensation.commit()

        document_id = doc["id"]
        logger.info(f"Document {document_id} queued: {file_name} ({file_type.value})")

        args = (document_id, user_id, storage_path, file_name, file_type)
        if schedule is not None:
            schedule(self.process_document, *args)
            message = f'"{file_name}" ({file_type.label}) uploaded and queued for processing.'
        else:
            self.process_document(*args)
            message = f'"{file_name}" ({file_type.label}) uploaded and processed!'

        return IngestResult(success=True, message=message, document_id=document_id)

    @traceable(name="process_document")
    def process_document(
        self,
        document_id: str,
        user_id: str,
        file_path: str,
        file_name: str,
        file_type: FileType,
    ) -> None:
        """Run extraction through completion; any failure marks the document failed."""
        try:
            self._run_pipeline(document_id, user_id, file_path, file_name, file_type)
        except Exception as e:
            logger.error(f"Error processing document {document_id}: {e}")
            try:
                self._documents.update_document(
                    document_id,
                    {
                        "status": DocumentStatus.FAILED.value,
                        "status_message": str(e) or "Processing failed",
                    },
                )
            except Exception as update_error:
                logger.error(
                    f"Could not mark document {document_id} failed: {update_error}"
                )

    def _run_pipeline(
        self,
        document_id: str,
        user_id: str,
        file_path: str,
        file_name: str,
        file_type: FileType,
    ) -> None:
        self._documents.update_document(
            document_id, {"status": DocumentStatus.PROCESSING.value}
        )

        file_bytes = self._blobs.get(file_path)

        text = sanitize_text(extract_text(file_bytes, file_type, file_name))
        if not text:
            raise ExtractionError(
                f'Could not extract text from "{file_name}". '
                f"The {file_type.label} may be empty or corrupted."
            )

        chunks = split_text_into_chunks(text)
        rows = [
            {
                "document_id": document_id,
                "user_id": user_id,
                "chunk_index": idx,
                "content": chunk,
            }
            for idx, chunk in enumerate(chunks)
        ]

        # Batches bound the request payload; they are not one transaction.
        batch_size = settings.chunk_batch_size
        for i in range(0, len(rows), batch_size):
            try:
                self._documents.insert_chunks(rows[i : i + batch_size])
            except DocumentStoreError as e:
                raise ChunkPersistenceError(f"Failed to save chunks: {e}") from e

        fields = {
            "status": DocumentStatus.COMPLETED.value,
            "status_message": None,
            "chunk_count": len(chunks),
        }
        try:
            summary = self._summarizer(chunks)
        except Exception as e:
            logger.warning(f"Summary generation failed for {document_id}: {e}")
            summary = None
        if summary:
            fields["summary"] = summary
        self._documents.update_document(document_id, fields)

        logger.info(f"Document {document_id} processed: {len(chunks)} chunks created")

    def delete_document(self, document_id: str, user_id: str) -> bool:
        """Remove the document row, then its blob; chunks cascade with the row.

        Returns False when the user owns no such document.
        """
        doc = self._documents.get_document(document_id, user_id)
        if not doc:
            return False
        self._documents.delete_document(document_id)
        self._remove_blob(doc["file_path"])
        logger.info(f"Document {document_id} deleted")
        return True

    def delete_all_documents(self, user_id: str) -> int:
        docs = self._documents.list_documents(user_id)
        for doc in docs:
            self._documents.delete_document(doc["id"])
            self._remove_blob(doc["file_path"])
        logger.info(f"Deleted {len(docs)} documents for user {user_id}")
        return len(docs)

    def _remove_blob(self, path: str) -> None:
        # Runs after the row delete; a blob left behind is logged, not raised.
        try:
            self._blobs.delete(path)
        except BlobStoreError as e:
            logger.warning(f"Could not remove stored file {path}: {e}")

    def get_storage_usage(self, user_id: str) -> StorageUsage:
        docs = self._documents.list_documents(user_id)
        return StorageUsage(
            used_bytes=sum(doc.get("file_size") or 0 for doc in docs),
            total_bytes=settings.storage_quota_mb * 1024 * 1024,
        )


_ingestor: DocumentIngestor | None = None
_ingestor_lock = threading.Lock()


def get_ingestor() -> DocumentIngestor:
    """Supabase-backed ingestor using the service role key (bypasses RLS)."""
    global _ingestor
    if _ingestor is None:
        with _ingestor_lock:
            if _ingestor is None:
                client = create_client(
                    settings.supabase_url, settings.supabase_service_role_key
                )
                _ingestor = DocumentIngestor(
                    SupabaseDocumentStore(client),
                    SupabaseBlobStore(client, settings.storage_bucket),
                )
    return _ingestor
