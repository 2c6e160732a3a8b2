"""Shared pytest fixtures: in-memory stores and small document builders."""

import io
import os
import uuid
import zipfile
from datetime import datetime, timezone

# Settings are read at import time, so the environment has to be in place
# before any docingest module is imported.
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")
os.environ["OPENROUTER_API_KEY"] = ""
os.environ["LANGSMITH_TRACING"] = "false"

import pytest  # noqa: E402

from docingest.services.document_service import DocumentIngestor  # noqa: E402
from docingest.services.errors import (  # noqa: E402
    BlobStoreError,
    DocumentStoreError,
    DuplicateDocumentError,
)
from docingest.services.storage import BlobStore, DocumentStore  # noqa: E402

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
PPTX_MIME = "application/vnd.openxmlformats-officedocument.presentationml.presentation"


class FakeBlobStore(BlobStore):
    def __init__(self):
        self.blobs: dict[str, tuple[bytes, str]] = {}
        self.fail_put = False

    def put(self, path, data, content_type):
        if self.fail_put:
            raise BlobStoreError("Upload failed: bucket unavailable")
        self.blobs[path] = (data, content_type)

    def get(self, path):
        if path not in self.blobs:
            raise BlobStoreError("Failed to download file: not found")
        return self.blobs[path][0]

    def delete(self, path):
        self.blobs.pop(path, None)

    def public_url(self, path):
        return f"https://storage.test/user_uploads/{path}"


class FakeDocumentStore(DocumentStore):
    """Dict-backed store enforcing (user_id, file_name) uniqueness like the schema."""

    def __init__(self):
        self.documents: dict[str, dict] = {}
        self.chunks: list[dict] = []
        self.chunk_batches: list[list[dict]] = []
        self.status_history: dict[str, list[str]] = {}
        self.create_error: Exception | None = None
        self.fail_on_batch: int | None = None
        self.skip_name_lookup = False

    def find_by_file_name(self, user_id, file_name):
        if self.skip_name_lookup:
            return None
        for doc in self.documents.values():
            if doc["user_id"] == user_id and doc["file_name"] == file_name:
                return doc
        return None

    def create_document(self, row):
        if self.create_error is not None:
            raise self.create_error
        for doc in self.documents.values():
            if doc["user_id"] == row["user_id"] and doc["file_name"] == row["file_name"]:
                raise DuplicateDocumentError("duplicate key value violates unique constraint")
        doc = {
            "id": str(uuid.uuid4()),
            "status_message": None,
            "summary": None,
            "chunk_count": 0,
            "created_at": datetime.now(timezone.utc),
            **row,
        }
        self.documents[doc["id"]] = doc
        self.status_history[doc["id"]] = [doc["status"]]
        return doc

    def update_document(self, document_id, fields):
        self.documents[document_id].update(fields)
        if "status" in fields:
            self.status_history[document_id].append(fields["status"])

    def get_document(self, document_id, user_id):
        doc = self.documents.get(document_id)
        if doc and doc["user_id"] == user_id:
            return doc
        return None

    def list_documents(self, user_id):
        docs = [d for d in self.documents.values() if d["user_id"] == user_id]
        return sorted(docs, key=lambda d: d["created_at"], reverse=True)

    def delete_document(self, document_id):
        self.documents.pop(document_id, None)
        self.chunks = [c for c in self.chunks if c["document_id"] != document_id]

    def insert_chunks(self, rows):
        if self.fail_on_batch == len(self.chunk_batches):
            raise DocumentStoreError("payload too large")
        self.chunk_batches.append(rows)
        self.chunks.extend(rows)

    def chunks_for(self, document_id):
        return [c for c in self.chunks if c["document_id"] == document_id]


def build_pdf(lines: list[str]) -> bytes:
    """Minimal single-page PDF with a Helvetica text layer."""
    ops = ["BT", "/F1 12 Tf", "14 TL", "72 720 Td"]
    for line in lines:
        escaped = line.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
        ops.append(f"({escaped}) Tj T*")
    ops.append("ET")
    stream = "\n".join(ops).encode("latin-1")

    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Resources << /Font << /F1 5 0 R >> >> /Contents 4 0 R >>",
        b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref_offset = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (
        len(objects) + 1,
        xref_offset,
    )
    return bytes(out)


def build_pptx(slides: dict[int, str], extra_entries: dict[str, str] | None = None) -> bytes:
    """Zip archive shaped like a slide deck; ``slides`` maps slide number to text."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("[Content_Types].xml", "<Types/>")
        for name, body in (extra_entries or {}).items():
            archive.writestr(name, body)
        for number, text in slides.items():
            archive.writestr(
                f"ppt/slides/slide{number}.xml",
                '<p:sld xmlns:a="a" xmlns:p="p"><p:cSld><p:spTree><p:sp><p:txBody>'
                f'<a:p><a:r><a:rPr lang="en-US"/><a:t>{text}</a:t></a:r></a:p>'
                "</p:txBody></p:sp></p:spTree></p:cSld></p:sld>",
            )
    return buffer.getvalue()


REPORT_LINES = [
    f"Line {i:02d} of the quarterly report covers revenue and costs."
    for i in range(14)
]


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def document_store() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture
def summarizer_calls() -> list[list[str]]:
    return []


@pytest.fixture
def ingestor(document_store, blob_store, summarizer_calls) -> DocumentIngestor:
    def summarizer(chunks):
        summarizer_calls.append(chunks)
        return "The report covers revenue. It covers costs. It spans fourteen lines."

    return DocumentIngestor(document_store, blob_store, summarizer=summarizer)


@pytest.fixture
def report_pdf() -> bytes:
    return build_pdf(REPORT_LINES)
