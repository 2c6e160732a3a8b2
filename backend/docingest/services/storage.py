"""Narrow interfaces over the blob store and the document store.

The orchestrator only talks to :class:`BlobStore` and :class:`DocumentStore`;
the Supabase-backed implementations translate library exceptions into the
ingestion error hierarchy so callers never see postgrest or storage3 types.
"""

from abc import ABC, abstractmethod

import httpx
from postgrest.exceptions import APIError as PostgrestAPIError

from docingest.services.errors import (
    BlobStoreError,
    DocumentStoreError,
    DuplicateDocumentError,
)

UNIQUE_VIOLATION = "23505"

# postgrest raises APIError for rejected queries; transport failures surface as httpx errors.
DATABASE_ERRORS = (PostgrestAPIError, httpx.HTTPError)


def _describe(error: Exception) -> str:
    if isinstance(error, PostgrestAPIError) and error.message:
        return error.message
    return str(error) or type(error).__name__


class BlobStore(ABC):
    @abstractmethod
    def put(self, path: str, data: bytes, content_type: str) -> None: ...

    @abstractmethod
    def get(self, path: str) -> bytes: ...

    @abstractmethod
    def delete(self, path: str) -> None: ...

    @abstractmethod
    def public_url(self, path: str) -> str: ...


class DocumentStore(ABC):
    @abstractmethod
    def find_by_file_name(self, user_id: str, file_name: str) -> dict | None: ...

    @abstractmethod
    def create_document(self, row: dict) -> dict:
        """Insert a document row and return it with its generated id.

        Raises :class:`DuplicateDocumentError` when (user_id, file_name) is taken.
        """

    @abstractmethod
    def update_document(self, document_id: str, fields: dict) -> None: ...

    @abstractmethod
    def get_document(self, document_id: str, user_id: str) -> dict | None: ...

    @abstractmethod
    def list_documents(self, user_id: str) -> list[dict]: ...

    @abstractmethod
    def delete_document(self, document_id: str) -> None:
        """Delete a document row; its chunks go with it."""

    @abstractmethod
    def insert_chunks(self, rows: list[dict]) -> None: ...


class SupabaseBlobStore(BlobStore):
    def __init__(self, client, bucket: str):
        self._client = client
        self._bucket_name = bucket

    def _bucket(self):
        return self._client.storage.from_(self._bucket_name)

    def put(self, path: str, data: bytes, content_type: str) -> None:
        try:
            self._bucket().upload(
                path, data, {"content-type": content_type, "upsert": "false"}
            )
        except Exception as e:
            raise BlobStoreError(f"Upload failed: {e}") from e

    def get(self, path: str) -> bytes:
        try:
            data = self._bucket().download(path)
        except Exception as e:
            raise BlobStoreError(f"Failed to download file: {e}") from e
        if not data:
            raise BlobStoreError("Failed to download file: No data")
        return data

    def delete(self, path: str) -> None:
        try:
            self._bucket().remove([path])
        except Exception as e:
            raise BlobStoreError(f"Failed to delete file: {e}") from e

    def public_url(self, path: str) -> str:
        try:
            return self._bucket().get_public_url(path)
        except Exception as e:
            raise BlobStoreError(f"Could not resolve file URL: {e}") from e


class SupabaseDocumentStore(DocumentStore):
    def __init__(self, client):
        self._client = client

    def find_by_file_name(self, user_id: str, file_name: str) -> dict | None:
        try:
            result = (
                self._client.table("documents")
                .select("id, file_name")
                .eq("user_id", user_id)
                .eq("file_name", file_name)
                .limit(1)
                .execute()
            )
        except DATABASE_ERRORS as e:
            raise DocumentStoreError(_describe(e)) from e
        return result.data[0] if result.data else None

    def create_document(self, row: dict) -> dict:
        try:
            result = self._client.table("documents").insert(row).execute()
        except PostgrestAPIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise DuplicateDocumentError(_describe(e)) from e
            raise DocumentStoreError(_describe(e)) from e
        except httpx.HTTPError as e:
            raise DocumentStoreError(_describe(e)) from e
        if not result.data:
            raise DocumentStoreError("Insert returned no document row")
        return result.data[0]

    def update_document(self, document_id: str, fields: dict) -> None:
        try:
            self._client.table("documents").update(fields).eq(
                "id", document_id
            ).execute()
        except DATABASE_ERRORS as e:
            raise DocumentStoreError(_describe(e)) from e

    def get_document(self, document_id: str, user_id: str) -> dict | None:
        try:
            result = (
                self._client.table("documents")
                .select("*")
                .eq("id", document_id)
                .eq("user_id", user_id)
                .limit(1)
                .execute()
            )
        except DATABASE_ERRORS as e:
            raise DocumentStoreError(_describe(e)) from e
        return result.data[0] if result.data else None

    def list_documents(self, user_id: str) -> list[dict]:
        try:
            result = (
                self._client.table("documents")
                .select("*")
                .eq("user_id", user_id)
                .order("created_at", desc=True)
                .execute()
            )
        except DATABASE_ERRORS as e:
            raise DocumentStoreError(_describe(e)) from e
        return result.data or []

    def delete_document(self, document_id: str) -> None:
        try:
            self._client.table("documents").delete().eq("id", document_id).execute()
        except DATABASE_ERRORS as e:
            raise DocumentStoreError(_describe(e)) from e

    def insert_chunks(self, rows: list[dict]) -> None:
        try:
            self._client.table("document_chunks").insert(rows).execute()
        except DATABASE_ERRORS as e:
            raise DocumentStoreError(_describe(e)) from e
