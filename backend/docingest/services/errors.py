class IngestionError(Exception):
    """Base class for errors raised while accepting or processing an upload."""


class BlobStoreError(IngestionError):
    pass


class DocumentStoreError(IngestionError):
    pass


class DuplicateDocumentError(DocumentStoreError):
    """A document with the same file name already exists for this user."""


class ExtractionError(IngestionError):
    pass


class ChunkPersistenceError(IngestionError):
    pass
