from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, UploadFile

from docingest.auth import get_current_user_id
from docingest.models.documents import DocumentResponse, IngestResult, StorageUsage
from docingest.services.document_service import DocumentIngestor, get_ingestor
from docingest.services.errors import IngestionError

router = APIRouter(tags=["documents"])

ERROR_STATUS_CODES = {
    "invalid_file": 400,
    "too_large": 413,
    "duplicate": 409,
    "storage_error": 502,
    "database_error": 500,
}


@router.post("/documents", response_model=IngestResult, status_code=202)
async def upload_document(
    file: UploadFile,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(get_current_user_id),
    ingestor: DocumentIngestor = Depends(get_ingestor),
):
    content = await file.read()
    result = ingestor.ingest(
        content,
        file.filename or "",
        file.content_type,
        user_id,
        schedule=background_tasks.add_task,
    )
    if not result.success:
        raise HTTPException(
            status_code=ERROR_STATUS_CODES.get(result.error_code, 400),
            detail=result.message,
        )
    return result


@router.get("/documents", response_model=list[DocumentResponse])
async def list_documents(
    user_id: str = Depends(get_current_user_id),
    ingestor: DocumentIngestor = Depends(get_ingestor),
):
    return ingestor.documents.list_documents(user_id)


@router.get("/documents/usage", response_model=StorageUsage)
async def get_storage_usage(
    user_id: str = Depends(get_current_user_id),
    ingestor: DocumentIngestor = Depends(get_ingestor),
):
    return ingestor.get_storage_usage(user_id)


@router.get("/documents/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: str,
    user_id: str = Depends(get_current_user_id),
    ingestor: DocumentIngestor = Depends(get_ingestor),
):
    doc = ingestor.documents.get_document(document_id, user_id)
    if not doc:
        raise HTTPException(status_code=404, detail="Document not found")
    return doc


@router.delete("/documents/{document_id}", status_code=204)
async def delete_document(
    document_id: str,
    user_id: str = Depends(get_current_user_id),
    ingestor: DocumentIngestor = Depends(get_ingestor),
):
    try:
        deleted = ingestor.delete_document(document_id, user_id)
    except IngestionError as e:
        raise HTTPException(status_code=500, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Document not found")


@router.delete("/documents")
async def delete_all_documents(
    user_id: str = Depends(get_current_user_id),
    ingestor: DocumentIngestor = Depends(get_ingestor),
):
    try:
        deleted = ingestor.delete_all_documents(user_id)
    except IngestionError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"deleted": deleted}
