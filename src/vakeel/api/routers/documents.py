from __future__ import annotations

from typing import Optional
from fastapi import APIRouter, Depends, Query

from ...domain.chat_models import SuccessResponse
from ...domain.document_models import (
    DocumentDraftRequest,
    DocumentDraftResponse,
    DocumentFilters,
    DocumentListResponse,
    DocumentPatch,
    DocumentResponse,
    DocumentReviewRequest,
    DocumentReviewResponse,
    DocumentStatus,
    DocumentTypesResponse,
)
from ...security.auth import get_current_user
from ...services.orchestrator import DocumentService
from ..dependencies import get_document_service


router = APIRouter(prefix="/documents", tags=["documents"], dependencies=[Depends(get_current_user)])


@router.get("/types/available", response_model=DocumentTypesResponse)
def available_types(docs: DocumentService = Depends(get_document_service)) -> DocumentTypesResponse:
    return DocumentTypesResponse(document_types=docs.document_types())


@router.get("/user/{user_id}", response_model=DocumentListResponse)
def list_documents(
    user_id: str,
    type: Optional[str] = Query(None),
    status: Optional[DocumentStatus] = Query(None),
    limit: int = Query(20, ge=0, le=200),
    offset: int = Query(0, ge=0),
    docs: DocumentService = Depends(get_document_service),
) -> DocumentListResponse:
    items, total = docs.list_documents(
        user_id,
        DocumentFilters(type=type, status=status),
        limit=limit,
        offset=offset,
    )
    return DocumentListResponse(documents=items, total=total)


@router.post("/draft", response_model=DocumentDraftResponse)
def draft_document(
    req: DocumentDraftRequest,
    docs: DocumentService = Depends(get_document_service),
) -> DocumentDraftResponse:
    doc = docs.draft(req)
    return DocumentDraftResponse(document_id=doc.id, content=doc.content)


@router.get("/{document_id}", response_model=DocumentResponse)
def get_document(
    document_id: str,
    docs: DocumentService = Depends(get_document_service),
) -> DocumentResponse:
    return DocumentResponse(document=docs.get(document_id))


@router.put("/{document_id}", response_model=SuccessResponse)
def update_document(
    document_id: str,
    patch: DocumentPatch,
    docs: DocumentService = Depends(get_document_service),
) -> SuccessResponse:
    docs.update(document_id, patch)
    return SuccessResponse(message="Document updated successfully")


@router.post("/{document_id}/complete", response_model=DocumentResponse)
def complete_document(
    document_id: str,
    docs: DocumentService = Depends(get_document_service),
) -> DocumentResponse:
    return DocumentResponse(document=docs.mark_complete(document_id))


@router.post("/{document_id}/review", response_model=DocumentReviewResponse)
def review_document(
    document_id: str,
    req: Optional[DocumentReviewRequest] = None,
    docs: DocumentService = Depends(get_document_service),
) -> DocumentReviewResponse:
    language = req.language if req else "en"
    review, reviewed_at = docs.review(document_id, language=language)
    return DocumentReviewResponse(review=review, document_id=document_id, reviewed_at=reviewed_at)


@router.delete("/{document_id}", response_model=SuccessResponse)
def delete_document(
    document_id: str,
    docs: DocumentService = Depends(get_document_service),
) -> SuccessResponse:
    docs.delete(document_id)
    return SuccessResponse(message="Document deleted successfully")
