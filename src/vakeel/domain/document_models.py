from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field, field_validator

from .chat_models import ApiModel, DEFAULT_LANGUAGE, Language, coerce_identifier


DocumentStatus = Literal["draft", "completed"]

# Template field values are JSON scalars; they are rendered as text
FieldValue = Union[str, int, float, bool]


class Document(BaseModel):
    id: str
    user_id: str
    title: str
    type: str
    content: str
    language: str
    status: DocumentStatus = "draft"
    created_at: str
    updated_at: str


class DocumentDraftRequest(ApiModel):
    user_id: Optional[str] = Field(default=None, alias="userId")
    title: Optional[str] = None
    type: Optional[str] = None
    description: Optional[str] = None
    language: Language = DEFAULT_LANGUAGE
    custom_fields: Dict[str, FieldValue] = Field(default_factory=dict, alias="customFields")

    ids_as_text = field_validator("user_id", mode="before")(coerce_identifier)


class DocumentDraftResponse(ApiModel):
    success: bool = True
    document_id: str = Field(alias="documentId")
    content: str
    message: str = "Document drafted successfully"


class DocumentPatch(BaseModel):
    """Partial update. A field is present when supplied with a non-null value."""

    title: Optional[str] = None
    content: Optional[str] = None
    status: Optional[DocumentStatus] = None
    type: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if getattr(self, name) is not None
        }

    def is_empty(self) -> bool:
        return not self.changes()


class DocumentFilters(BaseModel):
    type: Optional[str] = None
    status: Optional[DocumentStatus] = None


class DocumentListResponse(ApiModel):
    success: bool = True
    documents: List[Document]
    total: int


class DocumentResponse(ApiModel):
    success: bool = True
    document: Document


class DocumentReviewRequest(ApiModel):
    language: Language = DEFAULT_LANGUAGE


class DocumentReviewResponse(ApiModel):
    success: bool = True
    review: str
    document_id: str = Field(alias="documentId")
    reviewed_at: str = Field(alias="reviewedAt")


class DocumentTypeInfo(BaseModel):
    id: str
    name: str
    category: str


class DocumentTypesResponse(ApiModel):
    success: bool = True
    document_types: List[DocumentTypeInfo] = Field(alias="documentTypes")


class ActivityEntry(BaseModel):
    type: Literal["chat", "document"]
    date: str


class UserStats(ApiModel):
    total_chats: int = Field(alias="totalChats")
    total_documents: int = Field(alias="totalDocuments")
    total_sessions: int = Field(alias="totalSessions")
    recent_activity: List[ActivityEntry] = Field(default_factory=list, alias="recentActivity")


class UserStatsResponse(ApiModel):
    success: bool = True
    stats: UserStats
