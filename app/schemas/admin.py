from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class IntentCreate(BaseModel):
    name: str
    description: Optional[str] = None
    is_action: bool = False
    is_complaint_like: bool = False

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name cannot be empty")
        return value


class IntentUpdate(BaseModel):
    description: Optional[str] = None
    is_action: bool = False
    is_complaint_like: bool = False


class IntentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    is_action: bool
    is_complaint_like: bool


class TemplateCreate(BaseModel):
    intent_name: str
    sub_intent: Optional[str] = None
    display_label: Optional[str] = None
    message: str
    sort_order: int = 0


class TemplateUpdate(TemplateCreate):
    pass


class TemplateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    intent_name: str
    sub_intent: Optional[str] = None
    display_label: Optional[str] = None
    message: str
    sort_order: int
    is_active: bool


class KnowledgeCreate(BaseModel):
    category: str
    title: str
    content: str


class KnowledgeUpdate(KnowledgeCreate):
    pass


class KnowledgeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    category: str
    title: str
    content: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class FollowupUpdate(BaseModel):
    status: Optional[str] = None
    memo: Optional[str] = None


class FollowupMessage(BaseModel):
    phone_number: str
    text: str
    guest_state: Optional[str] = None
    intent: Optional[str] = None
    created_at: Optional[datetime] = None


class FollowupResponse(BaseModel):
    id: int
    status: str
    reason: str
    memo: Optional[str] = None
    message: FollowupMessage
