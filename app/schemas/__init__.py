from app.schemas.admin import (
    FollowupResponse,
    FollowupUpdate,
    IntentCreate,
    IntentResponse,
    IntentUpdate,
    KnowledgeCreate,
    KnowledgeResponse,
    KnowledgeUpdate,
    TemplateCreate,
    TemplateResponse,
    TemplateUpdate,
)
from app.schemas.webhook import SmsWebhookResponse

__all__ = [
    "SmsWebhookResponse",
    "IntentCreate",
    "IntentUpdate",
    "IntentResponse",
    "TemplateCreate",
    "TemplateUpdate",
    "TemplateResponse",
    "KnowledgeCreate",
    "KnowledgeUpdate",
    "KnowledgeResponse",
    "FollowupUpdate",
    "FollowupResponse",
]
