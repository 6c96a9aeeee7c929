from app.models.followup import FollowupEntry
from app.models.intent import IntentDefinition
from app.models.intent_template import ReplyTemplate
from app.models.knowledge_entry import KnowledgeEntry
from app.models.message import DIRECTION_IN, DIRECTION_OUT, Message

__all__ = [
    "Message",
    "FollowupEntry",
    "IntentDefinition",
    "ReplyTemplate",
    "KnowledgeEntry",
    "DIRECTION_IN",
    "DIRECTION_OUT",
]
