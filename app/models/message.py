from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from app.database import Base

DIRECTION_IN = "IN"
DIRECTION_OUT = "OUT"


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    direction = Column(String(3), nullable=False)  # IN, OUT
    phone_number = Column(String(32), nullable=False, index=True)
    text = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    intent = Column(Text)
    confidence = Column(Numeric(5, 3))
    flow_type = Column(Text)
    slots = Column(JSON().with_variant(JSONB(), "postgresql"))
    guest_state = Column(Text)
    handled_by = Column(Text)  # COMPLAINT_AUTO, NIGHT_DEFER_AUTO, LLM_ORCHESTRATOR
    need_followup = Column(Boolean, nullable=False, default=False)
    resolved = Column(Boolean, nullable=False, default=False)
    reply_to_id = Column(Integer, ForeignKey("messages.id"))

    followups = relationship("FollowupEntry", back_populates="message")
