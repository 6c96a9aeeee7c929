from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FollowupEntry(Base):
    __tablename__ = "followup_queue"

    id = Column(Integer, primary_key=True, autoincrement=True)
    message_id = Column(Integer, ForeignKey("messages.id"), nullable=False, index=True)
    status = Column(String(32), nullable=False, default="PENDING")  # PENDING, IN_PROGRESS, RESOLVED, DISMISSED
    reason = Column(String(32), nullable=False)  # COMPLAINT, NIGHT_ACTION, LLM_FLAGGED
    memo = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)
    resolved_at = Column(DateTime(timezone=True))

    message = relationship("Message", back_populates="followups")
