from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.models import DIRECTION_IN, DIRECTION_OUT, FollowupEntry, Message
from app.services.followup_state import FollowupStatus


def record_inbound(db: Session, phone_number: str, text: str, received_at: Optional[datetime] = None) -> Message:
    """Insert the IN row. Classification fields are filled in later by apply_classification."""
    message = Message(
        direction=DIRECTION_IN,
        phone_number=phone_number,
        text=text,
        created_at=received_at or datetime.now(timezone.utc),
    )
    db.add(message)
    db.flush()
    return message


def get_recent_history(db: Session, phone_number: str, limit: int = 10) -> List[Message]:
    """Last `limit` messages for the number, oldest first."""
    rows = (
        db.query(Message)
        .filter(Message.phone_number == phone_number)
        .order_by(Message.id.desc())
        .limit(limit)
        .all()
    )
    return list(reversed(rows))


def history_for_prompt(messages: List[Message]) -> List[dict]:
    return [{"direction": m.direction, "text": m.text} for m in messages]


def record_outbound(
    db: Session,
    inbound: Message,
    text: str,
    intent: Optional[str],
    flow_type: Optional[str],
    slots: Optional[Dict[str, Any]],
    guest_state: Optional[str],
    handled_by: str,
    need_followup: bool,
) -> Message:
    message = Message(
        direction=DIRECTION_OUT,
        phone_number=inbound.phone_number,
        text=text,
        created_at=datetime.now(timezone.utc),
        intent=intent,
        flow_type=flow_type,
        slots=slots or None,
        guest_state=guest_state,
        handled_by=handled_by,
        need_followup=need_followup,
        resolved=not need_followup,
        reply_to_id=inbound.id,
    )
    db.add(message)
    db.flush()
    return message


def enqueue_followup(db: Session, inbound: Message, reason: str) -> FollowupEntry:
    entry = FollowupEntry(
        message_id=inbound.id,
        status=FollowupStatus.PENDING.value,
        reason=reason,
    )
    db.add(entry)
    db.flush()
    return entry


def apply_classification(
    db: Session,
    inbound: Message,
    intent: Optional[str],
    flow_type: Optional[str],
    slots: Optional[Dict[str, Any]],
    guest_state: Optional[str],
    handled_by: str,
    need_followup: bool,
) -> Message:
    """Stamp the IN row with the classification that was used to handle it."""
    inbound.intent = intent
    inbound.flow_type = flow_type
    inbound.slots = slots or None
    inbound.guest_state = guest_state
    inbound.handled_by = handled_by
    inbound.need_followup = need_followup
    inbound.resolved = not need_followup
    db.flush()
    return inbound
