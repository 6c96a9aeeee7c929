"""Decides how an inbound message is handled once the orchestrator has classified it."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple
from zoneinfo import ZoneInfo

from app.config import settings
from app.services.config_cache import ConfigSnapshot
from app.services.orchestrator_service import OrchestrationResult

NIGHT_START_HOUR = 3
NIGHT_END_HOUR = 10

COMPLAINT_TEMPLATE_INTENT = "COMPLAINT"
NIGHT_DEFER_TEMPLATE_INTENT = "NIGHT_DEFER"

DEFAULT_COMPLAINT_REPLY = "불편을 드려 정말 죄송합니다. 담당자가 내용을 확인한 뒤 최대한 빠르게 연락드리겠습니다."
DEFAULT_NIGHT_REPLY = "늦은 시간까지 문의 주셔서 감사합니다. 해당 요청은 오전 10시 이후 담당자가 확인 후 처리해 드리겠습니다."


class HandlingMode(str, Enum):
    COMPLAINT = "COMPLAINT"
    NIGHT_DEFER = "NIGHT_DEFER"
    NORMAL = "NORMAL"


class FollowupReason(str, Enum):
    COMPLAINT = "COMPLAINT"
    NIGHT_ACTION = "NIGHT_ACTION"
    LLM_FLAGGED = "LLM_FLAGGED"


class HandledBy(str, Enum):
    COMPLAINT_AUTO = "COMPLAINT_AUTO"
    NIGHT_DEFER_AUTO = "NIGHT_DEFER_AUTO"
    LLM_ORCHESTRATOR = "LLM_ORCHESTRATOR"


@dataclass(frozen=True)
class PolicyDecision:
    mode: HandlingMode
    reply_text: str
    need_followup: bool
    followup_reason: Optional[FollowupReason]
    handled_by: HandledBy
    intent: str
    flow_type: Optional[str] = None
    slots: Dict[str, Any] = field(default_factory=dict)
    end_flow: bool = False

    @property
    def resolved(self) -> bool:
        return not self.need_followup


def is_night_time(moment: Optional[datetime] = None, tz: Optional[str] = None) -> bool:
    """True when the local hour in the guesthouse timezone is within [03:00, 10:00).

    Naive datetimes are treated as UTC.
    """
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    local = moment.astimezone(ZoneInfo(tz or settings.guesthouse_timezone))
    return NIGHT_START_HOUR <= local.hour < NIGHT_END_HOUR


def resolve_policy_templates(snapshot: Optional[ConfigSnapshot], intent: Optional[str]) -> Tuple[str, str]:
    """Return (complaint_reply, night_reply) from configured templates, falling back to defaults."""
    complaint_reply = DEFAULT_COMPLAINT_REPLY
    night_reply = DEFAULT_NIGHT_REPLY
    if snapshot is None:
        return complaint_reply, night_reply

    complaint = snapshot.first_template(COMPLAINT_TEMPLATE_INTENT)
    if complaint and complaint.message:
        complaint_reply = complaint.message

    night = snapshot.first_template(NIGHT_DEFER_TEMPLATE_INTENT, sub_intent=intent)
    if night and night.message:
        night_reply = night.message

    return complaint_reply, night_reply


def decide(
    result: OrchestrationResult,
    is_night: bool,
    action_intent_names: Iterable[str],
    complaint_reply: str = DEFAULT_COMPLAINT_REPLY,
    night_reply: str = DEFAULT_NIGHT_REPLY,
) -> PolicyDecision:
    """Pure decision. Order is fixed: complaint, then night-time action deferral, then normal."""
    if result.is_complaint:
        return PolicyDecision(
            mode=HandlingMode.COMPLAINT,
            reply_text=complaint_reply,
            need_followup=True,
            followup_reason=FollowupReason.COMPLAINT,
            handled_by=HandledBy.COMPLAINT_AUTO,
            intent=result.intent,
            flow_type=result.flow_type,
            slots=dict(result.slots),
            end_flow=result.end_flow,
        )

    if is_night and result.intent in set(action_intent_names):
        return PolicyDecision(
            mode=HandlingMode.NIGHT_DEFER,
            reply_text=night_reply,
            need_followup=True,
            followup_reason=FollowupReason.NIGHT_ACTION,
            handled_by=HandledBy.NIGHT_DEFER_AUTO,
            intent=result.intent,
            flow_type=result.flow_type,
            slots=dict(result.slots),
            end_flow=result.end_flow,
        )

    return PolicyDecision(
        mode=HandlingMode.NORMAL,
        reply_text=result.reply_text,
        need_followup=result.need_followup,
        followup_reason=FollowupReason.LLM_FLAGGED if result.need_followup else None,
        handled_by=HandledBy.LLM_ORCHESTRATOR,
        intent=result.intent,
        flow_type=result.flow_type,
        slots=dict(result.slots),
        end_flow=result.end_flow,
    )
