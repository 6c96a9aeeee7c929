"""Inbound SMS pipeline.

One inbound message is handled in a single database transaction:
record inbound -> history -> knowledge -> orchestrator -> policy ->
record outbound / enqueue follow-up -> stamp inbound -> commit.
The reply is handed to the SMS transport only after the commit.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Mapping, Optional
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from app.config import settings
from app.logging_config import SenderLogger, get_logger
from app.services.alert_service import alert_inbound_failure
from app.services.config_cache import get_config_cache
from app.services.conversation_service import (
    apply_classification,
    enqueue_followup,
    get_recent_history,
    history_for_prompt,
    record_inbound,
    record_outbound,
)
from app.services.guest_state_service import GuestStateProvider, get_guest_state_provider
from app.services.knowledge_service import format_knowledge_context, retrieve_knowledge
from app.services.llm import LLMProvider
from app.services.orchestrator_service import run_orchestrator
from app.services.policy_service import decide, is_night_time, resolve_policy_templates
from app.services.sender_lock import acquire_transaction_lock, get_sender_locks
from app.services.sms_service import SmsSender, deliver_reply

logger = get_logger("inbound_service")

REQUIRED_FIELDS_ERROR = "from, text is required"
INVALID_RECEIVED_AT_ERROR = "receivedAt is invalid"


class PayloadValidationError(ValueError):
    """Inbound payload is missing required fields or carries invalid values."""


@dataclass(frozen=True)
class InboundSms:
    phone_number: str
    text: str
    received_at: datetime


@dataclass(frozen=True)
class InboundResult:
    incoming_id: int
    outgoing_id: Optional[int]
    intent: str
    flow_type: Optional[str]
    end_flow: bool
    need_followup: bool
    handled_by: str
    reply_text: str
    sms_sent: bool = False


def _first_present(body: Mapping[str, Any], *keys: str) -> Optional[str]:
    """First non-blank value among keys, returned as received."""
    for key in keys:
        value = body.get(key)
        if value is None:
            continue
        value = str(value)
        if value.strip():
            return value
    return None


def _parse_received_at(value: Any) -> datetime:
    if value is None or value == "":
        return datetime.now(timezone.utc)
    if not isinstance(value, str):
        raise PayloadValidationError(INVALID_RECEIVED_AT_ERROR)
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError as exc:
        raise PayloadValidationError(INVALID_RECEIVED_AT_ERROR) from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=ZoneInfo(settings.guesthouse_timezone))
    return parsed


def parse_sms_provider_payload(body: Any) -> InboundSms:
    """Normalize a provider payload. Only this function knows the provider's field names."""
    if not isinstance(body, Mapping):
        raise PayloadValidationError(REQUIRED_FIELDS_ERROR)

    phone_number = _first_present(body, "from", "phone", "sender")
    text = _first_present(body, "text", "message")
    if not phone_number or not text:
        raise PayloadValidationError(REQUIRED_FIELDS_ERROR)

    return InboundSms(
        phone_number=phone_number.strip(),
        text=text,
        received_at=_parse_received_at(body.get("receivedAt")),
    )


def process_inbound_sms(
    db: Session,
    inbound: InboundSms,
    *,
    llm_provider: Optional[LLMProvider] = None,
    guest_state_provider: Optional[GuestStateProvider] = None,
    sms_sender: Optional[SmsSender] = None,
) -> InboundResult:
    """Run the full pipeline for one inbound SMS. Persistence errors roll back and re-raise."""
    with get_sender_locks().hold(inbound.phone_number, enabled=settings.serialize_per_sender):
        result = _process_in_transaction(db, inbound, llm_provider, guest_state_provider)

    if result.outgoing_id is not None:
        sent = deliver_reply(
            inbound.phone_number,
            result.reply_text,
            sender=sms_sender,
            outgoing_id=result.outgoing_id,
            handled_by=result.handled_by,
        )
        result = replace(result, sms_sent=sent)
    return result


def _process_in_transaction(
    db: Session,
    inbound: InboundSms,
    llm_provider: Optional[LLMProvider],
    guest_state_provider: Optional[GuestStateProvider],
) -> InboundResult:
    log = SenderLogger(logger, {"phone_number": inbound.phone_number})
    try:
        if settings.serialize_per_sender:
            acquire_transaction_lock(db, inbound.phone_number)
        incoming = record_inbound(db, inbound.phone_number, inbound.text, inbound.received_at)
        log.info("Inbound SMS recorded", context={"incoming_id": incoming.id})

        snapshot = get_config_cache().ensure_loaded(db)
        guest_state = (guest_state_provider or get_guest_state_provider()).lookup(inbound.phone_number)

        history = get_recent_history(db, inbound.phone_number, limit=settings.history_limit)
        knowledge = retrieve_knowledge(db, inbound.text)

        orchestration = run_orchestrator(
            inbound.text,
            guest_state,
            history_for_prompt(history),
            format_knowledge_context(knowledge),
            intents=snapshot.intents,
            provider=llm_provider,
        )
        if orchestration.intent in snapshot.complaint_intent_names:
            orchestration = orchestration.as_complaint()

        complaint_reply, night_reply = resolve_policy_templates(snapshot, orchestration.intent)
        decision = decide(
            orchestration,
            is_night=is_night_time(inbound.received_at),
            action_intent_names=snapshot.action_intent_names,
            complaint_reply=complaint_reply,
            night_reply=night_reply,
        )

        reply_text = (decision.reply_text or "").strip()
        outgoing = None
        if reply_text:
            outgoing = record_outbound(
                db,
                incoming,
                reply_text,
                intent=decision.intent,
                flow_type=decision.flow_type,
                slots=decision.slots,
                guest_state=guest_state,
                handled_by=decision.handled_by.value,
                need_followup=decision.need_followup,
            )

        if decision.need_followup:
            enqueue_followup(db, incoming, decision.followup_reason.value)

        apply_classification(
            db,
            incoming,
            intent=decision.intent,
            flow_type=decision.flow_type,
            slots=decision.slots,
            guest_state=guest_state,
            handled_by=decision.handled_by.value,
            need_followup=decision.need_followup,
        )

        incoming_id = incoming.id
        outgoing_id = outgoing.id if outgoing else None
        db.commit()
    except Exception as exc:
        try:
            db.rollback()
        except Exception as rollback_exc:
            log.warning("Inbound rollback failed", context={"error": str(rollback_exc)})
        log.error("Inbound SMS processing failed", context={"error": str(exc)}, exc_info=True)
        alert_inbound_failure(inbound.phone_number, inbound.received_at, exc)
        raise

    log.info(
        "Inbound SMS handled",
        context={
            "incoming_id": incoming_id,
            "outgoing_id": outgoing_id,
            "mode": decision.mode.value,
            "intent": decision.intent,
            "need_followup": decision.need_followup,
        },
    )
    return InboundResult(
        incoming_id=incoming_id,
        outgoing_id=outgoing_id,
        intent=decision.intent,
        flow_type=decision.flow_type,
        end_flow=decision.end_flow,
        need_followup=decision.need_followup,
        handled_by=decision.handled_by.value,
        reply_text=reply_text,
    )
