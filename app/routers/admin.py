"""Admin API endpoints for intents, reply templates, knowledge and the follow-up queue."""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from app.database import get_db
from app.logging_config import get_logger
from app.models import FollowupEntry, IntentDefinition, KnowledgeEntry, ReplyTemplate
from app.schemas.admin import (
    FollowupMessage,
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
from app.services.config_cache import ConfigLoadError, get_config_cache
from app.services.followup_state import (
    FollowupStatus,
    InvalidStatusTransitionError,
    is_closed,
    parse_status,
    transition,
)

logger = get_logger("admin")

router = APIRouter(prefix="/admin", tags=["admin"])

FOLLOWUP_LIST_LIMIT = 100
MISSING_PHONE_NUMBER = "정보 없음"
MISSING_MESSAGE_TEXT = "(삭제된 메시지)"

SUCCESS = {"success": True}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _storage_error(db: Session, action: str, exc: SQLAlchemyError) -> JSONResponse:
    db.rollback()
    logger.error(f"Admin {action} failed", extra={"context": {"error": str(exc)}})
    return _error(500, str(exc))


# === INTENTS ===


@router.get("/intents", response_model=list[IntentResponse])
def list_intents(db: Session = Depends(get_db)):
    return db.query(IntentDefinition).order_by(IntentDefinition.id).all()


@router.post("/intents")
def create_intent(data: IntentCreate, db: Session = Depends(get_db)):
    try:
        db.add(
            IntentDefinition(
                name=data.name,
                description=data.description,
                is_action=data.is_action,
                is_complaint_like=data.is_complaint_like,
            )
        )
        db.commit()
    except SQLAlchemyError as exc:
        return _storage_error(db, "create intent", exc)
    return SUCCESS


@router.put("/intents/{intent_id}")
def update_intent(intent_id: int, data: IntentUpdate, db: Session = Depends(get_db)):
    try:
        intent = db.get(IntentDefinition, intent_id)
        if intent is None:
            return _error(404, "intent not found")
        intent.description = data.description
        intent.is_action = data.is_action
        intent.is_complaint_like = data.is_complaint_like
        db.commit()
    except SQLAlchemyError as exc:
        return _storage_error(db, "update intent", exc)
    return SUCCESS


@router.delete("/intents/{intent_id}")
def delete_intent(intent_id: int, db: Session = Depends(get_db)):
    try:
        db.query(IntentDefinition).filter(IntentDefinition.id == intent_id).delete()
        db.commit()
    except SQLAlchemyError as exc:
        return _storage_error(db, "delete intent", exc)
    return SUCCESS


# === TEMPLATES ===


@router.get("/templates", response_model=list[TemplateResponse])
def list_templates(intent: Optional[str] = None, db: Session = Depends(get_db)):
    query = db.query(ReplyTemplate).filter(ReplyTemplate.is_active.is_(True))
    if intent:
        query = query.filter(ReplyTemplate.intent_name == intent)
    return query.order_by(ReplyTemplate.intent_name, ReplyTemplate.sort_order, ReplyTemplate.id).all()


@router.post("/templates")
def create_template(data: TemplateCreate, db: Session = Depends(get_db)):
    try:
        db.add(
            ReplyTemplate(
                intent_name=data.intent_name,
                sub_intent=data.sub_intent,
                display_label=data.display_label,
                message=data.message,
                sort_order=data.sort_order,
            )
        )
        db.commit()
    except SQLAlchemyError as exc:
        return _storage_error(db, "create template", exc)
    return SUCCESS


@router.put("/templates/{template_id}")
def update_template(template_id: int, data: TemplateUpdate, db: Session = Depends(get_db)):
    try:
        template = db.get(ReplyTemplate, template_id)
        if template is None:
            return _error(404, "template not found")
        template.intent_name = data.intent_name
        template.sub_intent = data.sub_intent
        template.display_label = data.display_label
        template.message = data.message
        template.sort_order = data.sort_order
        db.commit()
    except SQLAlchemyError as exc:
        return _storage_error(db, "update template", exc)
    return SUCCESS


@router.delete("/templates/{template_id}")
def delete_template(template_id: int, db: Session = Depends(get_db)):
    try:
        db.query(ReplyTemplate).filter(ReplyTemplate.id == template_id).delete()
        db.commit()
    except SQLAlchemyError as exc:
        return _storage_error(db, "delete template", exc)
    return SUCCESS


# === KNOWLEDGE ===


@router.get("/knowledge", response_model=list[KnowledgeResponse])
def list_knowledge(intent: Optional[str] = None, db: Session = Depends(get_db)):
    query = db.query(KnowledgeEntry)
    if intent:
        query = query.filter(KnowledgeEntry.category == intent)
    return query.order_by(KnowledgeEntry.updated_at.desc(), KnowledgeEntry.id.desc()).all()


@router.post("/knowledge")
def create_knowledge(data: KnowledgeCreate, db: Session = Depends(get_db)):
    try:
        db.add(KnowledgeEntry(category=data.category, title=data.title, content=data.content))
        db.commit()
    except SQLAlchemyError as exc:
        return _storage_error(db, "create knowledge", exc)
    return SUCCESS


@router.put("/knowledge/{entry_id}")
def update_knowledge(entry_id: int, data: KnowledgeUpdate, db: Session = Depends(get_db)):
    try:
        entry = db.get(KnowledgeEntry, entry_id)
        if entry is None:
            return _error(404, "knowledge entry not found")
        entry.category = data.category
        entry.title = data.title
        entry.content = data.content
        entry.updated_at = datetime.now(timezone.utc)
        db.commit()
    except SQLAlchemyError as exc:
        return _storage_error(db, "update knowledge", exc)
    return SUCCESS


@router.delete("/knowledge/{entry_id}")
def delete_knowledge(entry_id: int, db: Session = Depends(get_db)):
    try:
        db.query(KnowledgeEntry).filter(KnowledgeEntry.id == entry_id).delete()
        db.commit()
    except SQLAlchemyError as exc:
        return _storage_error(db, "delete knowledge", exc)
    return SUCCESS


# === FOLLOWUPS ===


def _followup_to_response(entry: FollowupEntry) -> FollowupResponse:
    message = entry.message
    return FollowupResponse(
        id=entry.id,
        status=entry.status,
        reason=entry.reason,
        memo=entry.memo,
        message=FollowupMessage(
            phone_number=(message.phone_number if message else None) or MISSING_PHONE_NUMBER,
            text=(message.text if message else None) or MISSING_MESSAGE_TEXT,
            guest_state=message.guest_state if message else None,
            intent=message.intent if message else None,
            created_at=entry.created_at,
        ),
    )


@router.get("/followups", response_model=list[FollowupResponse])
def list_followups(status: Optional[str] = None, reason: Optional[str] = None, db: Session = Depends(get_db)):
    """Newest follow-ups first. status=ALL disables the status filter."""
    try:
        query = db.query(FollowupEntry).options(joinedload(FollowupEntry.message))
        if status and status.upper() != "ALL":
            query = query.filter(FollowupEntry.status == status.upper())
        if reason:
            query = query.filter(FollowupEntry.reason == reason)
        entries = (
            query.order_by(FollowupEntry.created_at.desc(), FollowupEntry.id.desc())
            .limit(FOLLOWUP_LIST_LIMIT)
            .all()
        )
    except SQLAlchemyError as exc:
        return _storage_error(db, "list followups", exc)
    return [_followup_to_response(entry) for entry in entries]


@router.patch("/followups/{followup_id}")
def update_followup(followup_id: int, data: FollowupUpdate, db: Session = Depends(get_db)):
    fields = data.model_dump(exclude_unset=True)
    if not fields.get("status") and "memo" not in fields:
        return _error(400, "no fields to update")

    try:
        entry = db.get(FollowupEntry, followup_id)
        if entry is None:
            return _error(404, "followup not found")

        if fields.get("status"):
            try:
                new_status = transition(FollowupStatus(entry.status), parse_status(fields["status"]))
            except ValueError:
                return _error(400, f"invalid status: {fields['status']}")
            except InvalidStatusTransitionError as exc:
                return _error(400, str(exc))
            entry.status = new_status.value
            if not is_closed(new_status):
                entry.resolved_at = None
            elif entry.resolved_at is None:
                entry.resolved_at = datetime.now(timezone.utc)

        if "memo" in fields:
            entry.memo = fields["memo"]

        entry.updated_at = datetime.now(timezone.utc)
        db.commit()
    except SQLAlchemyError as exc:
        return _storage_error(db, "update followup", exc)

    logger.info(
        "Followup updated",
        extra={"context": {"followup_id": followup_id, "status": entry.status}},
    )
    return SUCCESS


# === CONFIG ===


@router.post("/reload-config")
def reload_config(db: Session = Depends(get_db)):
    try:
        get_config_cache().load(db)
    except ConfigLoadError as exc:
        return _error(500, str(exc))
    return {"ok": True}
