from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.database import get_db
from app.logging_config import get_logger
from app.schemas.webhook import SmsWebhookResponse
from app.services.inbound_service import PayloadValidationError, parse_sms_provider_payload, process_inbound_sms

logger = get_logger("webhook")

router = APIRouter()


@router.post("/sms/webhook", response_model=SmsWebhookResponse)
def handle_sms_webhook(body: Any = Body(default=None), db: Session = Depends(get_db)):
    """Receive one inbound SMS from the provider and answer it."""
    try:
        inbound = parse_sms_provider_payload(body)
    except PayloadValidationError as exc:
        logger.warning("Rejected SMS webhook payload", extra={"context": {"error": str(exc)}})
        return JSONResponse(status_code=400, content={"error": str(exc)})

    try:
        result = process_inbound_sms(db, inbound)
    except Exception:
        # already rolled back, logged and alerted by the pipeline
        return JSONResponse(status_code=500, content={"error": "internal_server_error"})

    return SmsWebhookResponse(
        ok=True,
        incoming_id=result.incoming_id,
        outgoing_id=result.outgoing_id,
        intent=result.intent,
        flow_type=result.flow_type,
        end_flow=result.end_flow,
    )
