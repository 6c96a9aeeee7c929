"""Telegram alerts for staff when an inbound SMS was not handled automatically.

Three things page staff: an inbound message lost to a rolled-back pipeline,
a committed reply the SMS transport refused, and a failed config load.
"""

from datetime import datetime
from typing import Optional

import httpx

from app.config import settings
from app.logging_config import get_logger, mask_phone_number

logger = get_logger("alert_service")

TELEGRAM_SEND_URL = "https://api.telegram.org/bot{token}/sendMessage"
ALERT_TIMEOUT_SECONDS = 10
ERROR_PREVIEW_CHARS = 200

LEVEL_ICONS = {"WARNING": "⚠️", "ERROR": "❌"}


def _format_alert(level: str, title: str, fields: dict) -> str:
    lines = [f"{LEVEL_ICONS.get(level, '📢')} [게스트하우스 SMS] {level}", title]
    details = [f"{key}: {value}" for key, value in fields.items() if value is not None]
    if details:
        lines.append("")
        lines.extend(details)
    return "\n".join(lines)


def send_alert(level: str, title: str, fields: Optional[dict] = None) -> bool:
    """Post one alert to the staff chat. Returns False when alerts are off or Telegram refuses."""
    fields = fields or {}
    if not settings.alert_bot_token or not settings.alert_chat_id:
        logger.warning(f"Alert not configured: {level} - {title}", extra={"context": fields})
        return False

    # Plain text: intent names like NIGHT_ACTION break Telegram Markdown
    payload = {"chat_id": settings.alert_chat_id, "text": _format_alert(level, title, fields)}
    try:
        with httpx.Client(timeout=ALERT_TIMEOUT_SECONDS) as client:
            response = client.post(TELEGRAM_SEND_URL.format(token=settings.alert_bot_token), json=payload)
            return response.status_code == 200
    except httpx.HTTPError as e:
        logger.error(f"Failed to send alert: {e}")
        return False


def _preview(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"[:ERROR_PREVIEW_CHARS]


def alert_inbound_failure(phone_number: str, received_at: Optional[datetime], exc: BaseException) -> bool:
    """The pipeline rolled back: nothing was stored and no reply went out."""
    return send_alert(
        "ERROR",
        "문자 처리 실패 (저장되지 않음, 직접 확인 필요)",
        {
            "phone": mask_phone_number(phone_number),
            "received_at": received_at.isoformat() if received_at else None,
            "reason": _preview(exc),
        },
    )


def alert_delivery_failure(
    phone_number: str,
    exc: BaseException,
    outgoing_id: Optional[int] = None,
    handled_by: Optional[str] = None,
) -> bool:
    """The reply is stored but the guest never received it."""
    return send_alert(
        "WARNING",
        "답장 발송 실패 (저장됨, 미발송)",
        {
            "phone": mask_phone_number(phone_number),
            "outgoing_id": outgoing_id,
            "mode": handled_by,
            "reason": _preview(exc),
        },
    )


def alert_config_failure(exc: BaseException, has_previous: bool) -> bool:
    return send_alert(
        "ERROR",
        "인텐트/템플릿 설정 로드 실패",
        {
            "snapshot": "previous kept" if has_previous else "none loaded",
            "reason": _preview(exc),
        },
    )
