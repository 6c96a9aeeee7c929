from abc import ABC, abstractmethod
from typing import Optional

from app.logging_config import get_logger
from app.services.alert_service import alert_delivery_failure

logger = get_logger("sms_service")


class SmsSendError(Exception):
    """Raised by a transport when the provider rejects or cannot deliver a message."""


class SmsSender(ABC):
    """Outbound SMS transport."""

    @abstractmethod
    def send(self, to: str, text: str) -> None:
        pass


class LogSmsSender(SmsSender):
    """Default transport: records the send in the log instead of calling a provider."""

    def send(self, to: str, text: str) -> None:
        logger.info("SMS send", extra={"context": {"to": to, "text": text}})


_sms_sender: Optional[SmsSender] = None


def get_sms_sender() -> SmsSender:
    global _sms_sender
    if _sms_sender is None:
        _sms_sender = LogSmsSender()
    return _sms_sender


def deliver_reply(
    to: str,
    text: str,
    sender: Optional[SmsSender] = None,
    outgoing_id: Optional[int] = None,
    handled_by: Optional[str] = None,
) -> bool:
    """Hand a committed reply to the transport. Failures are logged and alerted, never raised."""
    sender = sender or get_sms_sender()
    try:
        sender.send(to, text)
        return True
    except Exception as exc:
        logger.error(
            "SMS send failed",
            extra={"context": {"to": to, "outgoing_id": outgoing_id, "error": str(exc)}},
            exc_info=True,
        )
        alert_delivery_failure(to, exc, outgoing_id=outgoing_id, handled_by=handled_by)
        return False
