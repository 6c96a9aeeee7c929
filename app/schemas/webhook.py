from typing import Optional

from pydantic import BaseModel


class SmsWebhookResponse(BaseModel):
    ok: bool
    incoming_id: int
    outgoing_id: Optional[int] = None
    intent: str
    flow_type: Optional[str] = None
    end_flow: bool = False
