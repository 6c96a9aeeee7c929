from app.services.conversation_service import (
    apply_classification,
    enqueue_followup,
    get_recent_history,
    record_inbound,
    record_outbound,
)
from app.services.followup_state import (
    FollowupStatus,
    InvalidStatusTransitionError,
    can_transition,
    transition,
)
