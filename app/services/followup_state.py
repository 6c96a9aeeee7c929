from enum import Enum


class FollowupStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    DISMISSED = "DISMISSED"


VALID_TRANSITIONS = {
    FollowupStatus.PENDING: [FollowupStatus.IN_PROGRESS, FollowupStatus.RESOLVED, FollowupStatus.DISMISSED],
    FollowupStatus.IN_PROGRESS: [FollowupStatus.PENDING, FollowupStatus.RESOLVED, FollowupStatus.DISMISSED],
    FollowupStatus.RESOLVED: [FollowupStatus.PENDING],
    FollowupStatus.DISMISSED: [FollowupStatus.PENDING],
}


class InvalidStatusTransitionError(Exception):
    def __init__(self, from_status: FollowupStatus, to_status: FollowupStatus):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Invalid transition: {from_status.value} -> {to_status.value}")


def parse_status(value: str) -> FollowupStatus:
    """Raises ValueError for unknown status names."""
    return FollowupStatus(value.strip().upper())


def can_transition(from_status: FollowupStatus, to_status: FollowupStatus) -> bool:
    """Check if transition is valid. Setting the same status again is a no-op and allowed."""
    if from_status == to_status:
        return True
    return to_status in VALID_TRANSITIONS.get(from_status, [])


def transition(from_status: FollowupStatus, to_status: FollowupStatus) -> FollowupStatus:
    """Perform status transition. Raises InvalidStatusTransitionError if not allowed."""
    if not can_transition(from_status, to_status):
        raise InvalidStatusTransitionError(from_status, to_status)
    return to_status


def is_closed(status: FollowupStatus) -> bool:
    return status in (FollowupStatus.RESOLVED, FollowupStatus.DISMISSED)
