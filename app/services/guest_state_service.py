from abc import ABC, abstractmethod
from typing import Optional

UNKNOWN_GUEST_STATE = "UNKNOWN"


class GuestStateProvider(ABC):
    @abstractmethod
    def lookup(self, phone_number: str) -> str:
        """Return the reservation/stay state for a phone number."""


class StaticGuestStateProvider(GuestStateProvider):
    """Used until a reservation source is connected."""

    def __init__(self, state: str = UNKNOWN_GUEST_STATE):
        self.state = state

    def lookup(self, phone_number: str) -> str:
        return self.state


_guest_state_provider: Optional[GuestStateProvider] = None


def get_guest_state_provider() -> GuestStateProvider:
    global _guest_state_provider
    if _guest_state_provider is None:
        _guest_state_provider = StaticGuestStateProvider()
    return _guest_state_provider
