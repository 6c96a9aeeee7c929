from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional


@dataclass
class LLMResponse:
    content: str
    model: str
    usage: Optional[dict] = None


class LLMProviderError(Exception):
    """Raised by providers on transport failures or non-2xx responses."""


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    def generate(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 800,
        timeout_seconds: Optional[float] = None,
        response_format: Optional[dict] = None,
    ) -> LLMResponse:
        """Generate response from LLM."""
        pass
