"""
The oracle capability.

Pipelines never talk to an HTTP client directly; they receive an ``Oracle``
and call ``complete(request) -> str``. Production wiring passes
``OpenAIChatOracle``; tests pass a scripted fake returning canned (and
deliberately malformed) completions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Literal

Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class OracleMessage:
    """One role-tagged chat message."""

    role: Role
    content: str


@dataclass(frozen=True)
class OracleRequest:
    """A complete prompt plus sampling parameters.

    Attributes:
        messages:    System instruction followed by the user prompt.
        temperature: Sampling temperature.
        max_tokens:  Output-size budget.
        json_mode:   Ask the service for strict JSON-object output.
        purpose:     Short label used in logs (``"enrichment"``, ``"compare"``...).
    """

    messages: tuple[OracleMessage, ...]
    temperature: float
    max_tokens: int
    json_mode: bool = False
    purpose: str = field(default="completion", compare=False)

    @property
    def user_prompt(self) -> str:
        """Content of the last user message (convenient in tests and logs)."""
        for message in reversed(self.messages):
            if message.role == "user":
                return message.content
        return ""


class Oracle(ABC):
    """Completes a structured prompt and returns the raw text payload."""

    @abstractmethod
    def complete(self, request: OracleRequest) -> str:
        """Return the completion text for ``request``.

        May return an empty string or non-JSON text; callers decide whether
        that is fatal.

        Raises:
            OracleError: On transport or service failure.
        """
        ...

    def close(self) -> None:
        """Release any held resources. Default: nothing to release."""
