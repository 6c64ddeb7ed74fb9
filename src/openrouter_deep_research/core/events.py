"""Progress notifications for a research run.

A run reports human-readable status strings through a single caller-supplied
callback. Delivery is fire-and-forget: a failing callback is logged and never
affects the run.
"""

import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

import logfire

from openrouter_deep_research.models.research import ResearchStage

StatusCallback = Callable[[str], Awaitable[None] | None]


@dataclass(frozen=True)
class StatusUpdateEvent:
    """One status notification."""

    request_id: str
    stage: ResearchStage
    message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


class StatusReporter:
    """Delivers status strings to the caller and keeps a history of them."""

    def __init__(self, request_id: str, callback: StatusCallback | None = None):
        self.request_id = request_id
        self._callback = callback
        self.history: list[StatusUpdateEvent] = []

    async def emit(self, stage: ResearchStage, message: str) -> None:
        event = StatusUpdateEvent(self.request_id, stage, message)
        self.history.append(event)
        logfire.info(
            "Research status", request_id=self.request_id, stage=stage.value, status=message
        )

        if self._callback is None:
            return
        try:
            result = self._callback(message)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logfire.warning("Status callback failed", request_id=self.request_id, error=str(e))

    @property
    def messages(self) -> list[str]:
        return [event.message for event in self.history]


__all__ = ["StatusCallback", "StatusReporter", "StatusUpdateEvent"]
