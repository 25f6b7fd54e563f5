"""Progress events published while a deployment runs."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

TERMINAL_EVENTS = frozenset({"pipeline_completed", "pipeline_failed"})


@dataclass
class Event:
    """A progress event."""

    event_type: str
    data: dict[str, Any]
    timestamp: datetime = field(default_factory=datetime.utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.event_type in TERMINAL_EVENTS


class EventBus:
    """Fan-out of pipeline events to any number of queue subscribers."""

    def __init__(self):
        self._subscribers: list[asyncio.Queue[Event]] = []

    def subscribe(self) -> asyncio.Queue[Event]:
        """Subscribe to all subsequent events."""
        queue: asyncio.Queue[Event] = asyncio.Queue()
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[Event]) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    async def publish(self, event: Event) -> None:
        for queue in list(self._subscribers):
            await queue.put(event)

    async def publish_step_started(self, step: str, title: str) -> None:
        await self.publish(
            Event(event_type="step_started", data={"step": step, "title": title})
        )

    async def publish_step_completed(
        self, step: str, message: str, duration_ms: int
    ) -> None:
        await self.publish(
            Event(
                event_type="step_completed",
                data={"step": step, "message": message, "duration_ms": duration_ms},
            )
        )

    async def publish_step_failed(self, step: str, error: str) -> None:
        await self.publish(
            Event(event_type="step_failed", data={"step": step, "error": error})
        )

    async def publish_pipeline_completed(self, application: str, environment: str) -> None:
        await self.publish(
            Event(
                event_type="pipeline_completed",
                data={"application": application, "environment": environment},
            )
        )

    async def publish_pipeline_failed(self, step: str, error: str) -> None:
        await self.publish(
            Event(event_type="pipeline_failed", data={"step": step, "error": error})
        )
