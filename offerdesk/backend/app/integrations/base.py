from __future__ import annotations
from dataclasses import dataclass, field
from typing import Protocol, Any


@dataclass(frozen=True)
class SinkDeliveryResult:
    ok: bool
    error: str | None = None


@dataclass(frozen=True)
class Notification:
    """A rendered, templated message waiting to be delivered."""
    topic: str
    subject: str
    body: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return {"subject": self.subject, "body": self.body, **self.data}


class NotificationSink(Protocol):
    async def deliver(self, event_type: str, payload: dict[str, Any]) -> SinkDeliveryResult:
        ...


class NotificationPublisher(Protocol):
    """
    Fire-and-forget hand-off. publish() must not raise and must not block on
    delivery.
    """

    def publish(self, notification: Notification) -> None:
        ...
