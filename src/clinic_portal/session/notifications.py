"""
clinic_portal.session.notifications

One-shot user notifications (toasts).

Responsibilities:
- Queue notifications published by the coordinator.
- Hand each notification to the UI exactly once (`drain`).
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Literal

from clinic_portal.observability.logging import get_logger
from clinic_portal.session.errors import ErrorKind

log = get_logger(__name__)

NotificationLevel = Literal["info", "warning", "error"]


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True, slots=True)
class Notification:
    kind: ErrorKind | None
    message: str
    level: NotificationLevel = "error"
    created_at: datetime = field(default_factory=_utcnow)


class NotificationCenter:
    def __init__(self, *, max_pending: int = 50) -> None:
        # Oldest notifications are dropped once the UI falls this far behind.
        self._pending: deque[Notification] = deque(maxlen=max_pending)

    def publish(self, notification: Notification) -> None:
        log.info(
            "notification_published",
            kind=notification.kind,
            level=notification.level,
            message=notification.message,
        )
        self._pending.append(notification)

    def pending(self) -> int:
        return len(self._pending)

    def drain(self) -> list[Notification]:
        items = list(self._pending)
        self._pending.clear()
        return items
