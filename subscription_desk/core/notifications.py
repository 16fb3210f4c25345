"""
User-visible notifications.

Every failure in the signup flow ends here rather than as an exception.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional


class NotificationLevel(Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    """A transient, dismissible message for the user."""
    level: NotificationLevel
    message: str


class Notifier:
    """Collects notifications and forwards them to an optional sink.
    
    The sink is the presentation layer (for the CLI, a rich console).
    Notifications are also kept in ``history`` so callers and tests can
    inspect what the user was shown.
    """

    def __init__(self, sink: Optional[Callable[[Notification], None]] = None):
        self.sink = sink
        self.history: List[Notification] = []

    def success(self, message: str) -> None:
        self._emit(Notification(NotificationLevel.SUCCESS, message))

    def error(self, message: str) -> None:
        self._emit(Notification(NotificationLevel.ERROR, message))

    @property
    def last(self) -> Optional[Notification]:
        return self.history[-1] if self.history else None

    def errors(self) -> List[str]:
        return [n.message for n in self.history if n.level == NotificationLevel.ERROR]

    def _emit(self, notification: Notification) -> None:
        self.history.append(notification)
        if self.sink is not None:
            self.sink(notification)
