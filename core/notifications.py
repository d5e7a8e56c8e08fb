import logging
from typing import List, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class Notification(BaseModel):
    title: str
    description: str
    variant: str = "default"  # default | destructive


class Notifier:
    """Collects user-visible notifications (toasts) in the order they were raised."""

    def __init__(self):
        self.notifications: List[Notification] = []

    def toast(self, title: str, description: str, variant: str = "default") -> Notification:
        note = Notification(title=title, description=description, variant=variant)
        self.notifications.append(note)
        logger.info(f"[{variant}] {title}: {description}")
        return note

    @property
    def last(self) -> Optional[Notification]:
        return self.notifications[-1] if self.notifications else None

    def clear(self):
        self.notifications.clear()
