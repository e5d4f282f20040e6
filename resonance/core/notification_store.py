"""
Notification Store: newest-first system notifications, capped at 50
"""
import time
import uuid
from typing import Callable, Literal, Optional

from pydantic import BaseModel, Field

from .constants import MAX_NOTIFICATIONS
from ..utils.logging import print_warning

NotificationType = Literal["info", "success", "error", "episode", "series"]


class Notification(BaseModel):
    id: str = Field(default_factory=lambda: f"notif-{uuid.uuid4().hex[:12]}")
    type: NotificationType
    title: str
    body: str
    timestamp: float = Field(default_factory=time.time)
    read: bool = False
    book_title: Optional[str] = None
    book_cover: Optional[str] = None


NotificationListener = Callable[[list[Notification]], None]


class NotificationStore:
    def __init__(self, max_items: int = MAX_NOTIFICATIONS):
        self.max_items = max_items
        self._items: list[Notification] = []
        self._listeners: list[NotificationListener] = []

    def subscribe(self, listener: NotificationListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.get_all()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                print_warning(f"Notification listener failed: {e}", context="notification_store", exception=e)

    def push(
        self,
        type: NotificationType,
        title: str,
        body: str,
        book_title: Optional[str] = None,
        book_cover: Optional[str] = None,
    ) -> str:
        """
        알림을 맨 앞에 추가합니다. 최대 개수를 넘으면 가장 오래된 알림부터 버립니다.

        Returns:
            새 알림 id
        """
        notification = Notification(
            type=type,
            title=title,
            body=body,
            book_title=book_title,
            book_cover=book_cover,
        )
        self._items = [notification, *self._items][: self.max_items]
        self._notify()
        return notification.id

    def mark_read(self, notification_id: str) -> bool:
        found = False
        for item in self._items:
            if item.id == notification_id:
                item.read = True
                found = True
        if found:
            self._notify()
        return found

    def mark_all_read(self) -> None:
        for item in self._items:
            item.read = True
        self._notify()

    def remove(self, notification_id: str) -> bool:
        before = len(self._items)
        self._items = [n for n in self._items if n.id != notification_id]
        removed = len(self._items) != before
        if removed:
            self._notify()
        return removed

    def clear(self) -> None:
        self._items = []
        self._notify()

    def get_all(self) -> list[Notification]:
        return [n.model_copy() for n in self._items]

    def unread_count(self) -> int:
        return sum(1 for n in self._items if not n.read)
