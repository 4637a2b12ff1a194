from typing import List, Optional
from pydantic import BaseModel

from engagement.models.notification import NotificationRead


class NotificationList(BaseModel):
    success: bool = True
    notifications: List[NotificationRead] = []


class UnreadCount(BaseModel):
    success: bool = True
    unread_count: int


class NotificationMark(BaseModel):
    notification_id: Optional[int] = None
    mark_all: bool = False
