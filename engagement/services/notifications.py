"""
Notification sink.

Lifecycle services queue notifications and courtesy messages on a
``Notifier`` while their transaction runs. ``dispatch`` writes the queue
after the lifecycle transaction has committed, in a transaction of its own.
Delivery is best-effort: a failure is logged and dropped, it never undoes the
state change that triggered it, and a rolled-back operation emits nothing.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select, func

from engagement.models.notification import Message, Notification

logger = logging.getLogger(__name__)

REJECTION_MESSAGE = (
    "Thank you for your interest in this project. We've decided to go with another "
    "contributor for this opportunity. We appreciate your time and effort, and we hope "
    "to work with you on future projects."
)
ACCEPTANCE_MESSAGE = (
    "Congratulations! Your bid has been accepted for this project. We're excited to work "
    "with you. Please review the project details and let's get started!"
)


@dataclass
class _QueuedMessage:
    project_id: int
    sender_id: str
    recipient_id: str
    body: str


class Notifier:
    def __init__(self, session: Session):
        self.session = session
        self._notifications: List[Notification] = []
        self._messages: List[_QueuedMessage] = []

    def notify(self, user_id: Optional[str], type: str, payload: Dict[str, Any]) -> None:
        if not user_id:
            return
        self._notifications.append(
            Notification(user_id=user_id, type=type, payload_json=json.dumps(payload))
        )

    def send_message(self, project_id: int, sender_id: str, recipient_id: Optional[str], body: str) -> None:
        if not recipient_id:
            return
        self._messages.append(_QueuedMessage(project_id, sender_id, recipient_id, body))

    @property
    def pending(self) -> List[Notification]:
        return list(self._notifications)

    def discard(self) -> None:
        self._notifications.clear()
        self._messages.clear()

    def dispatch(self) -> int:
        """
        Persist everything queued so far. Returns the number of rows written.
        """
        if not self._notifications and not self._messages:
            return 0
        rows = list(self._notifications) + [
            Message(project_id=m.project_id, sender_id=m.sender_id, recipient_id=m.recipient_id, body=m.body)
            for m in self._messages
        ]
        self.discard()
        try:
            self.session.add_all(rows)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.warning("Dropped %d notification(s) after delivery failure", len(rows), exc_info=True)
            return 0
        return len(rows)


def list_notifications(session: Session, user_id: str, limit: int = 50) -> List[Notification]:
    statement = (
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
    )
    return list(session.exec(statement).all())


def unread_count(session: Session, user_id: str) -> int:
    statement = select(func.count()).select_from(Notification).where(
        Notification.user_id == user_id, Notification.is_read == 0
    )
    return session.exec(statement).one()


def mark_read(session: Session, user_id: str, notification_id: Optional[int] = None,
              mark_all: bool = False) -> int:
    """Mark one or all of the user's notifications read; returns rows touched."""
    statement = select(Notification).where(Notification.user_id == user_id, Notification.is_read == 0)
    if not mark_all:
        statement = statement.where(Notification.id == notification_id)
    rows = session.exec(statement).all()
    for row in rows:
        row.is_read = 1
        session.add(row)
    session.commit()
    return len(rows)
