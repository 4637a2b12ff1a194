"""
Notification and Message Models Module

Both tables are write-only side effects of lifecycle transitions:
1. Notification: typed event for a recipient (payload stored as JSON text)
2. Message: courtesy message sent between the parties of a project
"""
import json
from typing import Any, Optional
from sqlmodel import SQLModel, Field
from pydantic import field_validator

from engagement.models.user import utcnow_iso


class NotificationType:
    BID_PENDING = "BidPending"
    BID_UPDATED = "BidUpdated"
    BID_ACCEPTED = "BidAccepted"
    BID_REJECTED = "BidRejected"
    MILESTONE_SUBMITTED = "MilestoneSubmitted"
    MILESTONE_APPROVED = "MilestoneApproved"
    MILESTONE_RETURNED = "MilestoneReturned"
    MILESTONE_CHANGE_REQUEST = "MilestoneChangeRequest"
    PROJECT_COMPLETED = "ProjectCompleted"
    PROJECT_CANCELED = "ProjectCanceled"
    REVIEW_RECEIVED = "ReviewReceived"


class Notification(SQLModel, table=True):
    __tablename__ = "notifications"

    id: Optional[int] = Field(default=None, primary_key=True)

    user_id: str = Field(foreign_key="users.id", index=True)
    type: str = Field(nullable=False)
    payload_json: str = "{}"

    # Integer flag for MySQL compatibility (0 = unread, 1 = read)
    is_read: int = 0

    created_at: Optional[str] = Field(default_factory=utcnow_iso)


class NotificationRead(SQLModel):
    """Schema for reading a notification with its payload decoded."""
    id: int
    type: str
    payload: Any = None
    is_read: bool
    created_at: Optional[str] = None

    @field_validator("payload", mode="before")
    @classmethod
    def parse_payload(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return {}
        return v

    @classmethod
    def from_row(cls, row: Notification) -> "NotificationRead":
        return cls(
            id=row.id,
            type=row.type,
            payload=row.payload_json,
            is_read=bool(row.is_read),
            created_at=row.created_at,
        )


class Message(SQLModel, table=True):
    __tablename__ = "messages"

    id: Optional[int] = Field(default=None, primary_key=True)

    project_id: int = Field(foreign_key="projects.id", index=True)
    sender_id: str = Field(foreign_key="users.id")
    recipient_id: str = Field(foreign_key="users.id", index=True)
    body: str

    created_at: Optional[str] = Field(default_factory=utcnow_iso)
