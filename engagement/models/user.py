"""
User Model Module

This module defines the User model and UserRole enumeration used for
authorization throughout the engagement lifecycle.
"""
from enum import Enum
from typing import List, Optional
from sqlmodel import SQLModel, Field, JSON, Column, AutoString
import uuid
from datetime import datetime, timezone


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class UserRole(str, Enum):
    """
    Roles a marketplace user can hold.

    A user may hold both CLIENT and CONTRIBUTOR and switch between them per
    request (the "active role"). ADMIN can act on behalf of clients when
    creating projects and sees unfiltered bid listings.
    """
    CLIENT = "Client"
    CONTRIBUTOR = "Contributor"
    ADMIN = "Admin"


class User(SQLModel, table=True):
    """
    User model representing a marketplace participant.

    Attributes:
        id: Unique identifier (UUID) automatically generated for each user
        email: Email address carried as the token subject (unique, indexed)
        full_name: Display name used in notification payloads
        roles: List of UserRole values held by this user
        primary_role: Role used when a request does not name an active role
        rating_avg: Mean star rating over every review received (None until reviewed)
        created_at: ISO timestamp when the user account was created
    """
    __tablename__ = "users"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)

    email: str = Field(unique=True, index=True, nullable=False)
    full_name: Optional[str] = None

    # Stored as JSON array in database
    roles: List[UserRole] = Field(default=[UserRole.CONTRIBUTOR], sa_column=Column(JSON))
    primary_role: UserRole = Field(default=UserRole.CONTRIBUTOR, sa_type=AutoString)

    rating_avg: Optional[float] = None

    created_at: Optional[str] = Field(default_factory=utcnow_iso)

    @property
    def display_name(self) -> str:
        return self.full_name or self.email

    def has_role(self, role: UserRole) -> bool:
        return role in (self.roles or [])
