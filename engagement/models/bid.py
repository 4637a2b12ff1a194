"""
Bid and Assignment Models Module

This module defines two models:
1. Bid: a Contributor's proposal (price, timeline, text) against a Project
2. Assignment: the record linking the accepted Bid to its Project
"""
from enum import Enum
from typing import Optional
from sqlmodel import SQLModel, Field, AutoString, UniqueConstraint

from engagement.models.user import utcnow_iso


class BidStatus(str, Enum):
    """
    Bid states. Rejected bids stay in the table for history and may be
    reopened (reset to PENDING) when the same contributor bids again.
    """
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"


class Bid(SQLModel, table=True):
    """
    Bid model.

    A contributor owns at most one row per project; rebidding after a
    rejection rewrites that row instead of inserting a new one, so the bid id
    is stable across rebid cycles.

    Attributes:
        id: Auto-incrementing primary key
        project_id: Foreign key to the project being bid on
        contributor_id: Foreign key to the bidding user
        amount: Offered price
        timeline_days: Offered delivery time in days
        proposal_text: Free-text proposal
        status: One of BidStatus
        created_at: ISO timestamp, refreshed when a rejected bid is reopened
    """
    __tablename__ = "bids"
    __table_args__ = (UniqueConstraint("project_id", "contributor_id", name="uq_bid_project_contributor"),)

    id: Optional[int] = Field(default=None, primary_key=True)

    project_id: int = Field(foreign_key="projects.id", index=True)
    contributor_id: str = Field(foreign_key="users.id", index=True)

    amount: float
    timeline_days: int
    proposal_text: str

    status: BidStatus = Field(default=BidStatus.PENDING, sa_type=AutoString)

    created_at: Optional[str] = Field(default_factory=utcnow_iso)


class Assignment(SQLModel, table=True):
    """
    Assignment model: the execution vehicle for milestones.

    Exactly one per project (``project_id`` is unique), created when a bid is
    accepted and never deleted while the project is active.
    """
    __tablename__ = "assignments"

    id: Optional[int] = Field(default=None, primary_key=True)

    project_id: int = Field(foreign_key="projects.id", unique=True)
    bid_id: int = Field(foreign_key="bids.id")

    created_at: Optional[str] = Field(default_factory=utcnow_iso)
