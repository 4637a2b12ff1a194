"""
Milestone Model Module

This module defines the Milestone model: a trackable checkpoint under an
Assignment with its own Open -> Submitted -> Approved lifecycle, plus the
schemas for the deliverables carried inside a submission.
"""
from enum import Enum
from typing import List, Optional
from sqlmodel import SQLModel, Field, AutoString, UniqueConstraint
from pydantic import BaseModel


class MilestoneStatus(str, Enum):
    OPEN = "Open"
    SUBMITTED = "Submitted"
    APPROVED = "Approved"


class SubmittedDeliverable(BaseModel):
    """A deliverable as handed in: its name and the uploaded file URLs."""
    name: str
    required: bool = True
    files: List[str] = []


class SubmissionNotes(BaseModel):
    """Decoded form of ``Milestone.submission_notes``."""
    text: Optional[str] = None
    deliverables: List[SubmittedDeliverable] = []


class Milestone(SQLModel, table=True):
    """
    Milestone model.

    Milestones are unique per assignment by (title, due_date) so that
    re-running acceptance never duplicates them.

    Attributes:
        id: Auto-incrementing primary key
        assignment_id: Foreign key to the owning assignment
        title: Milestone title
        due_date: Due date in ISO format (YYYY-MM-DD)
        status: One of MilestoneStatus
        submission_notes: JSON-encoded SubmissionNotes (kept when returned for changes)
        submission_url: Optional link supplied with the submission
        submitted_at: ISO timestamp of the latest submission
    """
    __tablename__ = "milestones"
    __table_args__ = (
        UniqueConstraint("assignment_id", "title", "due_date", name="uq_milestone_assignment_title_due"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)

    assignment_id: int = Field(foreign_key="assignments.id", index=True)

    title: str = Field(nullable=False)
    due_date: str = Field(nullable=False)

    status: MilestoneStatus = Field(default=MilestoneStatus.OPEN, sa_type=AutoString)

    submission_notes: Optional[str] = None
    submission_url: Optional[str] = None
    submitted_at: Optional[str] = None
