"""
Review Model Module
"""
from typing import Optional
from sqlmodel import SQLModel, Field, UniqueConstraint

from engagement.models.user import utcnow_iso


class Review(SQLModel, table=True):
    """
    Star rating left by a project's client for its contributor.

    One review per (project, reviewer, reviewee).
    """
    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("project_id", "reviewer_id", "reviewee_id", name="uq_review_project_reviewer_reviewee"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)

    project_id: int = Field(foreign_key="projects.id", index=True)
    reviewer_id: str = Field(foreign_key="users.id")
    reviewee_id: str = Field(foreign_key="users.id", index=True)

    stars: int = Field(ge=1, le=5)
    comment: Optional[str] = None

    created_at: Optional[str] = Field(default_factory=utcnow_iso)
