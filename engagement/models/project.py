"""
Project Model Module

This module defines the Project model: a unit of work posted by a Client with
a budget range, deadline and a set of milestone templates that become real
milestones once a bid is accepted.
"""
from enum import Enum
from typing import List, Optional, TYPE_CHECKING
from sqlmodel import SQLModel, Field, JSON, Column, AutoString
from pydantic import BaseModel

from engagement.models.user import utcnow_iso

if TYPE_CHECKING:
    from engagement.services.definitions import ProjectDefinition


class ProjectStatus(str, Enum):
    """
    Project lifecycle states.

    Allowed transitions: OPEN -> IN_PROGRESS (bid accepted),
    IN_PROGRESS -> COMPLETED (finalized), any non-completed state -> CANCELED.
    """
    OPEN = "Open"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    CANCELED = "Canceled"


class DeliverableTemplate(BaseModel):
    """A named item the contributor is expected to hand in for a milestone."""
    name: str
    required: bool = True


class MilestoneTemplate(BaseModel):
    """Milestone definition declared on the project at creation time."""
    title: str
    due: str  # YYYY-MM-DD
    deliverables: List[DeliverableTemplate] = []


class Project(SQLModel, table=True):
    """
    Project model.

    Attributes:
        id: Auto-incrementing primary key
        client_id: Foreign key to the User who posted the project
        title: Project title (required)
        description: Free-text summary. Rows written by older clients may still
            embed ``[SCOPE]`` and ``[MILESTONES]`` sections here.
        scope: Optional scope statement
        milestone_templates: JSON array of MilestoneTemplate objects
        skills: JSON array of skill names
        budget_min / budget_max: Budget range
        deadline: Deadline in ISO format (YYYY-MM-DD)
        status: One of ProjectStatus
        created_at / updated_at: ISO timestamps
    """
    __tablename__ = "projects"

    id: Optional[int] = Field(default=None, primary_key=True)

    client_id: str = Field(foreign_key="users.id", index=True)

    title: str = Field(nullable=False)
    description: str = Field(nullable=False)
    scope: Optional[str] = None

    # Stored as JSON arrays; None means "never structured" (legacy row)
    milestone_templates: Optional[List[dict]] = Field(default=None, sa_column=Column(JSON))
    skills: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))

    budget_min: float
    budget_max: float
    deadline: str

    status: ProjectStatus = Field(default=ProjectStatus.OPEN, sa_type=AutoString)

    created_at: Optional[str] = Field(default_factory=utcnow_iso)
    updated_at: Optional[str] = Field(default_factory=utcnow_iso)

    def definition(self) -> "ProjectDefinition":
        """
        Summary, scope and milestone templates for this project.

        Structured columns win; rows created before they existed fall back to
        parsing the markers embedded in ``description``.
        """
        from engagement.services.definitions import ProjectDefinition, parse_definition

        if self.milestone_templates is not None or self.scope is not None:
            return ProjectDefinition(
                summary=self.description.strip(),
                scope=self.scope,
                milestones=[MilestoneTemplate.model_validate(m) for m in (self.milestone_templates or [])],
            )
        return parse_definition(self.description)

    def touch(self) -> None:
        self.updated_at = utcnow_iso()
