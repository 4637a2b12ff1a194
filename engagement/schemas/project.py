from typing import Any, List, Optional
from pydantic import BaseModel

from engagement.models.project import MilestoneTemplate, ProjectStatus


# Properties to receive via API on creation. Everything is optional here so
# that missing fields are reported as a 400 by the service, not a 422.
class ProjectCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    scope: Optional[str] = None
    budget_min: Any = None
    budget_max: Any = None
    deadline: Optional[str] = None
    skills: List[str] = []
    milestones: List[dict] = []


class ProjectCreated(BaseModel):
    success: bool = True
    project_id: int


class ProjectAction(BaseModel):
    project_id: Optional[int] = None
    reason: Optional[str] = None


# Properties to return to client
class ProjectRead(BaseModel):
    id: int
    client_id: str
    title: str
    summary: str
    scope: Optional[str] = None
    milestone_templates: List[MilestoneTemplate] = []
    skills: List[str] = []
    budget_min: float
    budget_max: float
    deadline: str
    status: ProjectStatus
    assignment_id: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class SuccessResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
