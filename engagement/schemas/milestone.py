from typing import Any, List, Optional
from pydantic import BaseModel

from engagement.models.milestone import MilestoneStatus, SubmissionNotes
from engagement.models.project import DeliverableTemplate, ProjectStatus


class MilestoneCreate(BaseModel):
    assignment_id: Optional[int] = None
    title: Optional[str] = None
    due_date: Optional[str] = None


class MilestoneCreated(BaseModel):
    success: bool = True
    milestone_id: int


class MilestoneAction(BaseModel):
    milestone_id: Optional[int] = None
    action: Optional[str] = None  # "submit", "approve" or "return"
    submission_notes: Any = None  # plain text or {"text": ..., "deliverables": [...]}
    submission_url: Optional[str] = None


class MilestoneUpdate(BaseModel):
    milestone_id: Optional[int] = None
    title: Optional[str] = None
    due_date: Optional[str] = None


class MilestoneUpdated(BaseModel):
    success: bool = True
    applied: bool


class MilestoneRead(BaseModel):
    id: int
    assignment_id: int
    title: str
    due_date: str
    status: MilestoneStatus
    submission_notes: Optional[SubmissionNotes] = None
    submission_url: Optional[str] = None
    submitted_at: Optional[str] = None
    deliverables: List[DeliverableTemplate] = []
    progress: int = 0


class MilestoneList(BaseModel):
    success: bool = True
    milestones: List[MilestoneRead] = []


class AssignmentRead(BaseModel):
    id: int
    project_id: int
    bid_id: int
    project_title: str
    project_summary: str
    project_status: ProjectStatus
    deadline: str
    client_id: str
    contributor_id: str
    contributor_name: Optional[str] = None
    milestone_count: int = 0
    completed_milestones: int = 0
    milestones: List[MilestoneRead] = []


class AssignmentList(BaseModel):
    success: bool = True
    assignments: List[AssignmentRead] = []
