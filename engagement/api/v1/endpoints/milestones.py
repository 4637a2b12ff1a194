"""
Milestone Endpoints Module

This module exposes the milestone state machine: listing milestones with
their progress, submitting work, approving or returning it, and editing
milestone metadata.
"""
from typing import Optional
from fastapi import APIRouter, Depends
from sqlmodel import Session
from engagement.db.session import get_db
from engagement.models.milestone import MilestoneStatus
from engagement.core.principal import Principal
from engagement.schemas.milestone import (
    MilestoneAction, MilestoneCreate, MilestoneCreated, MilestoneList, MilestoneUpdate, MilestoneUpdated
)
from engagement.schemas.project import SuccessResponse
from engagement.services import milestones as milestone_service
from engagement.services.notifications import Notifier
from engagement.api import deps

router = APIRouter()


@router.get("", response_model=MilestoneList)
def list_milestones(
    project_id: Optional[int] = None,
    assignment_id: Optional[int] = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_principal),
):
    """
    Milestones of a project (or assignment), ordered by due date, each with
    its computed progress percentage.
    """
    return MilestoneList(milestones=milestone_service.list_milestones(db, project_id, assignment_id))


@router.post("", response_model=MilestoneCreated)
def add_milestone(
    milestone_in: MilestoneCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_principal),
):
    milestone = milestone_service.add_milestone(
        db, principal, milestone_in.assignment_id, milestone_in.title, milestone_in.due_date
    )
    return MilestoneCreated(milestone_id=milestone.id)


@router.put("", response_model=SuccessResponse)
def milestone_action(
    action_in: MilestoneAction,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_principal),
    notifier: Notifier = Depends(deps.get_notifier),
):
    """
    Move a milestone through its lifecycle.

    Actions:
        submit: assigned contributor hands in work (submission_notes, submission_url)
        approve: client accepts the submitted work
        return: client sends the submission back for changes
    """
    milestone = milestone_service.apply_action(
        db, principal, action_in.milestone_id, action_in.action, notifier,
        submission_notes=action_in.submission_notes,
        submission_url=action_in.submission_url,
    )
    notifier.dispatch()
    return SuccessResponse(message=f"Milestone is now {MilestoneStatus(milestone.status).value}")


@router.patch("", response_model=MilestoneUpdated)
def update_milestone(
    update_in: MilestoneUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_principal),
    notifier: Notifier = Depends(deps.get_notifier),
):
    """
    Edit a milestone's title or due date.

    ``applied`` is false when the caller is the contributor: the change was
    sent to the client as a request instead of being written.
    """
    applied = milestone_service.update_metadata(
        db, principal, update_in.milestone_id, update_in.title, update_in.due_date, notifier
    )
    notifier.dispatch()
    return MilestoneUpdated(applied=applied)
