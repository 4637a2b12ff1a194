"""
Project Endpoints Module

This module provides endpoints for posting projects, reading them back, and
the two exits from the lifecycle: finalization (all milestones approved) and
cancellation.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends
from sqlmodel import Session
from engagement.db.session import get_db
from engagement.models.project import ProjectStatus
from engagement.models.user import UserRole
from engagement.core.principal import Principal
from engagement.schemas.project import ProjectAction, ProjectCreate, ProjectCreated, ProjectRead, SuccessResponse
from engagement.services import finalization, projects as project_service
from engagement.services.notifications import Notifier
from engagement.api import deps

router = APIRouter()


@router.get("", response_model=List[ProjectRead])
def list_projects(
    status: Optional[ProjectStatus] = None,
    client_id: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_principal),
):
    """
    Retrieve a paginated list of projects, newest first.

    Args:
        status: Only projects in this lifecycle state (e.g. Open for the bid board)
        client_id: Only projects posted by this client
        skip: Number of records to skip (for pagination)
        limit: Maximum number of records to return
    """
    projects = project_service.list_projects(db, status=status, client_id=client_id, skip=skip, limit=limit)
    return [project_service.project_view(db, project) for project in projects]


@router.get("/{project_id}", response_model=ProjectRead)
def read_project(
    project_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_principal),
):
    """
    Get a specific project by ID, with its summary, scope and milestone plan
    separated out.
    """
    project = project_service.get_project(db, project_id)
    return project_service.project_view(db, project)


@router.post("", response_model=ProjectCreated)
def create_project(
    project_in: ProjectCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.RoleChecker([UserRole.CLIENT, UserRole.ADMIN])),
):
    """
    Post a new project. The caller becomes its client.
    """
    project = project_service.create_project(db, principal, project_in)
    return ProjectCreated(project_id=project.id)


@router.post("/finalize", response_model=SuccessResponse)
def finalize_project(
    action: ProjectAction,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_principal),
    notifier: Notifier = Depends(deps.get_notifier),
):
    """
    Mark the project Completed once every milestone has been approved.
    """
    finalization.finalize(db, principal, action.project_id, notifier)
    notifier.dispatch()
    return SuccessResponse(message="Project finalized successfully")


@router.post("/cancel", response_model=SuccessResponse)
def cancel_project(
    action: ProjectAction,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_principal),
    notifier: Notifier = Depends(deps.get_notifier),
):
    """
    Cancel the project. Either the client or the assigned contributor may do this.
    """
    finalization.cancel(db, principal, action.project_id, action.reason, notifier)
    notifier.dispatch()
    return SuccessResponse(message="Project canceled successfully")
