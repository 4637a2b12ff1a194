from fastapi import APIRouter, Depends
from sqlmodel import Session
from engagement.db.session import get_db
from engagement.core.principal import Principal
from engagement.schemas.milestone import AssignmentList
from engagement.services import milestones as milestone_service
from engagement.api import deps

router = APIRouter()


@router.get("", response_model=AssignmentList)
def list_assignments(
    admin: bool = False,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_principal),
):
    """
    Active assignments for the caller in their acting role, each with its
    milestones and their progress. Admins can pass ``admin=true`` to see all.
    """
    return AssignmentList(assignments=milestone_service.list_assignments(db, principal, admin_view=admin))
