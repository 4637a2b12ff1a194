"""
Project creation and read models.
"""
import logging
import math
from typing import Any, List, Optional

from sqlmodel import Session, select

from engagement.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from engagement.core.principal import Principal
from engagement.models.bid import Assignment
from engagement.models.project import Project, ProjectStatus
from engagement.models.user import UserRole
from engagement.schemas.project import ProjectCreate, ProjectRead
from engagement.services.definitions import normalize_due_date, parse_definition, parse_milestone_templates
from engagement.services.transaction import atomic

logger = logging.getLogger(__name__)


def _as_number(value: Any) -> float:
    if isinstance(value, bool):
        raise ValidationError("Budget must be numeric")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Budget must be numeric") from None
    if not math.isfinite(number):
        raise ValidationError("Budget must be numeric")
    return number


def create_project(session: Session, principal: Principal, data: ProjectCreate) -> Project:
    """
    Create a project owned by the caller.

    Scope and milestone plans arrive either as dedicated fields or embedded in
    the description (older clients); both are stored in structured columns,
    with explicit fields taking precedence.
    """
    if not (principal.is_admin or principal.acts_as(UserRole.CLIENT)):
        raise ForbiddenError("Forbidden: insufficient role. Please switch to Client mode to perform this action.")

    if not data.title or not data.description or data.budget_min in (None, "") \
            or data.budget_max in (None, "") or not data.deadline:
        raise ValidationError("Missing required fields")

    budget_min = _as_number(data.budget_min)
    budget_max = _as_number(data.budget_max)
    if budget_min < 0 or budget_max < budget_min:
        raise ValidationError("Budget range is invalid")

    try:
        deadline = normalize_due_date(data.deadline)
    except ValueError:
        raise ValidationError("Deadline must be a date (YYYY-MM-DD or MM/DD/YYYY)") from None

    embedded = parse_definition(data.description)
    scope = data.scope.strip() if data.scope and data.scope.strip() else embedded.scope
    templates = parse_milestone_templates(data.milestones) if data.milestones else embedded.milestones
    if len(templates) < len(data.milestones):
        raise ValidationError("Each milestone needs a title and a valid due date")

    project = Project(
        client_id=principal.user_id,
        title=data.title.strip(),
        description=embedded.summary,
        scope=scope,
        milestone_templates=[t.model_dump() for t in templates],
        skills=[s.strip() for s in data.skills if s and s.strip()],
        budget_min=budget_min,
        budget_max=budget_max,
        deadline=deadline,
    )
    with atomic(session, "project creation"):
        session.add(project)
    session.refresh(project)
    logger.info("Project %s created by %s", project.id, principal.user_id)
    return project


def get_project(session: Session, project_id: int) -> Project:
    project = session.get(Project, project_id)
    if not project:
        raise NotFoundError("Project not found")
    return project


def get_assignment(session: Session, project_id: int) -> Optional[Assignment]:
    return session.exec(select(Assignment).where(Assignment.project_id == project_id)).first()


def list_projects(session: Session, status: Optional[ProjectStatus] = None,
                  client_id: Optional[str] = None, skip: int = 0, limit: int = 100) -> List[Project]:
    statement = select(Project)
    if status:
        statement = statement.where(Project.status == status)
    if client_id:
        statement = statement.where(Project.client_id == client_id)
    statement = statement.order_by(Project.created_at.desc()).offset(skip).limit(limit)
    return list(session.exec(statement).all())


def project_view(session: Session, project: Project) -> ProjectRead:
    definition = project.definition()
    assignment = get_assignment(session, project.id)
    return ProjectRead(
        id=project.id,
        client_id=project.client_id,
        title=project.title,
        summary=definition.summary,
        scope=definition.scope,
        milestone_templates=definition.milestones,
        skills=project.skills or [],
        budget_min=project.budget_min,
        budget_max=project.budget_max,
        deadline=project.deadline,
        status=project.status,
        assignment_id=assignment.id if assignment else None,
        created_at=project.created_at,
        updated_at=project.updated_at,
    )
