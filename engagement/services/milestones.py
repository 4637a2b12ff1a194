"""
Milestone State Machine

    Open --submit--> Submitted --approve--> Approved
      ^                  |
      +-----return-------+

Only the assigned contributor submits; only the project's client approves or
returns. Returning keeps the submission notes so the contributor can revise
them. Approved is terminal.
"""
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlmodel import Session, select

from engagement.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from engagement.core.principal import Principal
from engagement.models.bid import Assignment, Bid
from engagement.models.milestone import Milestone, MilestoneStatus, SubmissionNotes
from engagement.models.notification import NotificationType
from engagement.models.project import Project, ProjectStatus
from engagement.models.user import User, UserRole, utcnow_iso
from engagement.schemas.milestone import AssignmentRead, MilestoneRead
from engagement.services.definitions import ProjectDefinition, normalize_due_date
from engagement.services.notifications import Notifier
from engagement.services.progress import milestone_progress, parse_submission_notes
from engagement.services.transaction import atomic

logger = logging.getLogger(__name__)

SUBMIT = "submit"
APPROVE = "approve"
RETURN = "return"


@dataclass
class MilestoneContext:
    milestone: Milestone
    assignment: Assignment
    project: Project
    contributor_id: str

    def is_client(self, principal: Principal) -> bool:
        return self.project.client_id == principal.user_id

    def is_contributor(self, principal: Principal) -> bool:
        return self.contributor_id == principal.user_id

    def payload(self, **extra) -> dict:
        return {
            "milestone_id": self.milestone.id,
            "milestone_title": self.milestone.title,
            "project_title": self.project.title,
            **extra,
        }


def _load(session: Session, milestone_id: Optional[int]) -> MilestoneContext:
    if not milestone_id:
        raise ValidationError("milestone_id required")
    row = session.exec(
        select(Milestone, Assignment, Project, Bid)
        .join(Assignment, Milestone.assignment_id == Assignment.id)
        .join(Project, Assignment.project_id == Project.id)
        .join(Bid, Assignment.bid_id == Bid.id)
        .where(Milestone.id == milestone_id)
        .with_for_update()
    ).first()
    if not row:
        raise NotFoundError("Milestone not found")
    milestone, assignment, project, bid = row
    return MilestoneContext(milestone, assignment, project, bid.contributor_id)


def _encode_notes(notes: Any) -> Optional[str]:
    if notes is None:
        return None
    if isinstance(notes, str):
        return SubmissionNotes(text=notes).model_dump_json()
    try:
        return SubmissionNotes.model_validate(notes).model_dump_json()
    except PydanticValidationError:
        raise ValidationError("submission_notes must be text or a notes object") from None


def _normalize_due(value: str) -> str:
    try:
        return normalize_due_date(value)
    except ValueError:
        raise ValidationError("due_date must be a date (YYYY-MM-DD or MM/DD/YYYY)") from None


def _duplicate_exists(session: Session, assignment_id: int, title: str, due_date: str,
                      exclude_id: Optional[int] = None) -> bool:
    statement = select(Milestone).where(
        Milestone.assignment_id == assignment_id,
        Milestone.title == title,
        Milestone.due_date == due_date,
    )
    if exclude_id is not None:
        statement = statement.where(Milestone.id != exclude_id)
    return session.exec(statement).first() is not None


def submit(session: Session, principal: Principal, milestone_id: Optional[int], notes: Any,
           submission_url: Optional[str], notifier: Notifier) -> Milestone:
    """
    Hand in work for a milestone.

    ``notes`` is either plain text or an object with ``text`` and
    ``deliverables`` (each with uploaded file URLs); it is stored as JSON.
    Resubmitting a Submitted milestone replaces the earlier submission.
    """
    encoded = _encode_notes(notes)
    with atomic(session, "milestone submission", notifier):
        ctx = _load(session, milestone_id)
        if not ctx.is_contributor(principal):
            raise ForbiddenError("Only the assigned contributor can submit this milestone")
        if ctx.project.status != ProjectStatus.IN_PROGRESS:
            raise ConflictError(f"Cannot submit milestones on a {ProjectStatus(ctx.project.status).value} project")
        if ctx.milestone.status == MilestoneStatus.APPROVED:
            raise ConflictError("Milestone has already been approved")

        milestone = ctx.milestone
        milestone.status = MilestoneStatus.SUBMITTED
        if encoded is not None:
            milestone.submission_notes = encoded
        if submission_url:
            milestone.submission_url = submission_url
        milestone.submitted_at = utcnow_iso()
        session.add(milestone)

        notifier.notify(ctx.project.client_id, NotificationType.MILESTONE_SUBMITTED,
                        ctx.payload(contributor_name=principal.name))

    session.refresh(milestone)
    logger.info("Milestone %s submitted by %s", milestone.id, principal.user_id)
    return milestone


def _review(session: Session, principal: Principal, milestone_id: Optional[int], target: MilestoneStatus,
            notification_type: str, notifier: Notifier) -> Milestone:
    with atomic(session, "milestone review", notifier):
        ctx = _load(session, milestone_id)
        if not ctx.is_client(principal):
            raise ForbiddenError("Only the project's client can review this milestone")
        if ctx.milestone.status != MilestoneStatus.SUBMITTED:
            raise ConflictError(f"Milestone must be Submitted (currently {MilestoneStatus(ctx.milestone.status).value})")

        milestone = ctx.milestone
        milestone.status = target
        session.add(milestone)
        notifier.notify(ctx.contributor_id, notification_type, ctx.payload())

    session.refresh(milestone)
    logger.info("Milestone %s moved to %s by %s", milestone.id, target.value, principal.user_id)
    return milestone


def approve(session: Session, principal: Principal, milestone_id: Optional[int],
            notifier: Notifier) -> Milestone:
    return _review(session, principal, milestone_id, MilestoneStatus.APPROVED,
                   NotificationType.MILESTONE_APPROVED, notifier)


def return_for_changes(session: Session, principal: Principal, milestone_id: Optional[int],
                       notifier: Notifier) -> Milestone:
    """Send a submitted milestone back to Open, keeping its submission notes."""
    return _review(session, principal, milestone_id, MilestoneStatus.OPEN,
                   NotificationType.MILESTONE_RETURNED, notifier)


def apply_action(session: Session, principal: Principal, milestone_id: Optional[int], action: Optional[str],
                 notifier: Notifier, submission_notes: Any = None,
                 submission_url: Optional[str] = None) -> Milestone:
    if action == SUBMIT:
        return submit(session, principal, milestone_id, submission_notes, submission_url, notifier)
    if action == APPROVE:
        return approve(session, principal, milestone_id, notifier)
    if action == RETURN:
        return return_for_changes(session, principal, milestone_id, notifier)
    raise ValidationError("Invalid action")


def update_metadata(session: Session, principal: Principal, milestone_id: Optional[int],
                    title: Optional[str], due_date: Optional[str], notifier: Notifier) -> bool:
    """
    Change a milestone's title or due date.

    The client's edits are applied directly. A contributor can only propose
    them: the proposal is sent to the client as a change request and nothing
    is written to the milestone.

    Returns:
        True if the milestone was changed, False if a request was sent instead
    """
    title = title.strip() if title and title.strip() else None
    due_date = _normalize_due(due_date) if due_date else None
    if title is None and due_date is None:
        raise ValidationError("No fields to update")

    with atomic(session, "milestone update", notifier):
        ctx = _load(session, milestone_id)
        milestone = ctx.milestone

        if ctx.is_client(principal):
            new_title = title or milestone.title
            new_due = due_date or milestone.due_date
            if _duplicate_exists(session, milestone.assignment_id, new_title, new_due, exclude_id=milestone.id):
                raise ConflictError("A milestone with this title and due date already exists")
            milestone.title = new_title
            milestone.due_date = new_due
            session.add(milestone)
            applied = True
        elif ctx.is_contributor(principal):
            notifier.notify(ctx.project.client_id, NotificationType.MILESTONE_CHANGE_REQUEST,
                            ctx.payload(proposed_title=title, proposed_due_date=due_date,
                                        contributor_name=principal.name))
            applied = False
        else:
            raise ForbiddenError("Not authorized")

    logger.info("Milestone %s %s by %s", milestone_id, "updated" if applied else "change requested", principal.user_id)
    return applied


def add_milestone(session: Session, principal: Principal, assignment_id: Optional[int],
                  title: Optional[str], due_date: Optional[str]) -> Milestone:
    if not assignment_id or not (title and title.strip()) or not due_date:
        raise ValidationError("assignment_id, title and due_date required")
    title = title.strip()
    due_date = _normalize_due(due_date)

    with atomic(session, "milestone creation"):
        assignment = session.get(Assignment, assignment_id)
        if not assignment:
            raise NotFoundError("Assignment not found")
        project = session.get(Project, assignment.project_id)
        if project.client_id != principal.user_id:
            raise ForbiddenError("Only the project's client can add milestones")
        if project.status in (ProjectStatus.COMPLETED, ProjectStatus.CANCELED):
            raise ConflictError(f"Cannot add milestones to a {ProjectStatus(project.status).value} project")
        if _duplicate_exists(session, assignment_id, title, due_date):
            raise ConflictError("A milestone with this title and due date already exists")

        milestone = Milestone(assignment_id=assignment_id, title=title, due_date=due_date)
        session.add(milestone)

    session.refresh(milestone)
    return milestone


def milestone_view(milestone: Milestone, definition: ProjectDefinition) -> MilestoneRead:
    template = definition.template_for(milestone.title)
    return MilestoneRead(
        id=milestone.id,
        assignment_id=milestone.assignment_id,
        title=milestone.title,
        due_date=milestone.due_date,
        status=milestone.status,
        submission_notes=parse_submission_notes(milestone.submission_notes),
        submission_url=milestone.submission_url,
        submitted_at=milestone.submitted_at,
        deliverables=template.deliverables if template else [],
        progress=milestone_progress(milestone.status, milestone.submission_notes, template),
    )


def _milestones_for(session: Session, assignment_id: int) -> List[Milestone]:
    statement = (
        select(Milestone)
        .where(Milestone.assignment_id == assignment_id)
        .order_by(Milestone.due_date, Milestone.id)
    )
    return list(session.exec(statement).all())


def list_milestones(session: Session, project_id: Optional[int] = None,
                    assignment_id: Optional[int] = None) -> List[MilestoneRead]:
    """Milestones of one assignment (looked up directly or by project), by due date."""
    if not project_id and not assignment_id:
        raise ValidationError("project_id or assignment_id required")

    if assignment_id:
        assignment = session.get(Assignment, assignment_id)
    else:
        assignment = session.exec(select(Assignment).where(Assignment.project_id == project_id)).first()
    if not assignment:
        return []

    definition = session.get(Project, assignment.project_id).definition()
    return [milestone_view(m, definition) for m in _milestones_for(session, assignment.id)]


def list_assignments(session: Session, principal: Principal, admin_view: bool = False) -> List[AssignmentRead]:
    """
    Active assignments for the caller, newest project first.

    Acting as Client lists assignments on the caller's projects; acting as
    Contributor lists the caller's accepted work. Completed projects are left
    out of both. Admins may pass ``admin_view`` to see every assignment.
    """
    statement = (
        select(Assignment, Project, Bid, User)
        .join(Project, Assignment.project_id == Project.id)
        .join(Bid, Assignment.bid_id == Bid.id)
        .join(User, Bid.contributor_id == User.id)
    )
    if not (admin_view and principal.is_admin):
        if principal.acts_as(UserRole.CLIENT):
            statement = statement.where(Project.client_id == principal.user_id)
        else:
            statement = statement.where(Bid.contributor_id == principal.user_id)
        statement = statement.where(Project.status != ProjectStatus.COMPLETED)
    statement = statement.order_by(Project.created_at.desc(), Project.id.desc())

    assignments = []
    for assignment, project, bid, contributor in session.exec(statement).all():
        definition = project.definition()
        milestones = [milestone_view(m, definition) for m in _milestones_for(session, assignment.id)]
        assignments.append(AssignmentRead(
            id=assignment.id,
            project_id=project.id,
            bid_id=bid.id,
            project_title=project.title,
            project_summary=definition.summary,
            project_status=project.status,
            deadline=project.deadline,
            client_id=project.client_id,
            contributor_id=bid.contributor_id,
            contributor_name=contributor.display_name,
            milestone_count=len(milestones),
            completed_milestones=sum(1 for m in milestones if m.status == MilestoneStatus.APPROVED),
            milestones=milestones,
        ))
    return assignments
