"""
Acceptance Transaction

Resolving a bid is the one operation that touches every part of the
engagement at once: competing bids, the assignment, the milestone set and the
project status. All of it happens inside a single ``atomic`` block, so either
the whole acceptance is visible or none of it is.

Ordering inside an acceptance:

1. lock the bid and project rows
2. reject every other pending bid
3. get or create the project's assignment
4. create milestones from the project's templates (skipping existing ones)
5. move the project Open -> InProgress
6. mark the target bid Accepted
7. queue notifications and courtesy messages
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlmodel import Session, select

from engagement.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from engagement.core.principal import Principal
from engagement.models.bid import Assignment, Bid, BidStatus
from engagement.models.milestone import Milestone, MilestoneStatus
from engagement.models.notification import NotificationType
from engagement.models.project import MilestoneTemplate, Project, ProjectStatus
from engagement.services.notifications import ACCEPTANCE_MESSAGE, REJECTION_MESSAGE, Notifier
from engagement.services.transaction import atomic

logger = logging.getLogger(__name__)

ACCEPT = "accept"
REJECT = "reject"


@dataclass
class Resolution:
    bid: Bid
    action: str
    assignment: Optional[Assignment] = None
    rejected_bid_ids: List[int] = field(default_factory=list)
    created_milestones: List[Milestone] = field(default_factory=list)


def materialize_milestones(session: Session, assignment_id: int,
                           templates: List[MilestoneTemplate]) -> List[Milestone]:
    """
    Insert an Open milestone for every template not already present.

    A milestone is identified within its assignment by (title, due date), so
    calling this again with the same templates creates nothing.
    """
    created = []
    seen = set()
    for template in templates:
        key = (template.title, template.due)
        if key in seen:
            continue
        seen.add(key)
        existing = session.exec(
            select(Milestone).where(
                Milestone.assignment_id == assignment_id,
                Milestone.title == template.title,
                Milestone.due_date == template.due,
            )
        ).first()
        if existing:
            continue
        milestone = Milestone(
            assignment_id=assignment_id,
            title=template.title,
            due_date=template.due,
            status=MilestoneStatus.OPEN,
        )
        session.add(milestone)
        created.append(milestone)
    session.flush()
    return created


def _load_for_update(session: Session, bid_id: int):
    bid = session.exec(select(Bid).where(Bid.id == bid_id).with_for_update()).first()
    if not bid:
        raise NotFoundError("Bid not found")
    project = session.exec(select(Project).where(Project.id == bid.project_id).with_for_update()).first()
    if not project:
        raise NotFoundError("Project not found")
    return bid, project


def _reject(session: Session, principal: Principal, bid: Bid, project: Project,
            notifier: Notifier) -> Resolution:
    if bid.status != BidStatus.PENDING:
        raise ConflictError(f"Only pending bids can be rejected (bid is {BidStatus(bid.status).value})")

    bid.status = BidStatus.REJECTED
    session.add(bid)

    notifier.notify(bid.contributor_id, NotificationType.BID_REJECTED,
                    {"bid_id": bid.id, "project_title": project.title})
    notifier.send_message(project.id, principal.user_id, bid.contributor_id, REJECTION_MESSAGE)
    return Resolution(bid=bid, action=REJECT)


def _accept(session: Session, principal: Principal, bid: Bid, project: Project,
            notifier: Notifier) -> Resolution:
    if project.status in (ProjectStatus.COMPLETED, ProjectStatus.CANCELED):
        raise ConflictError(f"Cannot accept bids on a {ProjectStatus(project.status).value} project")
    if bid.status == BidStatus.REJECTED:
        raise ConflictError("This bid has been rejected; the contributor must bid again")

    other_accepted = session.exec(
        select(Bid).where(
            Bid.project_id == project.id,
            Bid.id != bid.id,
            Bid.status == BidStatus.ACCEPTED,
        )
    ).first()
    if other_accepted:
        raise ConflictError("Another bid has already been accepted for this project")

    already_accepted = bid.status == BidStatus.ACCEPTED

    # Competing bids are closed before the winner is touched
    competing = session.exec(
        select(Bid).where(
            Bid.project_id == project.id,
            Bid.id != bid.id,
            Bid.status == BidStatus.PENDING,
        )
    ).all()
    for other in competing:
        other.status = BidStatus.REJECTED
        session.add(other)
    session.flush()

    assignment = session.exec(select(Assignment).where(Assignment.project_id == project.id)).first()
    if assignment is None:
        assignment = Assignment(project_id=project.id, bid_id=bid.id)
        session.add(assignment)
        session.flush()

    created = materialize_milestones(session, assignment.id, project.definition().milestones)

    if project.status == ProjectStatus.OPEN:
        project.status = ProjectStatus.IN_PROGRESS
        project.touch()
        session.add(project)

    bid.status = BidStatus.ACCEPTED
    session.add(bid)
    session.flush()

    for other in competing:
        notifier.notify(other.contributor_id, NotificationType.BID_REJECTED,
                        {"bid_id": other.id, "project_title": project.title})
        notifier.send_message(project.id, principal.user_id, other.contributor_id, REJECTION_MESSAGE)
    if not already_accepted:
        notifier.notify(bid.contributor_id, NotificationType.BID_ACCEPTED,
                        {"bid_id": bid.id, "project_title": project.title})
        notifier.send_message(project.id, principal.user_id, bid.contributor_id, ACCEPTANCE_MESSAGE)

    return Resolution(
        bid=bid,
        action=ACCEPT,
        assignment=assignment,
        rejected_bid_ids=[other.id for other in competing],
        created_milestones=created,
    )


def resolve_bid(session: Session, principal: Principal, bid_id: Optional[int],
                action: Optional[str], notifier: Notifier) -> Resolution:
    """
    Accept or reject a bid on one of the caller's projects.

    Accepting an already accepted bid re-runs the derivation steps without
    creating a second assignment or duplicate milestones.

    Raises:
        ValidationError: Missing bid id or unknown action
        NotFoundError: The bid (or its project) does not exist
        ForbiddenError: The caller is not the project's client
        ConflictError: The bid or project is not in a state that allows it
        DatabaseError: The transaction failed; nothing was written
    """
    if not bid_id or not action:
        raise ValidationError("bid_id and action required")
    if action not in (ACCEPT, REJECT):
        raise ValidationError("Invalid action")

    with atomic(session, f"bid {action}", notifier):
        bid, project = _load_for_update(session, bid_id)
        if project.client_id != principal.user_id:
            raise ForbiddenError("Not authorized")

        if action == REJECT:
            resolution = _reject(session, principal, bid, project, notifier)
        else:
            resolution = _accept(session, principal, bid, project, notifier)

    logger.info(
        "Bid %s on project %s %sed by %s (rejected=%s, milestones created=%d)",
        bid.id, project.id, action, principal.user_id,
        resolution.rejected_bid_ids, len(resolution.created_milestones),
    )
    return resolution
