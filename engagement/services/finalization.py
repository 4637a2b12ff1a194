"""
Finalization & Review Gate

A project can only be completed once every one of its milestones is Approved,
and can only be reviewed once it is Completed. Cancellation is the one exit
from the lifecycle that skips the gate.
"""
import logging
from typing import Optional, Tuple

from sqlmodel import Session, func, select

from engagement.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from engagement.core.principal import Principal
from engagement.models.bid import Assignment, Bid
from engagement.models.milestone import Milestone, MilestoneStatus
from engagement.models.notification import NotificationType
from engagement.models.project import Project, ProjectStatus
from engagement.models.review import Review
from engagement.models.user import User
from engagement.services.notifications import Notifier
from engagement.services.transaction import atomic

logger = logging.getLogger(__name__)


def _load_project(session: Session, project_id: Optional[int]) -> Tuple[Project, Optional[Assignment], Optional[str]]:
    """The locked project row, its assignment and the assigned contributor's id."""
    if not project_id:
        raise ValidationError("project_id required")
    project = session.exec(select(Project).where(Project.id == project_id).with_for_update()).first()
    if not project:
        raise NotFoundError("Project not found")
    row = session.exec(
        select(Assignment, Bid)
        .join(Bid, Assignment.bid_id == Bid.id)
        .where(Assignment.project_id == project.id)
    ).first()
    if not row:
        return project, None, None
    assignment, bid = row
    return project, assignment, bid.contributor_id


def finalize(session: Session, principal: Principal, project_id: Optional[int], notifier: Notifier) -> Project:
    """
    Mark an in-progress project Completed.

    Raises:
        NotFoundError: Unknown project
        ForbiddenError: The caller is not the project's client
        ConflictError: The project is not InProgress
        ValidationError: The project has no milestones, or some are not Approved
    """
    with atomic(session, "project finalization", notifier):
        project, assignment, contributor_id = _load_project(session, project_id)
        if project.client_id != principal.user_id:
            raise ForbiddenError("Not authorized. Only the project owner can finalize.")
        if project.status != ProjectStatus.IN_PROGRESS:
            raise ConflictError("Only in-progress projects can be finalized")

        statuses = []
        if assignment:
            statuses = session.exec(
                select(Milestone.status).where(Milestone.assignment_id == assignment.id)
            ).all()
        if not statuses:
            raise ValidationError("Project has no milestones")
        if any(status != MilestoneStatus.APPROVED for status in statuses):
            raise ValidationError("All milestones must be completed before finalizing")

        project.status = ProjectStatus.COMPLETED
        project.touch()
        session.add(project)

        notifier.notify(contributor_id, NotificationType.PROJECT_COMPLETED,
                        {"project_id": project.id, "project_title": project.title})

    session.refresh(project)
    logger.info("Project %s finalized by %s", project.id, principal.user_id)
    return project


def submit_review(session: Session, principal: Principal, project_id: Optional[int], stars,
                  comment: Optional[str], notifier: Notifier) -> Review:
    """
    Record the client's star rating for the contributor of a completed
    project and refresh the contributor's average rating.
    """
    if isinstance(stars, bool):
        raise ValidationError("Stars must be between 1 and 5")
    try:
        value = float(stars)
        stars = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError("Stars must be between 1 and 5") from None
    # Fractional ratings are refused, not truncated
    if value != stars or not 1 <= stars <= 5:
        raise ValidationError("Stars must be between 1 and 5")

    with atomic(session, "review submission", notifier):
        project, _, contributor_id = _load_project(session, project_id)
        if project.client_id != principal.user_id:
            raise ForbiddenError("Only the project owner can review this project")
        if project.status != ProjectStatus.COMPLETED:
            raise ConflictError("Reviews can only be submitted for completed projects")
        if contributor_id is None:
            raise ConflictError("Project has no assigned contributor to review")

        existing = session.exec(
            select(Review).where(
                Review.project_id == project.id,
                Review.reviewer_id == principal.user_id,
                Review.reviewee_id == contributor_id,
            )
        ).first()
        if existing:
            raise ConflictError("You have already submitted a review for this project")

        review = Review(
            project_id=project.id,
            reviewer_id=principal.user_id,
            reviewee_id=contributor_id,
            stars=stars,
            comment=comment.strip() if comment and comment.strip() else None,
        )
        session.add(review)
        session.flush()

        reviewee = session.get(User, contributor_id)
        average = session.exec(
            select(func.avg(Review.stars)).where(Review.reviewee_id == contributor_id)
        ).one()
        reviewee.rating_avg = float(average)
        session.add(reviewee)

        notifier.notify(contributor_id, NotificationType.REVIEW_RECEIVED, {
            "project_id": project.id,
            "project_title": project.title,
            "rating": stars,
        })

    session.refresh(review)
    logger.info("Review %s (%d stars) left on project %s", review.id, stars, project.id)
    return review


def cancel(session: Session, principal: Principal, project_id: Optional[int], reason: Optional[str],
           notifier: Notifier) -> Project:
    """Cancel a project on behalf of its client or its assigned contributor."""
    reason = reason.strip() if reason and reason.strip() else "No reason provided"

    with atomic(session, "project cancellation", notifier):
        project, _, contributor_id = _load_project(session, project_id)
        is_client = project.client_id == principal.user_id
        is_contributor = contributor_id is not None and contributor_id == principal.user_id
        if not (is_client or is_contributor):
            raise ForbiddenError("Not authorized. Only the project owner or assigned contributor can cancel.")
        if project.status in (ProjectStatus.COMPLETED, ProjectStatus.CANCELED):
            raise ConflictError(f"Cannot cancel a {ProjectStatus(project.status).value} project")

        project.status = ProjectStatus.CANCELED
        project.touch()
        session.add(project)

        canceled_by = "client" if is_client else "contributor"
        recipient_id = contributor_id if is_client else project.client_id
        notifier.notify(recipient_id, NotificationType.PROJECT_CANCELED, {
            "project_id": project.id,
            "project_title": project.title,
            "canceled_by": canceled_by,
        })
        notifier.send_message(
            project.id, principal.user_id, recipient_id,
            f"The project '{project.title}' has been canceled by the {canceled_by}. Reason: {reason}",
        )

    session.refresh(project)
    logger.info("Project %s canceled by %s (%s)", project.id, principal.user_id, canceled_by)
    return project
