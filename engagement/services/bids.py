"""
Bid Ledger

Records bids per (project, contributor) pair. A contributor has at most one
row per project: while it is Pending or Accepted a new bid is refused, and
once Rejected the same row is reopened on rebid so the bid id never changes.
"""
import logging
import math
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from engagement.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from engagement.core.principal import Principal
from engagement.models.bid import Bid, BidStatus
from engagement.models.notification import NotificationType
from engagement.models.project import Project, ProjectStatus
from engagement.models.user import User, utcnow_iso
from engagement.schemas.bid import BidRead
from engagement.services.notifications import Notifier
from engagement.services.transaction import atomic

logger = logging.getLogger(__name__)


def _positive_amount(value: Any) -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError("amount must be numeric") from None
    if not math.isfinite(amount):
        raise ValidationError("amount must be numeric")
    if amount <= 0:
        raise ValidationError("amount must be greater than zero")
    return amount


def _positive_days(value: Any) -> int:
    try:
        days = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError("timeline_days must be a whole number of days") from None
    if days <= 0 or days != float(value):
        raise ValidationError("timeline_days must be a whole number of days")
    return days


def place_bid(session: Session, principal: Principal, project_id: Optional[int], amount: Any,
              timeline_days: Any, proposal_text: Optional[str], notifier: Notifier) -> Bid:
    """
    Place a bid, or reopen the caller's previously rejected bid.

    Raises:
        ValidationError: A required field is missing or malformed
        NotFoundError: The project does not exist
        ConflictError: Bidding is closed, the caller owns the project, or the
            caller already has a pending or accepted bid on it
    """
    if not project_id or amount in (None, "") or timeline_days in (None, "") \
            or not (proposal_text and proposal_text.strip()):
        raise ValidationError("Missing required fields")
    amount = _positive_amount(amount)
    timeline_days = _positive_days(timeline_days)

    with atomic(session, "bid placement", notifier):
        project = session.get(Project, project_id)
        if not project:
            raise NotFoundError("Project not found")
        if project.status != ProjectStatus.OPEN:
            raise ConflictError("This project is no longer accepting bids")
        if project.client_id == principal.user_id:
            raise ConflictError("You cannot bid on your own project")

        bid = session.exec(
            select(Bid).where(Bid.project_id == project_id, Bid.contributor_id == principal.user_id)
        ).first()

        if bid and bid.status in (BidStatus.PENDING, BidStatus.ACCEPTED):
            raise ConflictError("You already have a pending or accepted bid on this project")

        if bid:
            # Reopen the rejected row in place
            bid.amount = amount
            bid.timeline_days = timeline_days
            bid.proposal_text = proposal_text.strip()
            bid.status = BidStatus.PENDING
            bid.created_at = utcnow_iso()
        else:
            bid = Bid(
                project_id=project_id,
                contributor_id=principal.user_id,
                amount=amount,
                timeline_days=timeline_days,
                proposal_text=proposal_text.strip(),
            )
        session.add(bid)
        try:
            session.flush()
        except IntegrityError:
            # A concurrent request inserted the same (project, contributor) row first
            raise ConflictError("You already have a pending or accepted bid on this project") from None

        notifier.notify(project.client_id, NotificationType.BID_PENDING, {
            "bid_id": bid.id,
            "project_title": project.title,
            "amount": amount,
            "timeline_days": timeline_days,
            "contributor_name": principal.name or "A contributor",
        })

    session.refresh(bid)
    logger.info("Bid %s on project %s placed by %s", bid.id, project_id, principal.user_id)
    return bid


def list_bids(session: Session, principal: Principal, project_id: Optional[int] = None,
              contributor_id: Optional[str] = None, status: Optional[BidStatus] = None) -> List[BidRead]:
    """
    List bids, newest first.

    Listing one contributor's bids without a status filter hides Rejected
    rows for non-admin callers; they stay queryable with ``status=Rejected``.
    """
    statement = (
        select(Bid, User, Project)
        .join(User, Bid.contributor_id == User.id)
        .join(Project, Bid.project_id == Project.id)
    )
    if project_id:
        statement = statement.where(Bid.project_id == project_id)
    if contributor_id:
        statement = statement.where(Bid.contributor_id == contributor_id)
        if not status and not principal.is_admin:
            statement = statement.where(Bid.status != BidStatus.REJECTED)
    if status:
        statement = statement.where(Bid.status == status)
    statement = statement.order_by(Bid.created_at.desc(), Bid.id.desc())

    return [
        BidRead(
            **bid.model_dump(),
            contributor_name=user.display_name,
            contributor_rating=user.rating_avg,
            project_title=project.title,
            client_id=project.client_id,
        )
        for bid, user, project in session.exec(statement).all()
    ]


def update_bid(session: Session, principal: Principal, bid_id: Optional[int],
               fields: Dict[str, Any], notifier: Notifier) -> Bid:
    """
    Edit amount, timeline or proposal of the caller's own bid.

    Raises:
        ValidationError: No bid id, or nothing to update
        NotFoundError: The bid does not exist
        ForbiddenError: The caller does not own the bid
        ConflictError: The bid has already been accepted or was rejected
    """
    if not bid_id:
        raise ValidationError("Bid ID required")

    changes = {}
    if fields.get("amount") not in (None, ""):
        changes["amount"] = _positive_amount(fields["amount"])
    if fields.get("timeline_days") not in (None, ""):
        changes["timeline_days"] = _positive_days(fields["timeline_days"])
    if fields.get("proposal_text") is not None and fields["proposal_text"].strip():
        changes["proposal_text"] = fields["proposal_text"].strip()

    with atomic(session, "bid update", notifier):
        bid = session.get(Bid, bid_id)
        if not bid:
            raise NotFoundError("Bid not found")
        if bid.contributor_id != principal.user_id:
            raise ForbiddenError("You can only update your own bids")
        if bid.status == BidStatus.ACCEPTED:
            raise ConflictError("Cannot update an accepted bid")
        if bid.status == BidStatus.REJECTED:
            raise ConflictError("Rejected bids must be resubmitted")
        if not changes:
            raise ValidationError("No fields to update")

        for key, value in changes.items():
            setattr(bid, key, value)
        session.add(bid)

        project = session.get(Project, bid.project_id)
        notifier.notify(project.client_id, NotificationType.BID_UPDATED, {
            "bid_id": bid.id,
            "project_title": project.title,
            "contributor_name": principal.name or "A contributor",
        })

    session.refresh(bid)
    return bid
