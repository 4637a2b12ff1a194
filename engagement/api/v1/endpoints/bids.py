"""
Bid Endpoints Module

Contributors place and revise bids; the project's client accepts or rejects
them. Accepting a bid starts the engagement (see services.acceptance).
"""
from typing import Optional
from fastapi import APIRouter, Depends
from sqlmodel import Session
from engagement.db.session import get_db
from engagement.models.bid import BidStatus
from engagement.models.user import UserRole
from engagement.core.principal import Principal
from engagement.schemas.bid import BidCreate, BidCreated, BidList, BidResolve, BidUpdate
from engagement.schemas.project import SuccessResponse
from engagement.services import acceptance, bids as bid_service
from engagement.services.notifications import Notifier
from engagement.api import deps

router = APIRouter()


@router.post("", response_model=BidCreated)
def place_bid(
    bid_in: BidCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.RoleChecker([UserRole.CONTRIBUTOR])),
    notifier: Notifier = Depends(deps.get_notifier),
):
    bid = bid_service.place_bid(
        db, principal, bid_in.project_id, bid_in.amount, bid_in.timeline_days, bid_in.proposal_text, notifier
    )
    notifier.dispatch()
    return BidCreated(bid_id=bid.id)


@router.get("", response_model=BidList)
def list_bids(
    project_id: Optional[int] = None,
    contributor_id: Optional[str] = None,
    status: Optional[BidStatus] = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_principal),
):
    """
    List bids by project and/or contributor, newest first.
    """
    return BidList(bids=bid_service.list_bids(db, principal, project_id, contributor_id, status))


@router.put("", response_model=SuccessResponse)
def resolve_bid(
    resolve_in: BidResolve,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_principal),
    notifier: Notifier = Depends(deps.get_notifier),
):
    """
    Accept or reject a bid.

    Accepting rejects every other pending bid on the project, creates the
    assignment and its milestones, and moves the project to InProgress.
    """
    resolution = acceptance.resolve_bid(db, principal, resolve_in.bid_id, resolve_in.action, notifier)
    notifier.dispatch()
    return SuccessResponse(message=f"Bid {resolution.action}ed")


@router.patch("", response_model=SuccessResponse)
def update_bid(
    update_in: BidUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_principal),
    notifier: Notifier = Depends(deps.get_notifier),
):
    bid_service.update_bid(
        db, principal, update_in.bid_id, update_in.model_dump(exclude={"bid_id"}), notifier
    )
    notifier.dispatch()
    return SuccessResponse(message="Bid updated successfully")
