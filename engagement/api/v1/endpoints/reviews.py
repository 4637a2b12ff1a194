from fastapi import APIRouter, Depends
from sqlmodel import Session
from engagement.db.session import get_db
from engagement.models.user import User
from engagement.core.principal import Principal
from engagement.schemas.review import ReviewCreate, ReviewCreated
from engagement.services import finalization
from engagement.services.notifications import Notifier
from engagement.api import deps

router = APIRouter()


@router.post("", response_model=ReviewCreated)
def submit_review(
    review_in: ReviewCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_principal),
    notifier: Notifier = Depends(deps.get_notifier),
):
    """
    Rate the contributor of a completed project (1 to 5 stars).
    """
    review = finalization.submit_review(
        db, principal, review_in.project_id, review_in.stars, review_in.comment, notifier
    )
    notifier.dispatch()
    reviewee = db.get(User, review.reviewee_id)
    return ReviewCreated(review_id=review.id, rating_avg=reviewee.rating_avg)
