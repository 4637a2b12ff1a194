from typing import Any, List, Optional
from pydantic import BaseModel

from engagement.models.bid import BidStatus


class BidCreate(BaseModel):
    project_id: Optional[int] = None
    amount: Any = None
    timeline_days: Any = None
    proposal_text: Optional[str] = None


class BidCreated(BaseModel):
    success: bool = True
    bid_id: int


class BidResolve(BaseModel):
    bid_id: Optional[int] = None
    action: Optional[str] = None  # "accept" or "reject"


class BidUpdate(BaseModel):
    bid_id: Optional[int] = None
    amount: Any = None
    timeline_days: Any = None
    proposal_text: Optional[str] = None


class BidRead(BaseModel):
    id: int
    project_id: int
    contributor_id: str
    amount: float
    timeline_days: int
    proposal_text: str
    status: BidStatus
    created_at: Optional[str] = None
    contributor_name: Optional[str] = None
    contributor_rating: Optional[float] = None
    project_title: Optional[str] = None
    client_id: Optional[str] = None


class BidList(BaseModel):
    success: bool = True
    bids: List[BidRead] = []
