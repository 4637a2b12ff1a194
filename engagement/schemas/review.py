from typing import Any, Optional
from pydantic import BaseModel


class ReviewCreate(BaseModel):
    project_id: Optional[int] = None
    stars: Any = None
    comment: Optional[str] = None


class ReviewCreated(BaseModel):
    success: bool = True
    review_id: int
    rating_avg: Optional[float] = None
