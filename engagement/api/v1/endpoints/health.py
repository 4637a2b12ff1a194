import logging
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session
from typing import Any
from engagement.core.config import settings
from engagement.db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("", response_model=dict[str, Any])
def health_check(db: Session = Depends(get_db)) -> Any:
    """
    Health check endpoint. Reports 503 when the database is unreachable.
    """
    try:
        db.connection().execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("Health check could not reach the database", exc_info=True)
        return JSONResponse(
            status_code=503,
            content={"status": "degraded", "database": "unavailable", "version": settings.VERSION},
        )
    return {"status": "ok", "database": "ok", "version": settings.VERSION}
