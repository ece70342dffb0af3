"""Dashboard feed route."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..config import get_settings
from ..database import get_session
from ..models import User
from ..schemas import FeedPage
from ..services import get_current_user, get_dashboard_feed

router = APIRouter(prefix="/feed", tags=["feed"])


@router.get("", response_model=FeedPage)
async def dashboard_feed_endpoint(
    page: int = Query(1, ge=1),
    size: int | None = Query(None, ge=1, le=100),
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> FeedPage:
    """Own and followed accounts' posts and shares, newest first."""

    page_size = size or get_settings().feed_page_size
    return FeedPage.model_validate(get_dashboard_feed(db, viewer=current_user, page=page, size=page_size))
