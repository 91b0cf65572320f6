"""
Top-3 results endpoint
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional

from database import get_db, get_service_db
from services.errors import ValidationError
from services.top3_cache_service import top3_cache_service

router = APIRouter(prefix="/api", tags=["results"])


@router.get("/results")
@router.get("/results/")
async def results_without_slug():
    raise ValidationError("Missing slug")


@router.get("/results/{slug}")
async def get_results(
    slug: str,
    db: Session = Depends(get_db),
    service_db: Optional[Session] = Depends(get_service_db),
):
    """Profile, live submission count and the (possibly cached) top-3 adjectives"""
    return await top3_cache_service.get_top3(db, service_db, slug)
