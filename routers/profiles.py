"""
Profile endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from services.profile_service import profile_service

router = APIRouter(prefix="/api", tags=["profiles"])


@router.post("/profile")
async def create_profile(
    body: dict,
    db: Session = Depends(get_db),
):
    """Create a shareable profile from a display name"""
    profile = profile_service.create_profile(db, body.get("name"))
    return profile.to_dict()
