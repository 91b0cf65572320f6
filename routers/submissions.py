"""
Vote submission endpoint
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from database import get_db
from services.fingerprint import get_client_ip, get_user_agent
from services.submission_service import submission_service

router = APIRouter(prefix="/api", tags=["submissions"])


@router.post("/submit")
async def submit(
    request: Request,
    body: dict,
    db: Session = Depends(get_db),
):
    """Record one anonymous vote: {profileId, adjectiveIds: [3 ids]}"""
    submission_id = submission_service.submit(
        db=db,
        profile_id=body.get("profileId"),
        adjective_ids=body.get("adjectiveIds"),
        client_ip=get_client_ip(request),
        user_agent=get_user_agent(request),
    )
    return {"success": True, "submissionId": submission_id}
