"""
Adjective vocabulary endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from services.adjective_service import adjective_service
from services.errors import UpstreamError

router = APIRouter(prefix="/api", tags=["adjectives"])


@router.get("/adjectives")
async def list_adjectives(db: Session = Depends(get_db)):
    if db is None:
        raise UpstreamError("Database not available")
    return {"data": [a.to_dict() for a in adjective_service.list_adjectives(db)]}
