"""
Affirmate API
Anonymous "three adjectives" profiles with a cached top-3 summary
"""
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

# Local imports
from config import settings
from database import init_db, DATABASE_AVAILABLE
from routers import profiles_router, adjectives_router, submissions_router, results_router
from middleware.security import SecurityHeadersMiddleware, AccessLogMiddleware
from services.errors import AffirmateError, describe_db_error

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Setup logger
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup"""
    if DATABASE_AVAILABLE:
        try:
            init_db()
            logger.info("[DB] Tables ready")
        except Exception as e:
            logger.warning(f"[DB] Table initialization warning: {e}")
    else:
        logger.warning("[DB] Database not available; API calls will fail until it is reachable")
    yield


# Create FastAPI app
app = FastAPI(
    title="Affirmate API",
    description="Collect three-adjective votes for a profile and summarize them",
    version="1.0.0",
    lifespan=lifespan,
)

# Security middleware
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(AccessLogMiddleware)

# CORS middleware - Use configured origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(profiles_router)
app.include_router(adjectives_router)
app.include_router(submissions_router)
app.include_router(results_router)


@app.exception_handler(AffirmateError)
async def affirmate_error_handler(request: Request, exc: AffirmateError):
    if exc.status_code >= 500:
        logger.error(f"[API] {request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # Malformed bodies are client errors, reported as 400 rather than 422
    return JSONResponse(status_code=400, content={"detail": "Invalid request body"})


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"[DB] {request.method} {request.url.path} store error: {describe_db_error(exc)}")
    return JSONResponse(status_code=500, content={"detail": "Database error"})


@app.get("/health")
async def health():
    return {"status": "ok", "database": DATABASE_AVAILABLE}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
