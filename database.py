"""
Database connection and session management
Two credentials: a read-scoped default engine and a privileged service engine
"""
from typing import Optional
import logging

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from config import settings

logger = logging.getLogger(__name__)

# Base class for models
Base = declarative_base()

# Database configuration
DATABASE_AVAILABLE = False
engine = None
SessionLocal = None
service_engine = None
ServiceSessionLocal = None


def _build_engine(url: str) -> Engine:
    """Create an engine for a PostgreSQL or SQLite URL"""
    if url.startswith("postgresql"):
        return create_engine(
            url,
            pool_pre_ping=True,  # Verify connections before using
            pool_recycle=3600,   # Recycle connections after 1 hour
            pool_size=5,         # Number of connections to maintain
            max_overflow=10,     # Max connections beyond pool_size
            echo=settings.DEBUG,
            hide_parameters=True,  # bound values include submitter fingerprints
            connect_args={
                "connect_timeout": 10,
                "keepalives": 1,
                "keepalives_idle": 30,
                "keepalives_interval": 10,
                "keepalives_count": 5
            }
        )
    if url.startswith("sqlite"):
        kwargs = {
            "connect_args": {"check_same_thread": False},
            "echo": settings.DEBUG,
            "hide_parameters": True,
        }
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url, pool_pre_ping=True, echo=settings.DEBUG, hide_parameters=True)


def init_database():
    """Initialize database connections"""
    global engine, SessionLocal, service_engine, ServiceSessionLocal, DATABASE_AVAILABLE

    try:
        engine = _build_engine(settings.DATABASE_URL)
        # Test connection
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        DATABASE_AVAILABLE = True
        logger.info(f"[DB] Connected: {engine.url.render_as_string(hide_password=True)}")
    except Exception as e:
        logger.error(f"[DB] Database connection failed: {e}")
        DATABASE_AVAILABLE = False
        return

    if settings.DATABASE_SERVICE_URL:
        if settings.DATABASE_SERVICE_URL == settings.DATABASE_URL:
            service_engine = engine
        else:
            service_engine = _build_engine(settings.DATABASE_SERVICE_URL)
        ServiceSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=service_engine)
    else:
        logger.warning("[DB] DATABASE_SERVICE_URL not set; top-3 cache write-back will fail")


# Initialize on module load
init_database()


def get_db():
    """Dependency to get the read-scoped database session"""
    if not DATABASE_AVAILABLE or SessionLocal is None:
        yield None
        return

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_service_db():
    """Dependency to get the privileged session, or None when no service credential is configured"""
    if not DATABASE_AVAILABLE or ServiceSessionLocal is None:
        yield None
        return

    db = ServiceSessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Optional[Engine] = None):
    """Initialize database tables"""
    target = bind or service_engine or engine
    if target is not None:
        import models  # noqa: F401
        Base.metadata.create_all(bind=target)
