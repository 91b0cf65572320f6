"""
Service-level error taxonomy, mapped to HTTP responses in main.py
"""


class AffirmateError(Exception):
    """Base class for errors surfaced to API callers"""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AffirmateError):
    """Bad input shape or reference; client fault, never retried"""
    status_code = 400


class NotFoundError(AffirmateError):
    status_code = 404


class ConflictError(AffirmateError):
    """Unique-constraint violation at insert time"""
    status_code = 409


class ThrottledError(AffirmateError):
    status_code = 429


class UpstreamError(AffirmateError):
    """Store unreachable or erroring"""
    status_code = 500


class ConfigurationError(AffirmateError):
    """Required credential missing; fatal, never downgraded"""
    status_code = 500


class OracleError(Exception):
    """Summarizer failure; handled by the cache engine fallback, never surfaced"""


def describe_db_error(exc: Exception) -> str:
    """Driver error class only; SQLAlchemy messages can carry bound parameters"""
    orig = getattr(exc, "orig", None)
    return type(orig or exc).__name__
