"""
Middleware components for Affirmate
"""

from .security import SecurityHeadersMiddleware, AccessLogMiddleware

__all__ = ["SecurityHeadersMiddleware", "AccessLogMiddleware"]
