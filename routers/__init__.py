"""
API Routers for Affirmate
"""

from .profiles import router as profiles_router
from .adjectives import router as adjectives_router
from .submissions import router as submissions_router
from .results import router as results_router

__all__ = ["profiles_router", "adjectives_router", "submissions_router", "results_router"]
