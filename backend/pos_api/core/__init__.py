"""
Application wiring: lifespan, CORS, shared dependencies.
"""

from .lifespan import lifespan
from .cors import configure_cors

__all__ = ["lifespan", "configure_cors"]
