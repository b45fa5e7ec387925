"""
REST routers. Thin: each endpoint delegates to a domain service.
"""

from .health import router as health_router
from .orders import router as orders_router
from .inventory import router as inventory_router
from .tables import router as tables_router
from .terminals import router as terminals_router
from .sync import router as sync_router
from .shifts import router as shifts_router

__all__ = [
    "health_router",
    "orders_router",
    "inventory_router",
    "tables_router",
    "terminals_router",
    "sync_router",
    "shifts_router",
]
