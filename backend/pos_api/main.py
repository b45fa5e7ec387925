"""
POS API main application.
Entry point for the FastAPI server used by the POS terminals.
"""

from fastapi import FastAPI

from pos_api.core.cors import configure_cors
from pos_api.core.lifespan import lifespan
from pos_api.routers import (
    health_router,
    inventory_router,
    orders_router,
    shifts_router,
    sync_router,
    tables_router,
    terminals_router,
)
from shared.infrastructure.correlation import CorrelationIdMiddleware

app = FastAPI(
    title="Foodies POS API",
    description="Restaurant point-of-sale core: orders, payments, inventory, tables",
    version="0.1.0",
    lifespan=lifespan,
)

configure_cors(app)
app.add_middleware(CorrelationIdMiddleware)

app.include_router(health_router)
app.include_router(orders_router)
app.include_router(inventory_router)
app.include_router(tables_router)
app.include_router(terminals_router)
app.include_router(sync_router)
app.include_router(shifts_router)
