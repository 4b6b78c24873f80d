"""
Fleet Expense Ledger API.

Owners register trucks, log trips with their diesel purchases and
itemized charges, and read back totals that are always recomputed from
the stored records.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fleetexpense.app.core.config import settings
from fleetexpense.app.core.observability import ObservabilityMiddleware, configure_logging
from fleetexpense.app.core.redis_client import close_redis
from fleetexpense.app.api.v1.router import router as api_v1_router
from fleetexpense.app.db.session import engine, Base
from fleetexpense.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Registers every table on Base.metadata
from fleetexpense.app.models import audit_log, cost_event, diesel_purchase, driver, trip, truck, user  # noqa: F401

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    if settings.create_tables_on_startup:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    logger.info("%s started", settings.app_name)
    yield
    await close_redis()
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Trucks, trips and trip cost aggregation for fleet owners",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness probe."""
    return {"status": "healthy", "app_name": settings.app_name, "version": settings.api_version}
