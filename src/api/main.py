"""Main FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from audit.dependencies import get_audit_logger
from audit.presentation import routes as audit_routes
from iam.presentation import routes as iam_routes
from infrastructure.database.dependencies import close_database_connections
from infrastructure.logging import configure_logging
from infrastructure.settings import get_settings
from infrastructure.version import __version__
from tickets.presentation import routes as ticket_routes


@asynccontextmanager
async def helpdesk_lifespan(app: FastAPI):
    """Application lifespan context.

    Manages:
    - structlog configuration
    - Pending audit writes, awaited on shutdown
    - Connection pool lifecycle (created lazily, closed on shutdown)
    """
    configure_logging(debug=get_settings().debug)

    yield

    if get_audit_logger.cache_info().currsize:
        await get_audit_logger().drain()
    await close_database_connections()


app = FastAPI(
    title=get_settings().app_name,
    description="Multi-tenant helpdesk with database-enforced tenant isolation",
    version=__version__,
    lifespan=helpdesk_lifespan,
)

# Include bounded context routes
app.include_router(ticket_routes.router)
app.include_router(audit_routes.router)
app.include_router(iam_routes.router)


@app.get("/health")
def health():
    """Basic health check endpoint."""
    return {"status": "ok"}
