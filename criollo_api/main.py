"""
REST API main application.
Entry point for the FastAPI REST server.
"""

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from criollo_api.core import (
    lifespan,
    register_exception_handlers,
    register_middlewares,
)
from criollo_api.routers.auth import router as auth_router
from criollo_api.routers.categories import router as categories_router
from criollo_api.routers.clients import router as clients_router
from criollo_api.routers.employees import router as employees_router
from criollo_api.routers.inventory import router as inventory_router
from criollo_api.routers.invoices import router as invoices_router
from criollo_api.routers.orders import router as orders_router
from criollo_api.routers.products import router as products_router
from criollo_api.routers.reports import router as reports_router
from criollo_api.routers.reservations import router as reservations_router
from criollo_api.routers.tables import router as tables_router
from criollo_shared.config.logging import rest_api_logger as logger
from criollo_shared.config.settings import settings
from criollo_shared.infrastructure.db import get_session_factory
from criollo_shared.security.rate_limit import limiter

app = FastAPI(
    title="El Criollo REST API",
    description="Sistema de punto de venta para el restaurante El Criollo",
    version="1.0.0",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter

register_exception_handlers(app)
register_middlewares(app)


# =============================================================================
# Health Check
# =============================================================================


@app.get("/api/health")
def health_check():
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "service": "rest-api",
        "environment": settings.environment,
    }


@app.get("/api/health/detailed")
def detailed_health_check(session_factory: sessionmaker = Depends(get_session_factory)):
    """
    Verifies connectivity to the database.
    Returns 503 when a dependency is down.
    """
    checks = {
        "service": "rest-api",
        "environment": settings.environment,
        "dependencies": {},
    }
    all_healthy = True

    try:
        with session_factory() as db:
            db.execute(text("SELECT 1"))
        checks["dependencies"]["database"] = {"status": "healthy"}
    except SQLAlchemyError as e:
        logger.error("Database health check failed", error=str(e))
        checks["dependencies"]["database"] = {"status": "unhealthy", "error": str(e)}
        all_healthy = False

    checks["status"] = "healthy" if all_healthy else "degraded"
    if not all_healthy:
        return JSONResponse(content=checks, status_code=503)
    return checks


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(auth_router)
app.include_router(tables_router)
app.include_router(reservations_router)
app.include_router(categories_router)
app.include_router(products_router)
app.include_router(orders_router)
app.include_router(invoices_router)
app.include_router(clients_router)
app.include_router(employees_router)
app.include_router(inventory_router)
app.include_router(reports_router)


# =============================================================================
# Development entry point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "criollo_api.main:app",
        host="0.0.0.0",
        port=settings.rest_api_port,
        reload=settings.debug,
    )
