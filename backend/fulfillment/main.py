"""
Fulfillment API main application.
Entry point for the FastAPI REST server.
"""

from fastapi import FastAPI

from fulfillment.core.lifespan import lifespan
from fulfillment.core.middlewares import register_middlewares
from fulfillment.routers import customers_router, health_router, inventory_router, orders_router
from shared.config.settings import settings


def create_app() -> FastAPI:
    app = FastAPI(
        title="Fulfillment API",
        description="Order lifecycle with exactly-once inventory deduction and loyalty accrual",
        version="0.1.0",
        lifespan=lifespan,
    )

    register_middlewares(app)

    app.include_router(health_router)
    app.include_router(orders_router)
    app.include_router(inventory_router)
    app.include_router(customers_router)
    return app


app = create_app()


# =============================================================================
# Development entry point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "fulfillment.main:app",
        host="0.0.0.0",
        port=settings.api_port,
        reload=True,
    )
