"""FastAPI application factory for the read-only circulation API."""

from typing import Any

from fastapi import FastAPI

from circulation.api import routes
from circulation.data.store import CirculationStore


def create_api_app(store: CirculationStore | None = None, lifespan: Any = None) -> FastAPI:
    """Create and configure the read API application.

    Args:
        store: Store the routes read from. main.py may set it later via
               app.state.store inside its lifespan.
        lifespan: Optional async context manager for startup/shutdown.
    """
    app = FastAPI(
        title="Circulating Supply API",
        lifespan=lifespan,
    )
    app.state.store = store
    app.include_router(routes.router, prefix="/api")
    return app
