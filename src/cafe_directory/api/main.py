import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from cafe_directory import __version__
from cafe_directory.api.routes import router
from cafe_directory.api.schemas import HealthResponse
from cafe_directory.config import Settings, settings as default_settings
from cafe_directory.data.store import CafeStore, create_store
from cafe_directory.exceptions import CafeNotFoundError, DatabaseError
from cafe_directory.logging_config import setup_logging
from cafe_directory.postcodes import PostcodeGeocoder
from cafe_directory.search import SearchService

logger = logging.getLogger(__name__)


def create_app(
    store: Optional[CafeStore] = None,
    app_settings: Optional[Settings] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> FastAPI:
    """
    Build the API application.

    Passing a store wires it immediately (tests do this). Otherwise the store
    is chosen at startup from the database settings.
    """
    app_settings = app_settings or default_settings

    def wire(app: FastAPI, cafe_store: CafeStore) -> None:
        app.state.store = cafe_store
        app.state.search_service = SearchService(
            cafe_store,
            geocoder=PostcodeGeocoder(app_settings.geo),
            clock=clock,
            search_settings=app_settings.search,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "store", None) is None:
            wire(app, create_store(app_settings))
            logger.info("Cafe store initialised: %s", app.state.store.name)
        yield

    app = FastAPI(
        title="Cafe Directory API",
        description="Cafe listings with geographic search and spreadsheet import.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.store = None
    if store is not None:
        wire(app, store)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    @app.exception_handler(CafeNotFoundError)
    async def cafe_not_found_handler(request: Request, exc: CafeNotFoundError):
        return JSONResponse(status_code=404, content={"detail": "Cafe not found"})

    @app.get("/health", response_model=HealthResponse)
    def health_check(request: Request):
        """Storage backend in use and how many cafes it holds."""
        cafe_store: CafeStore = request.app.state.store
        try:
            return HealthResponse(status="healthy", storage=cafe_store.name, cafe_count=cafe_store.count_all())
        except DatabaseError as e:
            logger.error("Health check failed: %s", e.message)
            return HealthResponse(status="degraded", storage=cafe_store.name, cafe_count=0, error=e.message)

    return app


app = create_app()


def run() -> None:
    """Serve the API with uvicorn using the API_* settings."""
    default_settings.setup()
    setup_logging(level=default_settings.logging.level, log_file=default_settings.logging.file)
    uvicorn.run(
        "cafe_directory.api.main:app",
        host=default_settings.api.host,
        port=default_settings.api.port,
        reload=default_settings.api.reload,
    )


if __name__ == "__main__":
    run()
