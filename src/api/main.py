"""
ReviewDesk FastAPI Application
==============================

REST API for review management and triage.

Endpoints:
    GET  /api/health   - Health check
    POST /api/triage   - Triage preview
    /api/reviews/...   - Review CRUD (see review_routes.py)
    /api/responses/... - Review responses (see response_routes.py)

Usage:
    uvicorn src.api.main:create_app --factory --reload --port 8000

    Or with CLI:
    python -m src.api.main
"""

from dotenv import load_dotenv
load_dotenv()

from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..core.config import AppConfig, load_config
from ..core.logging_config import setup_logging
from ..reviews import ResponsesService, ReviewsService
from ..store import DocumentStore, create_store
from .errors import APIError, format_error
from .models import HealthResponse
from .response_routes import router as response_router
from .review_routes import router as review_router

logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"


def attach_services(app: FastAPI, store: DocumentStore) -> None:
    reviews = ReviewsService(store)
    app.state.reviews_service = reviews
    app.state.responses_service = ResponsesService(store, reviews)


def create_app(store: Optional[DocumentStore] = None, config: Optional[AppConfig] = None) -> FastAPI:
    """
    Build the application.

    An injected store is used as-is and left open on shutdown; otherwise
    the store is built from configuration at startup and closed at exit.
    """
    config = config or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned_store = None
        if getattr(app.state, "reviews_service", None) is None:
            owned_store = create_store(config.store)
            attach_services(app, owned_store)

        logger.info("ReviewDesk API started (store=%s)", app.state.reviews_service.store.backend_name)
        yield

        if owned_store is not None:
            owned_store.close()
        logger.info("Shutting down ReviewDesk API...")

    app = FastAPI(
        title="ReviewDesk API",
        description="Review management and triage",
        version=API_VERSION,
        lifespan=lifespan,
    )
    app.state.reviews_service = None
    app.state.responses_service = None
    if store is not None:
        attach_services(app, store)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}"
            for err in exc.errors()
        )
        error = APIError(f"Invalid request: {details}", "VALIDATION_ERROR", 400)
        return JSONResponse(format_error(error), status_code=error.status_code)

    @app.get("/api/health", response_model=HealthResponse)
    async def health_check(request: Request):
        service = request.app.state.reviews_service
        store_name = service.store.backend_name if service is not None else "not_initialized"
        return HealthResponse(
            status="healthy" if service is not None else "starting",
            version=API_VERSION,
            store=store_name,
        )

    app.include_router(review_router)
    app.include_router(response_router)
    return app


def main():
    import uvicorn

    config = load_config()
    setup_logging(
        level=config.logging.level,
        json_output=config.logging.json_output,
        log_file=config.logging.log_file,
    )
    uvicorn.run(create_app(config=config), host=config.api.host, port=config.api.port)


if __name__ == "__main__":
    main()
