from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from starlette.middleware.base import BaseHTTPMiddleware

from shared.config import Settings, get_settings
from shared.exceptions import register_exception_handlers  # central mapping
from shared.infrastructure.observability.logger import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)

from provisioning.api import router as provisioning_router
from provisioning.api.container import ProvisioningContainer, build_default_container

logger = get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Assigns request.state.request_id (from X-Request-ID or a fresh uuid) and
    binds it to every log line of the request.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid4().hex
        request.state.request_id = request_id
        clear_context()
        bind_context(request_id=request_id, path=request.url.path)
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


def create_app(
    container: Optional[ProvisioningContainer] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(
        log_level=settings.LOG_LEVEL,
        json_logs=settings.LOG_JSON,
        redact_pii=not settings.is_dev,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owns_container = container is None
        app.state.container = container or await build_default_container(settings)
        logger.info("application_started", environment=settings.ENVIRONMENT)
        try:
            yield
        finally:
            if owns_container:
                await app.state.container.aclose()
            logger.info("application_stopped")

    app = FastAPI(
        title=f"{settings.PROJECT_NAME} API",
        version=settings.PROJECT_VERSION,
        swagger_ui_parameters={"persistAuthorization": True},
        lifespan=lifespan,
    )
    if container is not None:
        # Available even when the lifespan is not run (plain TestClient calls).
        app.state.container = container

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins(),
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )
    app.add_middleware(RequestContextMiddleware)

    app.include_router(provisioning_router, prefix=settings.API_V1_STR)

    # Centralized error handling → {code, message, details, correlation_id?}
    register_exception_handlers(app)

    @app.get("/health", tags=["Root"])
    async def health():
        return {"status": "ok", "version": settings.PROJECT_VERSION}

    # ---- Custom OpenAPI to add Bearer auth ----
    def custom_openapi():
        if app.openapi_schema:
            return app.openapi_schema
        schema = get_openapi(
            title=app.title,
            version=app.version,
            routes=app.routes,
        )
        schema.setdefault("components", {}).setdefault("securitySchemes", {})["bearerAuth"] = {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
        }
        schema["security"] = [{"bearerAuth": []}]
        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[method-assign]
    return app


app = create_app()
