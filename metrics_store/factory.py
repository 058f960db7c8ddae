from __future__ import annotations

import logging

from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException

from metrics_store.api.metrics import method_not_allowed_handler
from metrics_store.api.metrics import router as metrics_router
from metrics_store.config import Settings, get_settings
from metrics_store.db.datastore import MetricsDatastore, get_datastore
from metrics_store.observability.logging import configure_logging
from metrics_store.observability.middleware import RequestContextMiddleware
from metrics_store.services.metrics_service import MetricsService


def create_app(settings: Settings | None = None, datastore: MetricsDatastore | None = None) -> FastAPI:
    """Build the HTTP app around a single datastore.

    Without an explicit ``datastore`` the process-wide one from
    ``get_datastore()`` is used.
    """
    settings = settings or get_settings()
    configure_logging(logging.DEBUG if settings.debug else logging.INFO)

    app = FastAPI(title="Metrics Store", version="0.1.0")
    app.state.settings = settings
    app.state.metrics_service = MetricsService(
        datastore if datastore is not None else get_datastore(),
        allow_unknown_fields=settings.allow_unknown_fields,
    )

    app.add_middleware(RequestContextMiddleware)
    app.add_exception_handler(StarletteHTTPException, method_not_allowed_handler)
    app.include_router(metrics_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
