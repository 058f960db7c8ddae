"""ASGI entry point for ``uvicorn metrics_store.main:app``."""

from metrics_store.factory import create_app

app = create_app()
