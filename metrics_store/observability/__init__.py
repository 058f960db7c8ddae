"""Logging and request-context helpers.

structlog renders JSON lines for both structlog and stdlib loggers; the request
middleware binds a request id into the structlog contextvars for each request.
"""
