from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.exception_handlers import http_exception_handler
from starlette.exceptions import HTTPException as StarletteHTTPException

from metrics_store.services.metrics_service import (
    DatastoreInsertError,
    MetricsService,
    MultipleObjectsError,
    RequestDecodeError,
    SerializationError,
)

METRICS_PATH = "/metrics"
ALLOWED_METHODS = ("POST", "GET")
JSON_CONTENT_TYPE = "application/json"

router = APIRouter(tags=["metrics"])
logger = structlog.get_logger(__name__)


class RequestBodyTooLarge(ValueError):
    pass


def get_metrics_service(request: Request) -> MetricsService:
    return request.app.state.metrics_service


def get_max_body_size(request: Request) -> int:
    return request.app.state.settings.max_request_body_size


async def read_limited_body(request: Request, max_body_size: int) -> bytes:
    """Read the request body, failing as soon as it grows past ``max_body_size``."""
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > max_body_size:
        raise RequestBodyTooLarge("request body too large")

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > max_body_size:
            raise RequestBodyTooLarge("request body too large")
    return bytes(body)


@router.get(METRICS_PATH)
async def list_metrics(service: MetricsService = Depends(get_metrics_service)) -> Response:
    logger.debug("metrics.get")
    try:
        content = service.render_all()
    except SerializationError as exc:
        logger.exception("metrics.get_failed")
        raise HTTPException(status_code=500, detail="Internal Server Error") from exc
    return Response(content=content, media_type=JSON_CONTENT_TYPE)


@router.post(METRICS_PATH, status_code=201)
async def add_metrics(
    request: Request,
    service: MetricsService = Depends(get_metrics_service),
    max_body_size: int = Depends(get_max_body_size),
) -> Response:
    logger.debug("metrics.post")

    content_type = request.headers.get("content-type")
    if content_type and content_type != JSON_CONTENT_TYPE:
        logger.info("metrics.post_rejected", reason="content_type", content_type=content_type)
        raise HTTPException(status_code=415, detail="Content-Type header is not application/json")

    try:
        body = await read_limited_body(request, max_body_size)
        record = service.decode_metrics(body)
    except MultipleObjectsError as exc:
        logger.error("metrics.post_rejected", reason="multiple_objects")
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except (RequestBodyTooLarge, RequestDecodeError) as exc:
        detail = f"Error parsing request body: {exc}"
        logger.error("metrics.post_rejected", reason="decode", error=detail)
        raise HTTPException(status_code=400, detail=detail) from exc

    logger.debug("metrics.post_decoded", machine_id=record.machine_id)

    try:
        stored = service.add_metrics(record)
    except DatastoreInsertError as exc:
        raise HTTPException(status_code=500, detail="Internal Server Error") from exc

    return Response(content=service.render_created(stored), status_code=201, media_type=JSON_CONTENT_TYPE)


async def method_not_allowed_handler(request: Request, exc: StarletteHTTPException) -> Response:
    """Answer 405 on the metrics route with the methods it actually serves."""
    if exc.status_code == 405 and request.url.path == METRICS_PATH:
        logger.debug("metrics.method_not_allowed", method=request.method)
        exc = StarletteHTTPException(
            status_code=405,
            detail=exc.detail,
            headers={"Allow": ", ".join(ALLOWED_METHODS)},
        )
    return await http_exception_handler(request, exc)
