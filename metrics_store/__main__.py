from __future__ import annotations

import argparse
import logging

import structlog
import uvicorn
from pydantic import ValidationError

from metrics_store.config import Settings
from metrics_store.factory import create_app
from metrics_store.observability.logging import configure_logging

logger = structlog.get_logger("metrics_store")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="metrics-store", description="In-memory machine metrics store")
    parser.add_argument("--listen-port", type=int, default=None, help="A port to listen on from 1 to 65535")
    parser.add_argument("--listen-host", default=None, help="Interface to bind to")
    parser.add_argument("--debug", action=argparse.BooleanOptionalAction, default=None, help="Enable debug output")
    parser.add_argument("--max-request-body-size", type=int, default=None, help="Maximum size of request body in bytes")
    parser.add_argument(
        "--allow-unknown-fields",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Ignore unknown JSON fields instead of rejecting the request",
    )
    parser.add_argument(
        "--shutdown-timeout",
        type=int,
        default=None,
        help="Seconds to wait for in-flight requests on shutdown",
    )
    return parser


def load_settings(args: argparse.Namespace) -> Settings:
    """Environment settings with any command line flags layered on top."""
    overrides = {
        "LISTEN_PORT": args.listen_port,
        "LISTEN_HOST": args.listen_host,
        "DEBUG": args.debug,
        "MAX_REQUEST_BODY_SIZE": args.max_request_body_size,
        "ALLOW_UNKNOWN_FIELDS": args.allow_unknown_fields,
        "SHUTDOWN_TIMEOUT": args.shutdown_timeout,
    }
    # keyed by env alias so a flag always wins over the same variable in the environment
    return Settings(**{key: value for key, value in overrides.items() if value is not None})


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args)
    except ValidationError as exc:
        configure_logging()
        for err in exc.errors(include_url=False):
            logger.error("config.invalid", field=".".join(str(p) for p in err["loc"]), error=err["msg"])
        parser.print_help()
        raise SystemExit(1) from exc

    configure_logging(logging.DEBUG if settings.debug else logging.INFO)
    logger.info("server.starting", host=settings.listen_host, port=settings.listen_port)

    # uvicorn handles SIGINT/SIGTERM: stop accepting, then drain for up to shutdown_timeout.
    uvicorn.run(
        create_app(settings),
        host=settings.listen_host,
        port=settings.listen_port,
        log_config=None,
        timeout_graceful_shutdown=settings.shutdown_timeout,
    )
    logger.info("server.stopped")


if __name__ == "__main__":
    main()
