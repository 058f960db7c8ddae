from __future__ import annotations

import json
import uuid
from collections.abc import Callable

import structlog
from pydantic import ValidationError

from metrics_store.db.datastore import DatastoreReturnCode, MetricsDatastore
from metrics_store.models.schemas import MachineMetrics, MetricsCreatedResponse

_JSON_WHITESPACE = " \t\n\r"

logger = structlog.get_logger(__name__)


class RequestDecodeError(ValueError):
    """The request body could not be decoded into a metrics record."""


class MultipleObjectsError(ValueError):
    """The request body carried more than one JSON value."""


class DatastoreInsertError(RuntimeError):
    def __init__(self, code: DatastoreReturnCode, key: str) -> None:
        super().__init__(f"could not add entry to the datastore: {code} (key {key!r})")
        self.code = code
        self.key = key


class SerializationError(RuntimeError):
    """Stored entries could not be rendered as JSON."""


def _new_id() -> str:
    return str(uuid.uuid4())


def _describe_validation_error(exc: ValidationError) -> str:
    parts: list[str] = []
    for err in exc.errors(include_url=False):
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)


class MetricsService:
    """Decodes, identifies, stores and renders machine metrics.

    The datastore is the only shared state; this class keeps none of its own
    beyond configuration, so one instance serves all concurrent requests.
    """

    def __init__(
        self,
        datastore: MetricsDatastore,
        *,
        allow_unknown_fields: bool = False,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self.datastore = datastore
        self.allow_unknown_fields = allow_unknown_fields
        self._id_factory = id_factory
        self._decoder = json.JSONDecoder()

    def decode_metrics(self, body: bytes) -> MachineMetrics:
        """
        Decode exactly one JSON object from ``body``.

        Ints and strings are validated strictly (no "90" for 90). Anything
        after the first JSON value other than whitespace is an error.
        """
        try:
            text = body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise RequestDecodeError(f"body is not valid UTF-8: {exc}") from exc

        start = len(text) - len(text.lstrip(_JSON_WHITESPACE))
        try:
            _, end = self._decoder.raw_decode(text, start)
        except json.JSONDecodeError as exc:
            raise RequestDecodeError(str(exc)) from exc

        try:
            record = MachineMetrics.model_validate_json(
                text[start:end],
                strict=True,
                context={"allow_unknown_fields": self.allow_unknown_fields},
            )
        except ValidationError as exc:
            raise RequestDecodeError(_describe_validation_error(exc)) from exc

        if text[end:].strip(_JSON_WHITESPACE):
            raise MultipleObjectsError("Request body can only contain one JSON object")

        return record

    def add_metrics(self, record: MachineMetrics) -> MachineMetrics:
        """Store ``record`` under a fresh id, ignoring any id the client sent."""
        stored = record.model_copy(update={"id": self._id_factory()})
        code = self.datastore.insert(stored.id, stored)

        if code is DatastoreReturnCode.KEY_EXISTS:
            # uuid4 collision: one more attempt, then give up.
            logger.warning("metrics.id_collision", id=stored.id)
            stored = record.model_copy(update={"id": self._id_factory()})
            code = self.datastore.insert(stored.id, stored)

        if code is not DatastoreReturnCode.SUCCESS:
            logger.error("metrics.insert_failed", reason=str(code), id=stored.id, machine_id=record.machine_id)
            raise DatastoreInsertError(code, stored.id)

        logger.debug("metrics.stored", id=stored.id, machine_id=stored.machine_id)
        return stored

    def render_all(self) -> bytes:
        entries = self.datastore.list_all()
        if entries is None:
            raise SerializationError("could not get entries from the datastore")

        try:
            return json.dumps([entry.to_wire() for entry in entries], indent=2).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"could not serialize entries: {exc}") from exc

    @staticmethod
    def render_created(record: MachineMetrics) -> bytes:
        response = MetricsCreatedResponse(
            id=record.id,
            message=f"New entry added to the data store with id - {record.id}",
        )
        return json.dumps(response.model_dump(), indent=2).encode("utf-8")
