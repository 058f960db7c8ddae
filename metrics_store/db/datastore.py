from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from threading import Lock

from metrics_store.models.schemas import MachineMetrics


class DatastoreReturnCode(Enum):
    SUCCESS = "Success"
    KEY_EXISTS = "Key already exists"
    KEY_NOT_SPECIFIED = "Key not specified"
    VALUE_NOT_SPECIFIED = "Value not specified"

    def __str__(self) -> str:
        return self.value


class MetricsDatastore(ABC):
    """Storage seen by the request handling code: add one entry, read them all."""

    @abstractmethod
    def insert(self, key: str, record: MachineMetrics | None) -> DatastoreReturnCode: ...

    @abstractmethod
    def list_all(self) -> list[MachineMetrics]: ...


class InMemoryDatastore(MetricsDatastore):
    """Thread-safe, process-local map of id -> record (lost on restart).

    A single lock guards the whole map and is only held for the dict
    access itself.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._entries: dict[str, MachineMetrics] = {}

    def insert(self, key: str, record: MachineMetrics | None) -> DatastoreReturnCode:
        if not key:
            return DatastoreReturnCode.KEY_NOT_SPECIFIED
        if record is None:
            return DatastoreReturnCode.VALUE_NOT_SPECIFIED

        with self._lock:
            if key in self._entries:
                return DatastoreReturnCode.KEY_EXISTS
            self._entries[key] = record
        return DatastoreReturnCode.SUCCESS

    def list_all(self) -> list[MachineMetrics]:
        with self._lock:
            return list(self._entries.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


_DATASTORE: InMemoryDatastore | None = None
_DATASTORE_LOCK = Lock()


def get_datastore() -> InMemoryDatastore:
    global _DATASTORE
    if _DATASTORE is None:
        with _DATASTORE_LOCK:
            if _DATASTORE is None:
                _DATASTORE = InMemoryDatastore()
    return _DATASTORE
