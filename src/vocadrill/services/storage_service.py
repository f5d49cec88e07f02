"""Key-value persistence for serialized records."""
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vocadrill import monitoring
from vocadrill.models.models import KeyValueEntry

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the store cannot be read, written or cleared."""


class KeyValueStore(ABC):
    """Synchronous whole-value storage, last write wins."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Get the value stored under key, or None if absent.

        Raises:
            StorageError: If the backend could not be read. Callers must not
                mistake this for an absent key.
        """

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Remove key. Removing a missing key is not an error."""


class InMemoryKeyValueStore(KeyValueStore):
    """Store that keeps values in a dict for the lifetime of the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value

    def remove(self, key: str) -> None:
        self.values.pop(key, None)


class SqlKeyValueStore(KeyValueStore):
    """Store backed by the key_value_entries table."""

    def __init__(self, db: Session):
        """Initialize the store with a database session."""
        self.db = db

    def get(self, key: str) -> Optional[str]:
        try:
            entry = self.db.get(KeyValueEntry, key)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Could not read key {key}: {e}") from e
        return entry.value if entry else None

    def set(self, key: str, value: str) -> None:
        try:
            entry = self.db.get(KeyValueEntry, key)
            if entry is None:
                self.db.add(KeyValueEntry(key=key, value=value))
            else:
                entry.value = value
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Could not write key {key}: {e}") from e

    def remove(self, key: str) -> None:
        try:
            self.db.query(KeyValueEntry).filter(KeyValueEntry.key == key).delete()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Could not remove key {key}: {e}") from e


def read_json(store: KeyValueStore, key: str) -> Optional[Any]:
    """Read and decode a JSON value, treating malformed payloads as absent.

    A failed read is not an absent value: StorageError propagates.
    """
    raw = store.get(key)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError as e:
        logger.warning(f"Ignoring malformed payload under {key}: {e}")
        monitoring.corrupt_payloads.labels(key=key).inc()
        return None


def write_json(store: KeyValueStore, key: str, value: Any) -> bool:
    """Encode and store a JSON value. Returns False if the write failed."""
    try:
        store.set(key, json.dumps(value, ensure_ascii=False))
    except StorageError as e:
        logger.error(f"Keeping {key} in memory only: {e}")
        monitoring.storage_errors.labels(operation="write").inc()
        return False
    return True


def remove_key(store: KeyValueStore, key: str) -> bool:
    """Remove a key. Returns False if the removal failed."""
    try:
        store.remove(key)
    except StorageError as e:
        logger.error(f"Could not remove {key}: {e}")
        monitoring.storage_errors.labels(operation="remove").inc()
        return False
    return True
