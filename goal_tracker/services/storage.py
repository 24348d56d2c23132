"""
Key-value storage with browser localStorage semantics: synchronous,
string keys, string values, and an atomic single-key set.
"""
from abc import ABC, abstractmethod
from typing import Dict, List, Optional
import logging
import threading

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from goal_tracker.core.config import LOCAL_STORAGE_URL
from goal_tracker.database import build_engine, build_sessionmaker
from goal_tracker.models.local_storage import StorageItem

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """A write to the local store did not happen."""


class StorageQuotaExceeded(StorageError):
    pass


class KeyValueStore(ABC):
    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def remove_item(self, key: str) -> None:
        ...

    @abstractmethod
    def keys(self) -> List[str]:
        ...


class MemoryStorage(KeyValueStore):
    """In-process store. ``quota_bytes`` mimics the browser's storage quota."""

    def __init__(self, quota_bytes: Optional[int] = None):
        self._items: Dict[str, str] = {}
        self._lock = threading.Lock()
        self.quota_bytes = quota_bytes

    def _size_with(self, key: str, value: str) -> int:
        size = len(key) + len(value)
        for k, v in self._items.items():
            if k != key:
                size += len(k) + len(v)
        return size

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise StorageError(f"Value for {key!r} must be a string")
        with self._lock:
            if self.quota_bytes is not None and self._size_with(key, value) > self.quota_bytes:
                raise StorageQuotaExceeded(f"Setting {key!r} exceeded the storage quota")
            self._items[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._items)


class SqlStorage(KeyValueStore):
    """Persistent store backed by a single SQLAlchemy table."""

    def __init__(self, url: Optional[str] = None, engine=None):
        if engine is None:
            engine = build_engine(url or LOCAL_STORAGE_URL)
        self.engine = engine
        self.SessionLocal = build_sessionmaker(engine)
        StorageItem.__table__.create(bind=engine, checkfirst=True)

    def get_item(self, key: str) -> Optional[str]:
        with self.SessionLocal() as db:
            item = db.get(StorageItem, key)
            return item.value if item is not None else None

    def set_item(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise StorageError(f"Value for {key!r} must be a string")
        with self.SessionLocal() as db:
            try:
                item = db.get(StorageItem, key)
                if item is None:
                    db.add(StorageItem(key=key, value=value))
                else:
                    item.value = value
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Failed to write storage key {key}: {e}")
                raise StorageError(f"Failed to write {key!r}: {e}") from e

    def remove_item(self, key: str) -> None:
        with self.SessionLocal() as db:
            try:
                item = db.get(StorageItem, key)
                if item is not None:
                    db.delete(item)
                    db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                raise StorageError(f"Failed to remove {key!r}: {e}") from e

    def keys(self) -> List[str]:
        with self.SessionLocal() as db:
            return list(db.scalars(select(StorageItem.key)))

    def dispose(self) -> None:
        self.engine.dispose()
