"""
Async Storage Backend Module

Async storage port used by callers that fetch account and transaction records
from an asynchronous source before invoking the (synchronous) statement engine.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any
from contextlib import asynccontextmanager
import asyncio

from .storage import StorageInterface, InMemoryStorage


class AsyncStorageInterface(ABC):
    """Abstract interface for async storage backends"""

    @abstractmethod
    async def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save a record to storage"""
        pass

    @abstractmethod
    async def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record from storage"""
        pass

    @abstractmethod
    async def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""
        pass

    @abstractmethod
    async def delete(self, table: str, record_id: str) -> bool:
        """Delete a record from storage"""
        pass

    @abstractmethod
    async def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters"""
        pass

    async def close(self) -> None:
        """Close storage connection (default no-op)"""
        pass

    async def begin_transaction(self) -> None:
        pass

    async def commit(self) -> None:
        pass

    async def rollback(self) -> None:
        pass

    @asynccontextmanager
    async def atomic(self):
        """Context manager for atomic operations"""
        await self.begin_transaction()
        try:
            yield
            await self.commit()
        except Exception:
            await self.rollback()
            raise


class AsyncStorageAdapter(AsyncStorageInterface):
    """
    Exposes a synchronous backend through the async interface.

    Blocking calls run in a worker thread so the event loop is never stalled
    by SQLite I/O.
    """

    def __init__(self, storage: StorageInterface):
        self._sync_storage = storage
        self._lock = asyncio.Lock()

    @property
    def sync_storage(self) -> StorageInterface:
        return self._sync_storage

    async def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        async with self._lock:
            await asyncio.to_thread(self._sync_storage.save, table, record_id, data)

    async def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        async with self._lock:
            return await asyncio.to_thread(self._sync_storage.load, table, record_id)

    async def load_all(self, table: str) -> List[Dict[str, Any]]:
        async with self._lock:
            return await asyncio.to_thread(self._sync_storage.load_all, table)

    async def delete(self, table: str, record_id: str) -> bool:
        async with self._lock:
            return await asyncio.to_thread(self._sync_storage.delete, table, record_id)

    async def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        async with self._lock:
            return await asyncio.to_thread(self._sync_storage.find, table, filters)

    async def close(self) -> None:
        await asyncio.to_thread(self._sync_storage.close)


class AsyncInMemoryStorage(AsyncStorageAdapter):
    """Async wrapper around InMemoryStorage"""

    def __init__(self):
        super().__init__(InMemoryStorage())
