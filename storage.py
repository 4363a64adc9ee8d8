# storage.py
from __future__ import annotations

import asyncio
import json
import os
import tempfile
from typing import Any, Dict, Optional, Protocol

import aiosqlite
from loguru import logger

from db_schema import SqliteSnapshotStore
from errors import StorageError
from state import ChatState


class SnapshotStore(Protocol):
    async def load(self) -> Optional[Dict[str, Any]]: ...
    async def save(self, snapshot: Dict[str, Any]) -> None: ...


def export_json(snapshot: Dict[str, Any]) -> bytes:
    return json.dumps(snapshot, indent=2, ensure_ascii=False).encode("utf-8")


# ============================================================
#                       JSON FILE STORE
# ============================================================

class JsonSnapshotStore:
    """The whole state as one `data.json` document, replaced atomically on save."""

    def __init__(self, path: str):
        self.path = path

    async def load(self) -> Optional[Dict[str, Any]]:
        return await asyncio.to_thread(self._read)

    async def save(self, snapshot: Dict[str, Any]) -> None:
        await asyncio.to_thread(self._write, export_json(snapshot))

    def _read(self) -> Optional[Dict[str, Any]]:
        if not os.path.exists(self.path):
            return None
        with open(self.path, "r", encoding="utf-8") as fh:
            raw = fh.read()
        if not raw.strip():
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            raise StorageError(f"{self.path} is not valid JSON: {e}") from e

    def _write(self, payload: bytes) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=".data-", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(payload)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def __repr__(self) -> str:
        return f"JsonSnapshotStore({self.path!r})"


def build_store(backend: str, path: str) -> SnapshotStore:
    if backend == "json":
        return JsonSnapshotStore(path)
    return SqliteSnapshotStore(path)


# ============================================================
#                          PERSISTER
# ============================================================

STORAGE_ERRORS = (OSError, aiosqlite.Error, StorageError, ValueError)


class Persister:
    """
    Writes full snapshots: soon after every change (one pending write at a
    time) and on a fixed interval. A failed write is logged and retried on the
    next round; the in-memory state stays authoritative.
    """

    def __init__(self, state: ChatState, store: SnapshotStore, interval: float = 30):
        self.state = state
        self.store = store
        self.interval = interval
        self.dirty = False
        self._write_lock = asyncio.Lock()
        self._pending: Optional[asyncio.Task] = None
        self._autosave: Optional[asyncio.Task] = None

    async def restore(self) -> bool:
        try:
            data = await self.store.load()
        except STORAGE_ERRORS:
            logger.exception("Failed to load data from {}, starting empty", self.store)
            return False
        if data is None:
            logger.info("No saved data in {}, starting empty", self.store)
            return False
        async with self.state.lock:
            self.state.restore(data)
            stats = self.state.stats()
        logger.info("Data loaded from {}: {}", self.store, stats)
        return True

    def touch(self) -> None:
        self.dirty = True
        if self._pending is not None and not self._pending.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return  # no loop: the autosave or final flush picks it up
        self._pending = loop.create_task(self.flush())

    async def flush(self) -> bool:
        async with self._write_lock:
            async with self.state.lock:
                snapshot = self.state.snapshot()
                self.dirty = False
            try:
                await self.store.save(snapshot)
            except STORAGE_ERRORS:
                self.dirty = True
                logger.exception("Failed to save data to {}", self.store)
                return False
        return True

    async def run_autosave(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.flush()

    def start(self) -> None:
        self.state.add_listener(self.touch)
        if self._autosave is None:
            self._autosave = asyncio.get_running_loop().create_task(self.run_autosave())

    async def close(self) -> bool:
        if self._autosave is not None:
            self._autosave.cancel()
            try:
                await self._autosave
            except asyncio.CancelledError:
                pass
            self._autosave = None
        if self._pending is not None and not self._pending.done():
            await self._pending
        return await self.flush()


__all__ = [
    "SnapshotStore",
    "JsonSnapshotStore",
    "SqliteSnapshotStore",
    "Persister",
    "build_store",
    "export_json",
]
