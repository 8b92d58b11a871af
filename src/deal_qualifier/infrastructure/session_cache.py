"""SessionResultCache: completed evaluations keyed by session.

Thread-safe mapping from session identifier to the last evaluation state
produced by a completed pipeline run.  Writes overwrite unconditionally;
there is no eviction and no persistence, entries live until the process
exits.

The map itself is guarded by one lock.  Whole-run exclusion for a single
session (single writer per session) is available through
``session_lock()`` / ``async_session_lock()``, which the HTTP layer holds
around ingest + evaluate + ``put``.  Library callers that skip the lock get
last-write-wins.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Mapping
from typing import Any

logger = logging.getLogger(__name__)


class SessionResultCache:
    """Process-local store of ``session_id -> EvaluationState``."""

    def __init__(self) -> None:
        self._entries: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()
        self._session_locks: dict[str, threading.Lock] = {}
        self._async_session_locks: dict[str, asyncio.Lock] = {}

    def put(self, session_id: str, state: Mapping[str, Any]) -> None:
        """Store *state* for *session_id*, replacing any previous entry.

        A shallow copy is stored so later changes to the caller's mapping do
        not leak into the cache.  No field-level merge with the old entry.
        """
        snapshot = dict(state)
        with self._lock:
            replaced = session_id in self._entries
            self._entries[session_id] = snapshot
        logger.debug(
            "SessionResultCache: %s session %s", "replaced" if replaced else "stored", session_id
        )

    def get(self, session_id: str) -> dict[str, Any] | None:
        """Return the cached state for *session_id*, or ``None``."""
        with self._lock:
            return self._entries.get(session_id)

    def delete(self, session_id: str) -> bool:
        """Remove an entry and its idle session locks. Returns True if it existed."""
        with self._lock:
            self._drop_idle_locks((session_id,))
            return self._entries.pop(session_id, None) is not None

    def clear(self) -> None:
        """Remove all entries and every idle session lock."""
        with self._lock:
            self._drop_idle_locks(list(self._session_locks) + list(self._async_session_locks))
            self._entries.clear()

    def session_ids(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    # -- per-session write locks ---------------------------------------------

    def session_lock(self, session_id: str) -> threading.Lock:
        """Lock serialising evaluation runs for one session (threaded callers)."""
        with self._lock:
            lock = self._session_locks.get(session_id)
            if lock is None:
                lock = self._session_locks[session_id] = threading.Lock()
            return lock

    def async_session_lock(self, session_id: str) -> asyncio.Lock:
        """Lock serialising evaluation runs for one session (async callers)."""
        with self._lock:
            lock = self._async_session_locks.get(session_id)
            if lock is None:
                lock = self._async_session_locks[session_id] = asyncio.Lock()
            return lock

    def _drop_idle_locks(self, session_ids) -> None:
        # a held lock stays so its waiters and the next caller share it
        for session_id in session_ids:
            for locks in (self._session_locks, self._async_session_locks):
                lock = locks.get(session_id)
                if lock is not None and not lock.locked():
                    del locks[session_id]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._entries
