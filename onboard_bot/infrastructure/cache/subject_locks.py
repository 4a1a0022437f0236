# onboard_bot/infrastructure/cache/subject_locks.py
"""
Per-subject serialization of inbound turns.

Two messages for the same subject key must never run a turn concurrently
(read-modify-write of answers / current step). Both registries expose
``hold(subject_key)`` as an async context manager.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as redis
from loguru import logger
from redis.exceptions import LockError

LOCK_PREFIX = "onboard:lock:"


class SubjectLockTimeout(Exception):
    """The subject lock could not be acquired in time."""

    def __init__(self, subject_key: str):
        super().__init__(f"Timed out waiting for lock on {subject_key}")
        self.subject_key = subject_key


class LocalSubjectLocks:
    """One asyncio.Lock per subject key, dropped once nobody holds or waits for it."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, subject_key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(subject_key, asyncio.Lock())
        self._users[subject_key] = self._users.get(subject_key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[subject_key] -= 1
            if self._users[subject_key] == 0:
                del self._users[subject_key]
                self._locks.pop(subject_key, None)

    def __len__(self) -> int:
        return len(self._locks)


class RedisSubjectLocks:
    """Distributed variant for multi-process deployments."""

    def __init__(
        self,
        client: redis.Redis,
        lock_timeout: int = 180,
        blocking_timeout: float = 180.0,
    ) -> None:
        self._redis = client
        self._lock_timeout = lock_timeout
        self._blocking_timeout = blocking_timeout

    def _key(self, subject_key: str) -> str:
        return f"{LOCK_PREFIX}{subject_key}"

    @asynccontextmanager
    async def hold(self, subject_key: str) -> AsyncIterator[None]:
        lock = self._redis.lock(
            self._key(subject_key),
            timeout=self._lock_timeout,
            blocking_timeout=self._blocking_timeout,
        )
        acquired = await lock.acquire()
        if not acquired:
            raise SubjectLockTimeout(subject_key)
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError:
                logger.warning("Subject lock for {} expired before release", subject_key)
