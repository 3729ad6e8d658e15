"""
Shared plumbing for the cached repositories.

Every repository exposes the same consumer-facing surface:
- `error`: a single last-error slot, overwritten by each operation
- `loading`: true while any of its operations is in flight
- `clear_error()`

and reacts to session changes by dropping its cache on logout and
scheduling a refetch on login.
"""

import asyncio
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator, Optional

from timeleft.core.errors import AUTH_REQUIRED_MESSAGE, ApiError
from timeleft.core.logging import get_logger
from timeleft.core.metrics import record_repository_error
from timeleft.infrastructure.api_client import ApiClient
from timeleft.services.session_store import SessionChange, SessionStore

logger = get_logger(__name__)


class CachedRepository(ABC):
    name = "repository"

    def __init__(self, api: ApiClient, session: SessionStore):
        self._api = api
        self._session = session
        self._in_flight = 0
        # Bumped on every login/logout; responses from an older generation are dropped
        self._generation = 0
        self._refresh_task: Optional[asyncio.Task] = None
        self.error: Optional[str] = None

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    def clear_error(self) -> None:
        self.error = None

    @abstractmethod
    async def fetch_all(self) -> bool:
        """Replace the cache with the server's current list."""

    def on_session_changed(self, change: SessionChange) -> None:
        """Session listener: invalidate on logout, refetch on login."""
        if change.type == "user_changed":
            return
        self._generation += 1
        self._clear_cache()
        self.error = None
        if change.type == "login":
            if self._refresh_task is not None and not self._refresh_task.done():
                self._refresh_task.cancel()
            self._refresh_task = asyncio.get_running_loop().create_task(self.fetch_all())
            logger.debug(f"{self.name}_refresh_scheduled", reason=change.reason)

    async def wait_for_refresh(self) -> None:
        """Await the fetch scheduled by the last login, if any."""
        if self._refresh_task is not None:
            await self._refresh_task

    @abstractmethod
    def _clear_cache(self) -> None:
        pass

    def _require_session(self, operation: str) -> bool:
        if self._session.is_authenticated:
            return True
        self._reject(operation, AUTH_REQUIRED_MESSAGE)
        return False

    def _reject(self, operation: str, message: str) -> None:
        """Publish a locally detected failure; no request was sent."""
        self.error = message
        record_repository_error(self.name, operation)
        logger.info(f"{self.name}_{operation}_rejected", reason=message)

    def _fail(self, operation: str, error: ApiError, fallback: str) -> None:
        self.error = error.describe(fallback)
        record_repository_error(self.name, operation)
        logger.warning(f"{self.name}_{operation}_failed", error=str(error))

    @contextmanager
    def _operation(self) -> Iterator[int]:
        """Track an in-flight call and yield the session generation it started in."""
        self.error = None
        self._in_flight += 1
        try:
            yield self._generation
        finally:
            self._in_flight -= 1
