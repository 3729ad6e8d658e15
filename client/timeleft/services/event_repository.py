"""
Event repository: the client's canonical cache of event records.

CONSISTENCY MODEL
=================

The server is the only authority. Every mutation is a request/response
round-trip and the cache changes only when the server confirms:

  1. Check what can be checked locally (session, role, capacity, status)
     and refuse without sending anything when a rule is already broken
  2. Send the request
  3. On success, replace the cached record with the one the server returned
     (or drop it, for delete); on failure, leave the cache untouched and
     publish the most specific error message

There is no client-side prediction and no versioning. Two operations in
flight against the same event both land, in whatever order their responses
arrive: the last response wins and fields are never merged.

Initial load retries with exponential backoff (2s, 4s, ...) because it
usually races the session restore at startup; single-record operations do
not retry, the caller decides.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from timeleft.core.config import Settings, get_settings
from timeleft.core.errors import ApiError, ErrorKind, SESSION_EXPIRED_MESSAGE
from timeleft.core.logging import get_logger
from timeleft.core.metrics import record_fetch_attempt
from timeleft.infrastructure.api_client import ApiClient, decode, decode_list
from timeleft.schemas.event import (
    Event,
    EventCreate,
    EventStatus,
    EventUpdate,
    RejectRequest,
)
from timeleft.services.base_repository import CachedRepository
from timeleft.services.session_store import SessionStore

logger = get_logger(__name__)

NOT_AUTHENTICATED_MESSAGE = "Not authenticated or token missing"
FETCH_FAILED_MESSAGE = "Failed to load events after multiple retries"

Sleep = Callable[[float], Awaitable[None]]


class EventRepository(CachedRepository):
    name = "events"

    def __init__(
        self,
        api: ApiClient,
        session: SessionStore,
        settings: Optional[Settings] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        super().__init__(api, session)
        settings = settings or get_settings()
        self._max_attempts = settings.EVENTS_FETCH_MAX_ATTEMPTS
        self._backoff_seconds = settings.EVENTS_FETCH_BACKOFF_SECONDS
        self._sleep = sleep
        self._events: dict[str, Event] = {}

    # ------------------------------------------------------------------
    # Read side: projections over the cache, recomputed on every read
    # ------------------------------------------------------------------

    @property
    def events(self) -> list[Event]:
        return list(self._events.values())

    @property
    def my_events(self) -> list[Event]:
        """Events the current user created or joined, in cache order."""
        user_id = self._session.user_id
        if user_id is None:
            return []
        return [
            event for event in self._events.values()
            if event.is_created_by(user_id) or event.has_participant(user_id)
        ]

    def get(self, event_id: str) -> Optional[Event]:
        return self._events.get(event_id)

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def fetch_all(self) -> bool:
        """
        Replace the cache with the server's list.

        Up to EVENTS_FETCH_MAX_ATTEMPTS attempts, sleeping
        base * 2 ** (attempt - 1) seconds between them. After the last
        failure the cache keeps its previous contents.
        """
        if not self._session.is_authenticated:
            self.error = NOT_AUTHENTICATED_MESSAGE
            logger.warning("events_fetch_skipped", reason="not_authenticated")
            return False

        with self._operation() as generation:
            events: Optional[list[Event]] = None
            for attempt in range(1, self._max_attempts + 1):
                try:
                    data = await self._api.get("/events")
                    events = decode_list(Event, data)
                    record_fetch_attempt(True)
                    break
                except ApiError as e:
                    record_fetch_attempt(False)
                    if e.kind == ErrorKind.AUTHENTICATION:
                        # Session is gone; retrying cannot succeed
                        self._fail("fetch", e, SESSION_EXPIRED_MESSAGE)
                        return False
                    if attempt == self._max_attempts:
                        logger.error("events_fetch_exhausted", attempts=attempt, error=str(e))
                        if generation == self._generation:
                            self.error = FETCH_FAILED_MESSAGE
                        return False

                    delay = self._backoff_seconds * 2 ** (attempt - 1)
                    logger.info(
                        "events_fetch_retry",
                        attempt=attempt,
                        delay_seconds=delay,
                        error=str(e),
                    )
                    await self._sleep(delay)

        if generation != self._generation:
            logger.info("events_fetch_discarded", reason="session_changed")
            return False

        self._events = {event.id: event for event in events}
        logger.info("events_fetched", count=len(events), attempts=attempt)
        return True

    async def refresh(self, event_id: str) -> Optional[Event]:
        """Re-read one event, e.g. after attaching an icebreaker to it."""
        if not self._require_session("refresh"):
            return None
        return await self._round_trip(
            "refresh", "Failed to load event", "GET", f"/events/{event_id}"
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create(self, payload: EventCreate) -> Optional[Event]:
        """Create a pending event owned by the current user."""
        if not self._require_session("create"):
            return None
        return await self._round_trip(
            "create", "Failed to create event", "POST", "/events",
            files=payload.to_multipart(),
        )

    async def update(self, event_id: str, changes: EventUpdate) -> Optional[Event]:
        if not self._require_session("update"):
            return None
        cached = self._events.get(event_id)
        if cached is not None and not cached.is_created_by(self._session.user_id):
            self._reject("update", "Only the event creator can update this event")
            return None
        return await self._round_trip(
            "update", "Failed to update event", "PUT", f"/events/{event_id}",
            json=changes.to_payload(),
        )

    async def delete(self, event_id: str) -> bool:
        if not self._require_session("delete"):
            return False
        cached = self._events.get(event_id)
        if (
            cached is not None
            and not self._session.is_admin
            and not cached.is_created_by(self._session.user_id)
        ):
            self._reject("delete", "Only the event creator or an admin can delete this event")
            return False

        with self._operation() as generation:
            try:
                await self._api.delete(f"/events/{event_id}")
            except ApiError as e:
                if generation == self._generation:
                    self._fail("delete", e, "Failed to delete event")
                return False

        if generation == self._generation:
            self._events.pop(event_id, None)
        logger.info("event_deleted", event_id=event_id)
        return True

    async def join(self, event_id: str) -> Optional[Event]:
        if not self._require_session("join"):
            return None
        cached = self._events.get(event_id)
        if cached is not None:
            if cached.status != EventStatus.APPROVED:
                self._reject("join", "Only approved events can be joined")
                return None
            if cached.is_full:
                self._reject("join", "Event is full")
                return None
        return await self._round_trip(
            "join", "Failed to join event", "PUT", f"/events/{event_id}/join"
        )

    async def leave(self, event_id: str) -> Optional[Event]:
        if not self._require_session("leave"):
            return None
        return await self._round_trip(
            "leave", "Failed to leave event", "PUT", f"/events/{event_id}/leave"
        )

    async def approve(self, event_id: str) -> Optional[Event]:
        if not self._check_moderation("approve", "approved", event_id):
            return None
        return await self._round_trip(
            "approve", "Failed to approve event", "PUT", f"/events/{event_id}/approve"
        )

    async def reject(self, event_id: str, reason: str) -> Optional[Event]:
        if not self._check_moderation("reject", "rejected", event_id):
            return None
        reason = (reason or "").strip()
        if not reason:
            self._reject("reject", "A reason is required to reject an event")
            return None
        return await self._round_trip(
            "reject", "Failed to reject event", "PUT", f"/events/{event_id}/reject",
            json=RejectRequest(reason=reason).model_dump(),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _clear_cache(self) -> None:
        self._events = {}

    def _check_moderation(self, operation: str, verb_past: str, event_id: str) -> bool:
        if not self._require_session(operation):
            return False
        if not self._session.is_admin:
            self._reject(operation, "Admin access required")
            return False
        cached = self._events.get(event_id)
        if cached is not None and cached.status != EventStatus.PENDING:
            self._reject(operation, f"Only pending events can be {verb_past}")
            return False
        return True

    async def _round_trip(
        self, operation: str, fallback: str, method: str, path: str, **kwargs
    ) -> Optional[Event]:
        """Send one request and replace the cached record with the server's copy."""
        with self._operation() as generation:
            try:
                data = await self._api.request_data(method, path, **kwargs)
                event = decode(Event, data)
            except ApiError as e:
                if generation == self._generation:
                    self._fail(operation, e, fallback)
                return None

        if generation != self._generation:
            logger.info("event_response_discarded", operation=operation, reason="session_changed")
            return None

        self._events[event.id] = event
        logger.info(
            f"event_{operation}_confirmed",
            event_id=event.id,
            status=event.status.value,
            participants=len(event.participants),
        )
        return event
