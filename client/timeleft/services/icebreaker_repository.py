"""
Icebreaker repository: CRUD cache for conversation-starter questions.

Same server-confirmed contract as the event repository, without status or
role transitions. Attaching and detaching only call the API: the cached
events are not touched, so callers refresh the event afterwards
(EventRepository.refresh) to see the new relation.
"""

from typing import Optional

from timeleft.core.errors import ApiError
from timeleft.core.logging import get_logger
from timeleft.infrastructure.api_client import decode, decode_list
from timeleft.schemas.icebreaker import Icebreaker, IcebreakerCreate, IcebreakerUpdate
from timeleft.services.base_repository import CachedRepository

logger = get_logger(__name__)


class IcebreakerRepository(CachedRepository):
    name = "icebreakers"

    def __init__(self, api, session):
        super().__init__(api, session)
        self._icebreakers: list[Icebreaker] = []

    @property
    def icebreakers(self) -> list[Icebreaker]:
        return list(self._icebreakers)

    async def fetch_all(self) -> bool:
        if not self._session.is_authenticated:
            return False

        with self._operation() as generation:
            try:
                data = await self._api.get("/icebreakers")
                icebreakers = decode_list(Icebreaker, data)
            except ApiError as e:
                if generation == self._generation:
                    self._fail("fetch", e, "Failed to fetch icebreakers")
                return False

        if generation != self._generation:
            return False
        self._icebreakers = icebreakers
        logger.info("icebreakers_fetched", count=len(icebreakers))
        return True

    async def get(self, icebreaker_id: str) -> Optional[Icebreaker]:
        """Read one icebreaker from the server and refresh its cached copy."""
        if not self._require_session("get"):
            return None
        with self._operation() as generation:
            try:
                icebreaker = decode(Icebreaker, await self._api.get(f"/icebreakers/{icebreaker_id}"))
            except ApiError as e:
                if generation == self._generation:
                    self._fail("get", e, "Failed to load icebreaker")
                return None

        if generation == self._generation:
            self._replace(icebreaker)
        return icebreaker

    async def create(self, payload: IcebreakerCreate) -> Optional[Icebreaker]:
        if not self._require_session("create"):
            return None
        with self._operation() as generation:
            try:
                icebreaker = decode(
                    Icebreaker, await self._api.post("/icebreakers", json=payload.model_dump())
                )
            except ApiError as e:
                if generation == self._generation:
                    self._fail("create", e, "Failed to create icebreaker")
                return None

        if generation == self._generation:
            self._icebreakers = [*self._icebreakers, icebreaker]
        logger.info("icebreaker_created", icebreaker_id=icebreaker.id)
        return icebreaker

    async def update(self, icebreaker_id: str, changes: IcebreakerUpdate) -> Optional[Icebreaker]:
        if not self._require_session("update"):
            return None
        with self._operation() as generation:
            try:
                icebreaker = decode(
                    Icebreaker,
                    await self._api.put(
                        f"/icebreakers/{icebreaker_id}", json=changes.model_dump(exclude_none=True)
                    ),
                )
            except ApiError as e:
                if generation == self._generation:
                    self._fail("update", e, "Failed to update icebreaker")
                return None

        if generation == self._generation:
            self._replace(icebreaker)
        logger.info("icebreaker_updated", icebreaker_id=icebreaker.id)
        return icebreaker

    async def delete(self, icebreaker_id: str) -> bool:
        if not self._require_session("delete"):
            return False
        with self._operation() as generation:
            try:
                await self._api.delete(f"/icebreakers/{icebreaker_id}")
            except ApiError as e:
                if generation == self._generation:
                    self._fail("delete", e, "Failed to delete icebreaker")
                return False

        if generation == self._generation:
            self._icebreakers = [i for i in self._icebreakers if i.id != icebreaker_id]
        logger.info("icebreaker_deleted", icebreaker_id=icebreaker_id)
        return True

    async def attach(self, event_id: str, icebreaker_id: str) -> bool:
        """Link an icebreaker to an event. Refresh the event to observe it."""
        return await self._relation(
            "attach",
            "Failed to add icebreaker to event",
            "POST",
            f"/events/{event_id}/icebreakers",
            json={"icebreakerId": icebreaker_id},
        )

    async def detach(self, event_id: str, icebreaker_id: str) -> bool:
        """Unlink an icebreaker from an event. The icebreaker itself survives."""
        return await self._relation(
            "detach",
            "Failed to remove icebreaker from event",
            "DELETE",
            f"/events/{event_id}/icebreakers/{icebreaker_id}",
        )

    def _clear_cache(self) -> None:
        self._icebreakers = []

    def _replace(self, icebreaker: Icebreaker) -> None:
        if not any(existing.id == icebreaker.id for existing in self._icebreakers):
            self._icebreakers = [*self._icebreakers, icebreaker]
            return
        self._icebreakers = [
            icebreaker if existing.id == icebreaker.id else existing
            for existing in self._icebreakers
        ]

    async def _relation(self, operation: str, fallback: str, method: str, path: str, **kwargs) -> bool:
        if not self._require_session(operation):
            return False
        with self._operation() as generation:
            try:
                await self._api.request(method, path, **kwargs)
            except ApiError as e:
                if generation == self._generation:
                    self._fail(operation, e, fallback)
                return False
        logger.info(f"icebreaker_{operation}ed", path=path)
        return True
