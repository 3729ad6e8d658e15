"""
Timeleft Events client - composition root

Builds every store once and wires them together:
- The transport client reads the credential from the token store
- A 401 on a session-bound call expires the session
- Session changes invalidate and refetch the event and icebreaker caches

Nothing is a module-level singleton: each TimeleftApp owns its own stores,
so several clients (or tests) can run side by side.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

import httpx

from timeleft.core.config import Settings, get_settings
from timeleft.core.logging import setup_logging, get_logger
from timeleft.core.metrics import render_metrics
from timeleft.infrastructure.api_client import ApiClient
from timeleft.services.event_repository import EventRepository, Sleep
from timeleft.services.icebreaker_repository import IcebreakerRepository
from timeleft.services.interfaces.checkout import CheckoutGateway
from timeleft.services.interfaces.token_store import TokenStore
from timeleft.services.payment_service import PaymentService
from timeleft.services.session_store import SessionStore
from timeleft.services.strategy_factory import get_token_store


@dataclass
class TimeleftApp:
    settings: Settings
    token_store: TokenStore
    api: ApiClient
    session: SessionStore
    events: EventRepository
    icebreakers: IcebreakerRepository
    payments: PaymentService

    async def aclose(self) -> None:
        await self.api.aclose()

    def metrics(self) -> tuple[bytes, str]:
        """Prometheus exposition payload for a host application to serve."""
        return render_metrics()


def build_app(
    settings: Optional[Settings] = None,
    *,
    token_store: Optional[TokenStore] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    checkout: Optional[CheckoutGateway] = None,
    sleep: Sleep = asyncio.sleep,
) -> TimeleftApp:
    """Create and wire all stores. Performs no I/O."""
    settings = settings or get_settings()
    token_store = token_store or get_token_store(settings)

    api = ApiClient(settings, token_store, transport=transport)
    session = SessionStore(api, token_store)
    events = EventRepository(api, session, settings, sleep=sleep)
    icebreakers = IcebreakerRepository(api, session)
    payments = PaymentService(api, session, checkout, settings)

    api.add_unauthorized_handler(session.expire)
    session.subscribe(events.on_session_changed)
    session.subscribe(icebreakers.on_session_changed)

    return TimeleftApp(
        settings=settings,
        token_store=token_store,
        api=api,
        session=session,
        events=events,
        icebreakers=icebreakers,
        payments=payments,
    )


@asynccontextmanager
async def lifespan(settings: Optional[Settings] = None, **kwargs) -> AsyncIterator[TimeleftApp]:
    """Client lifecycle: startup (logging, session restore) and shutdown."""
    settings = settings or get_settings()
    setup_logging(settings)
    logger = get_logger(__name__)

    logger.info(
        "client_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        api_url=settings.API_URL,
    )

    app = build_app(settings, **kwargs)
    if await app.session.restore_session():
        logger.info("session_ready", user_id=app.session.user_id)
    else:
        logger.info("session_anonymous")

    try:
        yield app
    finally:
        await app.aclose()
        logger.info("client_shutdown")
