"""
Session store: the authenticated identity and its credential.

STATE MACHINE
=============

    UNRESOLVED --restore_session()--> VALIDATING --+--> AUTHENTICATED
                                                   +--> ANONYMOUS
    AUTHENTICATED --logout() / expire()--> ANONYMOUS
    ANONYMOUS --login() / register()--> AUTHENTICATED

Only the opaque token is persisted (through a TokenStore). The identity is
always re-derived from the server, and `is_authenticated` holds only once
the current token has been confirmed by a server response.

Listeners subscribed with `subscribe()` receive a SessionChange on every
login, logout and profile change; repositories use it to drop or refetch
their caches.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Literal, Optional

from timeleft.core.errors import ApiError, AUTH_REQUIRED_MESSAGE, SESSION_EXPIRED_MESSAGE
from timeleft.core.logging import get_logger
from timeleft.core.metrics import record_session_invalidation
from timeleft.infrastructure.api_client import ApiClient, decode
from timeleft.schemas.user import (
    AuthResponse,
    LoginCredentials,
    RegisterData,
    UpdateProfileData,
    User,
)
from timeleft.services.interfaces.token_store import TokenStore

logger = get_logger(__name__)

LOGIN_FAILED_MESSAGE = "Login failed. Please try again."
REGISTER_FAILED_MESSAGE = "Registration failed. Please try again."
PROFILE_UPDATE_FAILED_MESSAGE = "Profile update failed. Please try again."

SessionChangeType = Literal["login", "logout", "user_changed"]


class SessionState(str, Enum):
    UNRESOLVED = "unresolved"
    VALIDATING = "validating"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


@dataclass(frozen=True)
class SessionChange:
    """Represents a session change delivered to listeners."""

    type: SessionChangeType
    old_user: Optional[User]
    new_user: Optional[User]
    reason: str
    ts_utc: datetime


SessionListener = Callable[[SessionChange], None]


class SessionStore:
    """Owns the credential, the resolved user and the derived auth flags."""

    def __init__(self, api: ApiClient, token_store: TokenStore):
        self._api = api
        self._token_store = token_store
        self._token: Optional[str] = token_store.get()
        self._confirmed_token: Optional[str] = None
        self._listeners: list[SessionListener] = []
        self.user: Optional[User] = None
        self.state = SessionState.UNRESOLVED
        self.error: Optional[str] = None
        self.loading = False

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return (
            self.user is not None
            and self._token is not None
            and self._confirmed_token == self._token
        )

    @property
    def is_admin(self) -> bool:
        return self.is_authenticated and self.user.is_admin

    @property
    def user_id(self) -> Optional[str]:
        return self.user.id if self.is_authenticated else None

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def clear_error(self) -> None:
        self.error = None

    async def login(self, credentials: LoginCredentials) -> bool:
        """Exchange credentials for a token. Failures keep the session anonymous."""
        return await self._authenticate(
            "/users/login", credentials.model_dump(), LOGIN_FAILED_MESSAGE, reason="login"
        )

    async def register(self, profile: RegisterData) -> bool:
        """Create an account and sign into it."""
        return await self._authenticate(
            "/users", profile.model_dump(exclude_none=True), REGISTER_FAILED_MESSAGE, reason="register"
        )

    async def restore_session(self) -> bool:
        """
        Validate the persisted token against the server.
        Runs at startup and whenever the stored credential changes.
        """
        token = self._token
        if not token:
            self.state = SessionState.ANONYMOUS
            logger.info("session_restore_skipped", reason="no_token")
            return False

        self.state = SessionState.VALIDATING
        self.loading = True
        try:
            data = await self._api.get("/users/me")
            user = decode(User, data)
        except ApiError as e:
            if self._token != token:
                # Credential replaced while validating; the newer one wins
                return False
            logger.warning("session_restore_failed", error=str(e))
            old_user = self.user
            self._drop_credential()
            self.error = SESSION_EXPIRED_MESSAGE
            if old_user is not None:
                self._notify("logout", old_user, None, reason="expired")
            return False
        finally:
            self.loading = False

        if self._token != token:
            logger.info("session_restore_discarded", reason="token_changed")
            return False

        old_user = self.user
        self.user = user
        self._confirmed_token = token
        self.state = SessionState.AUTHENTICATED
        logger.info("session_restored", user_id=user.id)
        self._notify("login", old_user, user, reason="restored")
        return True

    async def sync_credential(self) -> bool:
        """
        Adopt a credential changed outside this store (another process
        sharing the token file). Returns True if the session is valid.
        """
        stored = self._token_store.get()
        if stored == self._token:
            return self.is_authenticated
        if stored is None:
            self.logout(reason="credential_removed")
            return False

        logger.info("session_credential_changed")
        self._token = stored
        self._confirmed_token = None
        return await self.restore_session()

    async def update_profile(self, changes: UpdateProfileData) -> bool:
        if not self.is_authenticated:
            self.error = AUTH_REQUIRED_MESSAGE
            return False

        self.loading = True
        self.error = None
        try:
            data = await self._api.put("/users/me", json=changes.model_dump(exclude_none=True))
            user = decode(User, data)
        except ApiError as e:
            self.error = e.describe(PROFILE_UPDATE_FAILED_MESSAGE)
            logger.warning("profile_update_failed", error=str(e))
            return False
        finally:
            self.loading = False

        old_user = self.user
        self.user = user
        logger.info("profile_updated", user_id=user.id)
        self._notify("user_changed", old_user, user, reason="profile_update")
        return True

    def logout(self, reason: str = "logout") -> None:
        """Local-only: forget the credential and identity, no network call."""
        old_user = self.user
        was_authenticated = self.is_authenticated
        self._drop_credential()
        logger.info("session_logged_out", reason=reason)
        if was_authenticated or old_user is not None:
            self._notify("logout", old_user, None, reason=reason)

    def expire(self, rejected_token: str) -> None:
        """
        Called by the transport client when the server answers 401.
        Acts once per credential: a late 401 for a token that was already
        dropped or replaced leaves the current session alone.
        """
        if rejected_token != self._token:
            logger.debug("session_expiry_ignored", reason="stale_token")
            return
        record_session_invalidation()
        logger.warning("session_expired", user_id=self.user.id if self.user else None)
        self.logout(reason="expired")
        self.error = SESSION_EXPIRED_MESSAGE

    async def _authenticate(self, path: str, body: dict, fallback: str, reason: str) -> bool:
        self.loading = True
        self.error = None
        try:
            payload = await self._api.request("POST", path, json=body, session_bound=False)
            auth = decode(AuthResponse, payload)
        except ApiError as e:
            self.error = e.describe(fallback)
            if not self.is_authenticated:
                self.state = SessionState.ANONYMOUS
            logger.warning(f"{reason}_failed", error=str(e))
            return False
        finally:
            self.loading = False

        old_user = self.user
        self._token_store.set(auth.token)
        self._token = auth.token
        self._confirmed_token = auth.token
        self.user = auth.user
        self.state = SessionState.AUTHENTICATED
        logger.info(f"{reason}_succeeded", user_id=auth.user.id)
        self._notify("login", old_user, auth.user, reason=reason)
        return True

    def _drop_credential(self) -> None:
        self._token_store.clear()
        self._token = None
        self._confirmed_token = None
        self.user = None
        self.state = SessionState.ANONYMOUS

    def _notify(
        self,
        change_type: SessionChangeType,
        old_user: Optional[User],
        new_user: Optional[User],
        reason: str,
    ) -> None:
        change = SessionChange(
            type=change_type,
            old_user=old_user,
            new_user=new_user,
            reason=reason,
            ts_utc=datetime.now(timezone.utc),
        )
        for listener in list(self._listeners):
            listener(change)
