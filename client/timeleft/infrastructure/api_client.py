"""
Transport client for the remote events API.

Wraps an httpx.AsyncClient and is the only place that talks to the network:
- Attaches the stored credential to every call (legacy header + bearer)
- Tags each call with a request id and logs method, path, status and timing
- Classifies every failure into an ApiError (timeout, no response,
  unauthorized, forbidden, field validation, other server errors)
- Reports 401s on session-bound calls to the registered handlers, which is
  how the session store learns its credential was rejected
"""

import asyncio
import time
import uuid
from typing import Any, Callable, Optional, TypeVar

import httpx
import structlog
from pydantic import BaseModel, TypeAdapter, ValidationError

from timeleft.core.config import Settings
from timeleft.core.errors import (
    ApiError,
    ErrorKind,
    AUTH_REQUIRED_MESSAGE,
    INVALID_RESPONSE_MESSAGE,
    NETWORK_MESSAGE,
    SESSION_EXPIRED_MESSAGE,
    TIMEOUT_MESSAGE,
)
from timeleft.core.logging import get_logger
from timeleft.core.metrics import record_api_request
from timeleft.services.interfaces.token_store import TokenStore

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
UnauthorizedHandler = Callable[[str], None]


def decode(model: type[ModelT], data: Any) -> ModelT:
    """Validate one record from a response envelope."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.error("response_decode_failed", model=model.__name__, errors=e.error_count())
        raise ApiError(ErrorKind.SERVER, INVALID_RESPONSE_MESSAGE, payload=data) from e


def decode_list(model: type[ModelT], data: Any) -> list[ModelT]:
    """Validate a list of records from a response envelope."""
    if not isinstance(data, list):
        raise ApiError(ErrorKind.SERVER, INVALID_RESPONSE_MESSAGE, payload=data)
    try:
        return TypeAdapter(list[model]).validate_python(data)
    except ValidationError as e:
        logger.error("response_decode_failed", model=model.__name__, errors=e.error_count())
        raise ApiError(ErrorKind.SERVER, INVALID_RESPONSE_MESSAGE, payload=data) from e


def _error_detail(payload: Any) -> tuple[ErrorKind, Optional[str]]:
    """Pick the most specific message an error body carries."""
    if not isinstance(payload, dict):
        return ErrorKind.SERVER, None

    errors = payload.get("errors")
    if isinstance(errors, list):
        messages = [e["msg"] for e in errors if isinstance(e, dict) and e.get("msg")]
        if messages:
            return ErrorKind.SERVER_VALIDATION, ", ".join(messages)

    message = payload.get("message")
    if isinstance(message, str) and message:
        return ErrorKind.SERVER, message
    return ErrorKind.SERVER, None


class ApiClient:
    """Async client for the events API. One instance per composition root."""

    def __init__(
        self,
        settings: Settings,
        token_store: TokenStore,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._token_store = token_store
        # Deadline for the whole round-trip; httpx.Timeout only bounds each phase
        self._timeout = settings.REQUEST_TIMEOUT
        self._unauthorized_handlers: list[UnauthorizedHandler] = []
        self._client = httpx.AsyncClient(
            base_url=settings.API_URL,
            timeout=httpx.Timeout(settings.REQUEST_TIMEOUT),
            transport=transport,
            headers={"Accept": "application/json"},
        )

    def add_unauthorized_handler(self, handler: UnauthorizedHandler) -> None:
        """Register a callback receiving the credential the server rejected."""
        self._unauthorized_handlers.append(handler)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        files: Optional[dict] = None,
        session_bound: bool = True,
    ) -> Any:
        """
        Perform one round-trip and return the decoded JSON body.

        `session_bound=False` marks the login/registration calls: a 401 there
        means bad credentials, not an expired session.
        """
        token = self._token_store.get()
        request_id = str(uuid.uuid4())[:8]
        headers = {"X-Request-ID": request_id}
        if token:
            headers["x-auth-token"] = token
            headers["Authorization"] = f"Bearer {token}"

        start_time = time.perf_counter()
        with structlog.contextvars.bound_contextvars(
            request_id=request_id, method=method, path=path
        ):
            try:
                response = await asyncio.wait_for(
                    self._client.request(method, path, json=json, files=files, headers=headers),
                    self._timeout,
                )
            except (httpx.TimeoutException, asyncio.TimeoutError) as e:
                duration = time.perf_counter() - start_time
                record_api_request(method, "timeout", duration)
                logger.warning("request_timed_out", duration_ms=round(duration * 1000, 2))
                raise ApiError(ErrorKind.TIMEOUT, TIMEOUT_MESSAGE) from e
            except httpx.TransportError as e:
                duration = time.perf_counter() - start_time
                record_api_request(method, "network", duration)
                logger.error("request_failed", error=str(e), duration_ms=round(duration * 1000, 2))
                raise ApiError(ErrorKind.NETWORK, NETWORK_MESSAGE) from e

            duration = time.perf_counter() - start_time
            duration_ms = round(duration * 1000, 2)
            payload = self._json(response)

            if response.is_success:
                record_api_request(method, "success", duration)
                logger.info("request_completed", status_code=response.status_code, duration_ms=duration_ms)
                return payload

            if response.status_code == 401:
                record_api_request(method, "unauthorized", duration)
                logger.warning("request_unauthorized", session_bound=session_bound, duration_ms=duration_ms)
                raise self._unauthorized(payload, token, session_bound)

            record_api_request(method, "error", duration)
            kind, message = _error_detail(payload)
            if response.status_code == 403:
                kind = ErrorKind.AUTHORIZATION
            logger.warning(
                "request_rejected",
                status_code=response.status_code,
                kind=kind.value,
                detail=message,
                duration_ms=duration_ms,
            )
            raise ApiError(kind, message, status_code=response.status_code, payload=payload)

    async def request_data(self, method: str, path: str, **kwargs) -> Any:
        """Like request(), but unwrap the `{"data": ...}` envelope."""
        payload = await self.request(method, path, **kwargs)
        if not isinstance(payload, dict) or "data" not in payload:
            logger.error("response_envelope_missing", method=method, path=path)
            raise ApiError(ErrorKind.SERVER, INVALID_RESPONSE_MESSAGE, payload=payload)
        return payload["data"]

    async def get(self, path: str, **kwargs) -> Any:
        return await self.request_data("GET", path, **kwargs)

    async def post(self, path: str, **kwargs) -> Any:
        return await self.request_data("POST", path, **kwargs)

    async def put(self, path: str, **kwargs) -> Any:
        return await self.request_data("PUT", path, **kwargs)

    async def delete(self, path: str, **kwargs) -> Any:
        # Deletes answer with a bare message, not an envelope
        return await self.request("DELETE", path, **kwargs)

    def _unauthorized(self, payload: Any, token: Optional[str], session_bound: bool) -> ApiError:
        _, message = _error_detail(payload)
        if not session_bound:
            return ApiError(ErrorKind.AUTHENTICATION, message, status_code=401, payload=payload)
        if not token:
            return ApiError(ErrorKind.AUTHENTICATION, AUTH_REQUIRED_MESSAGE, status_code=401, payload=payload)

        for handler in self._unauthorized_handlers:
            handler(token)
        return ApiError(ErrorKind.AUTHENTICATION, SESSION_EXPIRED_MESSAGE, status_code=401, payload=payload)

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None
