"""
In-memory token store - nothing survives the process.
"""

from typing import Optional

from timeleft.services.interfaces.token_store import TokenStore


class MemoryTokenStore(TokenStore):
    """
    Keeps the token in an attribute.

    Use when:
    - Running tests
    - Short-lived scripts that log in every time
    """

    def __init__(self, token: Optional[str] = None):
        self._token = token

    def get(self) -> Optional[str]:
        return self._token

    def set(self, token: str) -> None:
        self._token = token

    def clear(self) -> None:
        self._token = None
