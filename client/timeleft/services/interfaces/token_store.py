"""
Credential storage interface.
Lets the session outlive the process when a persistent store is configured.
"""

from abc import ABC, abstractmethod
from typing import Optional


class TokenStore(ABC):
    """
    Interface for persisting the opaque session credential.

    Only the token is ever stored; the identity it belongs to is always
    re-derived from the server.

    Implementations:
    - MemoryTokenStore: lives and dies with the process
    - FileTokenStore: survives restarts, shared by every process using the file
    """

    @abstractmethod
    def get(self) -> Optional[str]:
        """Return the stored token, or None."""
        pass

    @abstractmethod
    def set(self, token: str) -> None:
        """Persist a new token, replacing any previous one."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Forget the stored token. Clearing an empty store is a no-op."""
        pass
