"""
Token store factory.
Configures where the session credential is persisted.
"""

from timeleft.core.config import Settings
from timeleft.infrastructure.file_token_store import FileTokenStore
from timeleft.services.interfaces.token_store import TokenStore
from timeleft.services.interfaces.memory_token_store import MemoryTokenStore


def get_token_store(settings: Settings) -> TokenStore:
    """
    Get configured token store.

    Store selection via the TOKEN_STORE setting:
    - memory (default): credential is lost when the process exits
    - file: credential is kept in TOKEN_FILE and shared between processes
    """
    strategy = settings.TOKEN_STORE.lower()

    if strategy == 'file':
        return FileTokenStore(settings.TOKEN_FILE)
    elif strategy == 'memory':
        return MemoryTokenStore()
    raise ValueError(f"Unknown TOKEN_STORE {settings.TOKEN_STORE!r}, expected 'memory' or 'file'")
