"""
File-backed token store.
The file plays the role browser local storage plays for a web client:
every process pointed at it sees the same credential.
"""

from pathlib import Path
from typing import Optional

from timeleft.services.interfaces.token_store import TokenStore
from timeleft.core.logging import get_logger

logger = get_logger(__name__)


class FileTokenStore(TokenStore):
    """Stores the token as the only content of a text file."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def get(self) -> Optional[str]:
        # Read on every call so changes made by another process are seen
        try:
            token = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        return token or None

    def set(self, token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(token, encoding="utf-8")
        tmp_path.chmod(0o600)
        tmp_path.replace(self.path)
        logger.debug("token_persisted", path=str(self.path))

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
        logger.debug("token_cleared", path=str(self.path))
