import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from outstocked.schemas.auth import Session

logger = logging.getLogger(__name__)


class MemorySessionStore:
    """Keeps the session for the lifetime of the process only."""

    def __init__(self, session: Optional[Session] = None):
        self._session = session

    def load(self) -> Optional[Session]:
        return self._session

    def save(self, session: Session) -> None:
        self._session = session

    def clear(self) -> None:
        self._session = None


class FileSessionStore:
    """Persists the session as JSON so it survives restarts."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> Optional[Session]:
        if not self.path.exists():
            return None
        try:
            return Session.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValidationError, json.JSONDecodeError) as e:
            logger.warning("Discarding unreadable session file %s: %s", self.path, e)
            return None

    def save(self, session: Session) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(session.model_dump_json(), encoding="utf-8")

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
