"""Local persistence of the in-flight session for resumption."""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from interview_session.models import CandidateIdentity, SessionState

logger = logging.getLogger(__name__)

CANDIDATE_FILE = "current_candidate.json"
SESSION_FILE = "session_state.json"

M = TypeVar("M", bound=BaseModel)


class LocalSessionStore:
    """Two keyed JSON records: the current candidate identity and the session state."""

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def save_candidate(self, candidate: CandidateIdentity) -> str:
        return self._write(CANDIDATE_FILE, candidate)

    def save_state(self, state: SessionState) -> str:
        return self._write(SESSION_FILE, state)

    def load_candidate(self) -> Optional[CandidateIdentity]:
        return self._read(CANDIDATE_FILE, CandidateIdentity)

    def load_state(self) -> Optional[SessionState]:
        return self._read(SESSION_FILE, SessionState)

    def clear(self) -> None:
        """Remove both records together."""
        for name in (SESSION_FILE, CANDIDATE_FILE):
            path = self._root / name
            try:
                path.unlink()
            except FileNotFoundError:
                continue

    def _write(self, name: str, model: BaseModel) -> str:
        """Persist atomically and return the file path."""
        os.makedirs(self._root, exist_ok=True)
        path = self._root / name
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as handle:
            handle.write(model.model_dump_json())
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
        return str(path)

    def _read(self, name: str, schema: Type[M]) -> Optional[M]:
        path = self._root / name
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
            return schema.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            logger.error("Error loading %s: %s", path, exc)
            return None


def store_for_client(base_dir: str, client_id: str) -> LocalSessionStore:
    """Return the local store for one client under ``base_dir``."""

    safe = "".join(ch for ch in client_id if ch.isalnum() or ch in "-_")
    if not safe:
        raise ValueError("client_id must contain letters, digits, '-' or '_'")
    return LocalSessionStore(Path(base_dir) / safe)


__all__ = ["LocalSessionStore", "store_for_client"]
