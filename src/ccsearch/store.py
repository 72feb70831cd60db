"""Persist tag and title edits back into session files, and delete sessions.

Edits are stored as metadata records at the top of the session's own .jsonl
file, so the file stays readable by the Claude CLI:

    {"type": "title_updated", "title": "..."}
    {"type": "tags_updated", "tags": ["..."]}

Earlier metadata records of the same type are dropped on every rewrite.
"""

import json
import logging
import os
import tempfile
from pathlib import Path

from .core import Session
from .loader import SessionLoader
from .records import TAGS_UPDATED, TITLE_UPDATED, normalize_tags

logger = logging.getLogger(__name__)


class SessionNotFoundError(LookupError):
    pass


class SessionStore:
    """Mutations on sessions found through a SessionLoader."""

    def __init__(self, loader: SessionLoader):
        self.loader = loader

    def get(self, session_id: str) -> Session:
        session = self.loader.find_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def set_tags(self, session_id: str, tags: list) -> list[str]:
        session = self.get(session_id)
        clean = normalize_tags(tags)
        _replace_metadata(Path(session.filepath), {"type": TAGS_UPDATED, "tags": clean})
        logger.info("Updated tags for %s: %s", session_id, clean)
        return clean

    def set_title(self, session_id: str, title: str) -> str:
        session = self.get(session_id)
        title = title.strip()
        _replace_metadata(Path(session.filepath), {"type": TITLE_UPDATED, "title": title})
        logger.info("Updated title for %s", session_id)
        return title

    def delete(self, session_id: str) -> None:
        session = self.get(session_id)
        Path(session.filepath).unlink()
        logger.info("Deleted session %s (%s)", session_id, session.filepath)


def _replace_metadata(path: Path, record: dict) -> None:
    """Rewrite ``path`` with ``record`` first and older records of its type removed.

    Lines that cannot be decoded are kept byte for byte.
    """
    record_type = record["type"]
    kept: list[bytes] = []

    with path.open("rb") as f:
        for raw in f:
            stripped = raw.strip()
            if not stripped:
                continue
            try:
                entry = json.loads(stripped.decode("utf-8"))
            except (ValueError, RecursionError):
                kept.append(stripped)
                continue
            if isinstance(entry, dict) and entry.get("type") == record_type:
                continue
            kept.append(stripped)

    lines = [json.dumps(record, ensure_ascii=False).encode("utf-8")] + kept

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as tmp:
            tmp.write(b"\n".join(lines) + b"\n")
        os.replace(tmp_name, path)
    except OSError:
        Path(tmp_name).unlink(missing_ok=True)
        raise
