"""Load Claude CLI session files into Sessions.

Layout of the projects directory:

    <root>/
        -Users-alice-github-com-org-repo/     one directory per project
            0b6c...e1.jsonl                    one file per session
            ...

Every line of a session file is decoded on its own; bad lines, unknown
record shapes and unreadable files are skipped so one broken file never
hides the rest of the corpus.
"""

import json
import logging
import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from .config import get_claude_projects_path
from .core import Message, Project, Session
from .paths import decode_project_path, is_plausible_path, project_name
from .records import (
    MessageRecord,
    SessionStartRecord,
    TagsRecord,
    TitleRecord,
    UnrecognizedRecord,
    classify_record,
)

logger = logging.getLogger(__name__)

SESSION_SUFFIX = ".jsonl"


class SessionLoader:
    """Reads every session under a projects root."""

    def __init__(self, base_path: Optional[Path] = None):
        self._base_path = Path(base_path) if base_path is not None else None

    def get_base_path(self) -> Path:
        if self._base_path is not None:
            return self._base_path
        return get_claude_projects_path()

    def is_available(self) -> bool:
        return self.get_base_path().is_dir()

    def load_all(self) -> list[Session]:
        """Load all non-empty sessions, in project then file name order."""
        base = self.get_base_path()
        if not base.is_dir():
            logger.warning("Claude projects directory not found: %s", base)
            return []

        sessions = []
        seen_ids: set[str] = set()

        for project_dir in self._project_dirs(base):
            project_path = decode_project_path(project_dir.name)
            try:
                session_files = self._session_files(project_dir)
            except OSError as e:
                logger.warning("Failed to read project directory %s: %s", project_dir, e)
                continue

            for session_file in session_files:
                try:
                    session = self.load_session_file(session_file, project=project_path)
                except OSError as e:
                    logger.warning("Failed to read session file %s: %s", session_file, e)
                    continue

                if session is None:
                    continue

                if session.id in seen_ids:
                    fallback = session_file.stem
                    if fallback in seen_ids:
                        fallback = f"{project_dir.name}:{session_file.stem}"
                    logger.info("Duplicate session id %s in %s, using %s", session.id, session_file, fallback)
                    session.id = fallback

                seen_ids.add(session.id)
                sessions.append(session)

        logger.info("Loaded %d sessions from %s", len(sessions), base)
        return sessions

    def list_projects(self) -> list[Project]:
        """Return projects that hold at least one session file."""
        base = self.get_base_path()
        if not base.is_dir():
            return []

        projects = []
        for project_dir in self._project_dirs(base):
            try:
                count = len(self._session_files(project_dir))
            except OSError as e:
                logger.warning("Failed to read project directory %s: %s", project_dir, e)
                continue

            if count == 0:
                continue

            path = decode_project_path(project_dir.name)
            projects.append(Project(
                name=project_name(path),
                path=path,
                session_count=count,
                encoded_name=project_dir.name,
                path_suspect=not is_plausible_path(path),
            ))

        projects.sort(key=lambda p: p.session_count, reverse=True)
        return projects

    def find_session(self, session_id: str) -> Optional[Session]:
        return next((s for s in self.load_all() if s.id == session_id), None)

    def load_session_file(self, path: Path, project: str = "") -> Optional[Session]:
        """Parse one session file. Returns None when it holds no messages.

        Lines that are not UTF-8 or not JSON are skipped. Raises OSError when
        the file cannot be read.
        """
        stat = path.stat()
        born = _file_birthtime(stat)
        modified = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)

        messages: list[Message] = []
        session_id = None
        started_at = None
        title = None
        tags: list[str] = []

        with path.open("rb") as f:
            for line_num, raw in enumerate(f, 1):
                entry = _decode_line(raw, path, line_num)
                if entry is None:
                    continue

                try:
                    record = classify_record(entry)
                except RecursionError:
                    logger.debug("Record nested too deeply at %s:%d", path, line_num)
                    continue

                if isinstance(record, MessageRecord):
                    messages.append(record.message)
                elif isinstance(record, SessionStartRecord):
                    if session_id is None:
                        session_id = record.session_id
                        started_at = record.timestamp
                elif isinstance(record, TitleRecord):
                    if title is None:
                        title = record.title
                elif isinstance(record, TagsRecord):
                    tags = record.tags
                elif isinstance(record, UnrecognizedRecord):
                    logger.debug("Skipping unrecognized record at %s:%d", path, line_num)

        if not messages:
            return None

        created_at = messages[0].timestamp or started_at or born
        updated_at = messages[-1].timestamp or modified
        if created_at > updated_at:
            created_at, updated_at = updated_at, created_at

        if title is None:
            first_user = next((m for m in messages if m.role == "user" and m.content.strip()), None)
            if first_user is not None:
                title = generate_title(first_user.content) or None

        return Session(
            id=session_id or path.stem,
            title=title,
            created_at=created_at,
            updated_at=updated_at,
            messages=messages,
            filepath=str(path.resolve()),
            project=project,
            tags=tags,
        )

    # ── Private helpers ──────────────────────────────────────────────

    def _project_dirs(self, base: Path) -> list[Path]:
        try:
            entries = sorted(base.iterdir())
        except OSError as e:
            logger.warning("Failed to list %s: %s", base, e)
            return []
        return [d for d in entries if d.is_dir() and not d.name.startswith(".")]

    def _session_files(self, project_dir: Path) -> list[Path]:
        return sorted(
            f for f in project_dir.iterdir()
            if f.name.endswith(SESSION_SUFFIX) and f.is_file()
        )


def generate_title(content: str) -> str:
    """Derive a title from the first user message."""
    clean = re.sub(r"\s+", " ", content).strip()
    if not clean:
        return ""

    sentence_end = re.search(r"[.!?]", clean)
    if sentence_end and 0 < sentence_end.start() < 150:
        return clean[:sentence_end.start() + 1].strip()

    if len(clean) > 80:
        break_point = clean.rfind(" ", 0, 81)
        if break_point > 40:
            return clean[:break_point] + "..."
        return clean[:80] + "..."

    return clean


def _file_birthtime(stat: os.stat_result) -> datetime:
    """Creation time where the platform records it, else the oldest of ctime/mtime."""
    born = getattr(stat, "st_birthtime", None)
    if born is None:
        born = min(stat.st_ctime, stat.st_mtime)
    return datetime.fromtimestamp(born, tz=timezone.utc)


def _decode_line(raw: bytes, path: Path, line_num: int) -> Any:
    """Decode one JSONL line, or None when it is blank or unparseable."""
    try:
        line = raw.decode("utf-8").strip()
    except UnicodeDecodeError as e:
        logger.debug("Bad UTF-8 at %s:%d: %s", path, line_num, e)
        return None
    if not line:
        return None
    try:
        return json.loads(line)
    except (ValueError, RecursionError) as e:
        # ValueError covers JSONDecodeError and over-long integer literals
        logger.debug("Bad JSON at %s:%d: %s", path, line_num, e)
        return None
