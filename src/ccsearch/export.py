"""Export sessions to JSON, CSV and Markdown, and validate JSON imports."""

import csv
import io
import json
import re
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from .core import Message, Session
from .records import normalize_record, normalize_tags, parse_timestamp

EXPORT_VERSION = "1.1"
_HOSTED_REPO = re.compile(r"github\.com/[\w-]+/[\w-]+")


class ImportValidationError(ValueError):
    """An import document was rejected as a whole."""

    def __init__(self, error: str, details: str):
        super().__init__(f"{error}: {details}")
        self.error = error
        self.details = details


@dataclass
class ImportResult:
    sessions: list[Session]
    total_count: int
    warnings: list[str] = field(default_factory=list)
    metadata: dict = field(default_factory=dict)


# ── Serialization ────────────────────────────────────────────────


def message_to_dict(msg: Message) -> dict:
    return {
        "role": msg.role,
        "content": msg.content,
        "timestamp": msg.timestamp.isoformat() if msg.timestamp else None,
    }


def session_to_dict(session: Session, include_messages: bool = True, include_filepath: bool = True) -> dict:
    """Convert a Session to a JSON-serializable dict."""
    data = {
        "id": session.id,
        "title": session.title,
        "created_at": session.created_at.isoformat(),
        "updated_at": session.updated_at.isoformat(),
        "project": session.project,
        "tags": list(session.tags),
        "message_count": session.message_count,
    }
    if include_filepath:
        data["filepath"] = session.filepath
    if include_messages:
        data["messages"] = [message_to_dict(m) for m in session.messages]
    return data


def normalize_export_project(project: str) -> str:
    """Drop the user-specific part of a project path.

    Hosted repositories keep ``github.com/<org>/<repo>``; anything else keeps
    its last three segments.
    """
    if not project:
        return project
    match = _HOSTED_REPO.search(project)
    if match:
        return match.group(0)
    return "/".join(project.split("/")[-3:])


def build_export_document(sessions: list[Session]) -> dict:
    exported = []
    for session in sessions:
        data = session_to_dict(session, include_filepath=False)
        data["project"] = normalize_export_project(session.project)
        exported.append(data)

    return {
        "version": EXPORT_VERSION,
        "exportDate": datetime.now(timezone.utc).isoformat(),
        "sessionCount": len(exported),
        "exportedFrom": sys.platform,
        "sessions": exported,
    }


def sessions_to_json(sessions: list[Session]) -> str:
    return json.dumps(build_export_document(sessions), indent=2, ensure_ascii=False)


def sessions_to_csv(sessions: list[Session]) -> str:
    """One row per session with its first message as a teaser."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow([
        "Session ID", "Title", "Project", "Created", "Updated",
        "Message Count", "Tags", "First Message",
    ])
    for session in sessions:
        first = session.messages[0].content if session.messages else ""
        writer.writerow([
            session.id,
            session.title or "Untitled",
            normalize_export_project(session.project),
            session.created_at.isoformat(),
            session.updated_at.isoformat(),
            session.message_count,
            ", ".join(session.tags),
            first[:200],
        ])
    return buf.getvalue()


def sessions_to_markdown(sessions: list[Session]) -> str:
    lines = [
        "# Claude Sessions Export",
        "",
        f"Export Date: {datetime.now(timezone.utc).isoformat()}",
        "",
        f"Total Sessions: {len(sessions)}",
        "",
    ]

    for session in sessions:
        lines.append(f"## {session.title or 'Untitled Session'}")
        lines.append("")
        lines.append(f"- **ID**: {session.id}")
        lines.append(f"- **Project**: {normalize_export_project(session.project) or 'N/A'}")
        lines.append(f"- **Created**: {session.created_at.strftime('%Y-%m-%d %H:%M')}")
        lines.append(f"- **Updated**: {session.updated_at.strftime('%Y-%m-%d %H:%M')}")
        lines.append(f"- **Messages**: {session.message_count}")
        if session.tags:
            lines.append(f"- **Tags**: {', '.join(session.tags)}")
        lines.extend(["", "### Messages", ""])

        for index, msg in enumerate(session.messages, 1):
            ts = ""
            if msg.timestamp:
                ts = f" ({msg.timestamp.strftime('%Y-%m-%d %H:%M')})"
            lines.append(f"#### {index}. {msg.role.capitalize()}{ts}")
            lines.append("")
            lines.append(msg.content)
            lines.append("")

        lines.extend(["---", ""])

    return "\n".join(lines)


# ── Import ───────────────────────────────────────────────────────


def parse_import(data: Any) -> ImportResult:
    """Validate an export document and rebuild its sessions.

    Sessions missing an id or a messages list, or whose messages all fail to
    normalize, are skipped with a warning. Raises ImportValidationError when
    nothing usable remains.
    """
    if not data:
        raise ImportValidationError(
            "No import data provided",
            "The uploaded file appears to be empty or invalid",
        )
    if not isinstance(data, dict) or not isinstance(data.get("sessions"), list):
        raise ImportValidationError(
            "Invalid import data format",
            "The file does not contain a valid sessions array",
        )
    if not data["sessions"]:
        raise ImportValidationError("No sessions to import", "The export file contains no sessions")

    warnings = []
    sessions = []

    for index, raw in enumerate(data["sessions"]):
        session = _session_from_dict(raw)
        if session is None:
            warnings.append(f"Session at index {index} is missing required fields (id or messages)")
            continue
        sessions.append(session)

    if not sessions:
        raise ImportValidationError(
            "No valid sessions found",
            "All sessions in the file are missing required fields",
        )

    exported_from = data.get("exportedFrom")
    if exported_from and exported_from != sys.platform:
        warnings.append(
            f"This export was created on {exported_from} and you are on {sys.platform}. "
            "Project paths have been normalized for compatibility."
        )

    return ImportResult(
        sessions=sessions,
        total_count=len(data["sessions"]),
        warnings=warnings,
        metadata={
            "exportDate": data.get("exportDate"),
            "version": data.get("version"),
            "exportedFrom": exported_from,
        },
    )


def _session_from_dict(raw: Any) -> Optional[Session]:
    if not isinstance(raw, dict):
        return None
    session_id = raw.get("id")
    raw_messages = raw.get("messages")
    if not session_id or not isinstance(raw_messages, list):
        return None

    created_at = parse_timestamp(raw.get("created_at"))
    updated_at = parse_timestamp(raw.get("updated_at"))

    messages = [
        m for m in (normalize_record(item, created_at) for item in raw_messages)
        if m is not None
    ]
    if not messages:
        return None

    created_at = created_at or messages[0].timestamp or datetime.now(timezone.utc)
    updated_at = updated_at or messages[-1].timestamp or created_at
    if created_at > updated_at:
        created_at, updated_at = updated_at, created_at

    tags = raw.get("tags")
    return Session(
        id=str(session_id),
        title=raw.get("title") if isinstance(raw.get("title"), str) else None,
        created_at=created_at,
        updated_at=updated_at,
        messages=messages,
        project=raw.get("project") or "",
        tags=normalize_tags(tags) if isinstance(tags, list) else [],
    )
