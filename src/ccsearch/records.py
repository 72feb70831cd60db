"""Normalize raw JSONL records into Messages.

Session files written by different Claude CLI versions (and by tools that
imitate them) use several record shapes:

- ``{"type": "user", "message": {"role": "user", "content": [...]}}``:
  current format. Content is a string or a list of blocks (text, tool_result).
- ``{"type": "human" | "ai" | "completion", "text": ...}``: older formats.
- ``{"role": "user", "content": "..."}``: plain chat-completion style.
- ``{"type": "summary", "summary": "..."}``: conversation summaries.
- ``{"query": ...}`` / ``{"response": ...}``: single-field legacy turns.
- ``{"type": "session_started", "session_id": ...}``,
  ``{"type": "title_updated", "title": ...}``,
  ``{"type": "tags_updated", "tags": [...]}``: session metadata, no message.

``classify_record`` maps one decoded line onto a small set of record
dataclasses; ``normalize_record`` runs the role/content extractor chains.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union

from .core import ROLES, Message

logger = logging.getLogger(__name__)

TYPE_ROLES = {
    "human": "user",
    "user": "user",
    "assistant": "assistant",
    "completion": "assistant",
    "ai": "assistant",
    "summary": "assistant",
    "system": "system",
}

TIMESTAMP_FIELDS = ("timestamp", "ts", "created_at")
ALTERNATE_TEXT_FIELDS = ("body", "message_text", "msg", "data")

SESSION_STARTED = "session_started"
TITLE_UPDATED = "title_updated"
TAGS_UPDATED = "tags_updated"


# ── Record variants ──────────────────────────────────────────────


@dataclass
class MessageRecord:
    message: Message


@dataclass
class TitleRecord:
    title: str


@dataclass
class SessionStartRecord:
    session_id: str
    timestamp: Optional[datetime] = None


@dataclass
class TagsRecord:
    tags: list[str]


@dataclass
class UnrecognizedRecord:
    raw: Any


Record = Union[MessageRecord, TitleRecord, SessionStartRecord, TagsRecord, UnrecognizedRecord]


def classify_record(record: Any, fallback_timestamp: Optional[datetime] = None) -> Record:
    """Decide which known shape a decoded JSONL value has."""
    if not isinstance(record, dict):
        return UnrecognizedRecord(raw=record)

    record_type = record.get("type")

    if record_type == SESSION_STARTED:
        session_id = record.get("session_id") or record.get("sessionId")
        if isinstance(session_id, str) and session_id:
            return SessionStartRecord(session_id=session_id, timestamp=extract_timestamp(record))
        return UnrecognizedRecord(raw=record)

    if record_type == TITLE_UPDATED:
        title = record.get("title")
        if isinstance(title, str) and title.strip():
            return TitleRecord(title=title.strip())
        return UnrecognizedRecord(raw=record)

    if record_type == TAGS_UPDATED:
        tags = record.get("tags")
        if isinstance(tags, list):
            return TagsRecord(tags=normalize_tags(tags))
        return UnrecognizedRecord(raw=record)

    message = normalize_record(record, fallback_timestamp)
    if message is None:
        return UnrecognizedRecord(raw=record)
    return MessageRecord(message=message)


def normalize_tags(tags: list) -> list[str]:
    """Strip, drop empties and de-duplicate while keeping first-seen order."""
    seen: dict[str, None] = {}
    for tag in tags:
        if isinstance(tag, str) and tag.strip():
            seen.setdefault(tag.strip(), None)
    return list(seen)


# ── Role extractors ──────────────────────────────────────────────


def role_from_type(record: dict) -> Optional[str]:
    record_type = record.get("type")
    if isinstance(record_type, str):
        return TYPE_ROLES.get(record_type)
    return None


def role_from_field(record: dict) -> Optional[str]:
    return _valid_role(record.get("role"))


def role_from_nested_message(record: dict) -> Optional[str]:
    nested = record.get("message")
    if isinstance(nested, dict):
        return _valid_role(nested.get("role"))
    return None


ROLE_EXTRACTORS: tuple[Callable[[dict], Optional[str]], ...] = (
    role_from_type,
    role_from_field,
    role_from_nested_message,
)


def resolve_role(record: dict) -> Optional[str]:
    for extractor in ROLE_EXTRACTORS:
        role = extractor(record)
        if role:
            return role
    return None


def _valid_role(value: Any) -> Optional[str]:
    if isinstance(value, str):
        value = value.lower()
        if value == "human":
            return "user"
        if value in ROLES:
            return value
    return None


# ── Content extractors ───────────────────────────────────────────
#
# Each returns a ContentMatch or None. default_role only applies when no
# role extractor matched; forced_role always wins.


@dataclass
class ContentMatch:
    content: str
    forced_role: Optional[str] = None
    default_role: Optional[str] = None


def content_from_nested_message(record: dict) -> Optional[ContentMatch]:
    nested = record.get("message")
    if not isinstance(nested, dict):
        return None
    content = nested.get("content")
    if isinstance(content, dict):
        text = content.get("text")
        return ContentMatch(text) if isinstance(text, str) and text else None
    text = flatten_content(content)
    return ContentMatch(text) if text else None


def content_from_content_field(record: dict) -> Optional[ContentMatch]:
    text = flatten_content(record.get("content"))
    return ContentMatch(text) if text else None


def content_from_text_field(record: dict) -> Optional[ContentMatch]:
    text = record.get("text")
    return ContentMatch(text) if isinstance(text, str) and text else None


def content_from_summary_field(record: dict) -> Optional[ContentMatch]:
    text = record.get("summary")
    if isinstance(text, str) and text:
        return ContentMatch(text, default_role="assistant")
    return None


def content_from_query_field(record: dict) -> Optional[ContentMatch]:
    text = record.get("query")
    if isinstance(text, str) and text:
        return ContentMatch(text, forced_role="user")
    return None


def content_from_response_field(record: dict) -> Optional[ContentMatch]:
    text = record.get("response")
    if isinstance(text, str) and text:
        return ContentMatch(text, forced_role="assistant")
    return None


def content_from_alternate_fields(record: dict) -> Optional[ContentMatch]:
    for name in ALTERNATE_TEXT_FIELDS:
        text = record.get(name)
        if isinstance(text, str) and text:
            return ContentMatch(text)
    return None


CONTENT_EXTRACTORS: tuple[Callable[[dict], Optional[ContentMatch]], ...] = (
    content_from_nested_message,
    content_from_content_field,
    content_from_text_field,
    content_from_summary_field,
    content_from_query_field,
    content_from_response_field,
    content_from_alternate_fields,
)


def resolve_content(record: dict) -> Optional[ContentMatch]:
    for extractor in CONTENT_EXTRACTORS:
        found = extractor(record)
        if found is not None:
            return found
    return None


def flatten_content(content: Any) -> str:
    """Flatten string / list-of-blocks content into plain text.

    Blocks contribute their ``text``, else their ``content`` (which may itself
    be a list, as with tool_result blocks). Parts are joined with newlines.
    """
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return ""

    parts = []
    for item in content:
        if isinstance(item, str):
            text = item
        elif isinstance(item, dict):
            text = item.get("text")
            if not isinstance(text, str) or not text:
                text = flatten_content(item.get("content"))
        else:
            text = ""
        if text:
            parts.append(text)
    return "\n".join(parts)


# ── Timestamps ───────────────────────────────────────────────────


def extract_timestamp(record: dict) -> Optional[datetime]:
    for name in TIMESTAMP_FIELDS:
        parsed = parse_timestamp(record.get(name))
        if parsed is not None:
            return parsed
    return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO 8601 string or epoch seconds/milliseconds into UTC-aware datetime."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > 1e11 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str) or not value:
        return None
    try:
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# ── Entry point ──────────────────────────────────────────────────


def normalize_record(record: Any, fallback_timestamp: Optional[datetime] = None) -> Optional[Message]:
    """Convert one decoded JSONL record into a Message, or None to drop it."""
    if not isinstance(record, dict):
        return None

    role = resolve_role(record)
    found = resolve_content(record)
    content = ""

    if found is not None:
        content = found.content
        if found.forced_role:
            role = found.forced_role
        elif not role and found.default_role:
            role = found.default_role

    if not role:
        logger.debug("Dropping record without a role: %s", _preview(record))
        return None

    if not content and "message" not in record and "type" not in record:
        logger.debug("Dropping record without content: %s", _preview(record))
        return None

    timestamp = extract_timestamp(record)
    if timestamp is None:
        timestamp = fallback_timestamp

    return Message(role=role, content=content, timestamp=timestamp)


def _preview(record: dict) -> str:
    try:
        return json.dumps(record, ensure_ascii=False, default=str)[:200]
    except (TypeError, ValueError):
        return repr(record)[:200]
