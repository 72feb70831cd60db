"""Core data models for ccsearch."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

ROLES = ("user", "assistant", "system")


@dataclass
class Message:
    """A single turn within a chat session."""

    role: str  # "user" | "assistant" | "system"
    content: str
    timestamp: Optional[datetime] = None


@dataclass
class Session:
    """One conversation transcript, backed by one .jsonl file."""

    id: str
    created_at: datetime
    updated_at: datetime
    messages: list[Message]
    title: Optional[str] = None
    filepath: str = ""
    project: str = ""  # decoded path, e.g. "/Users/alice/github.com/org/repo"
    tags: list[str] = field(default_factory=list)

    @property
    def message_count(self) -> int:
        return len(self.messages)


@dataclass
class Project:
    """A directory under the projects root that holds session files."""

    name: str
    path: str
    session_count: int
    encoded_name: str = ""
    path_suspect: bool = False


@dataclass
class SearchMatch:
    message_index: int
    highlights: list[str]


@dataclass
class SearchResult:
    """A session that matched a query, with per-message excerpts."""

    session: Session
    matches: list[SearchMatch] = field(default_factory=list)
    score: int = 0
