"""Shared test fixtures for ccsearch."""

import json
from datetime import datetime, timezone

import pytest

from ccsearch.core import Message, Session
from ccsearch.loader import SessionLoader


def _write_jsonl(path, entries):
    """Write entries one per line; plain strings are written verbatim."""
    lines = [e if isinstance(e, str) else json.dumps(e) for e in entries]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


@pytest.fixture
def tmp_claude_projects(tmp_path):
    """Create a synthetic projects directory with mixed record shapes.

    Includes:
    - A current-format session with session_started, summary, tool_use,
      tool_result, snapshot and a malformed line
    - A session made only of legacy shapes (human/ai/query/response) with a
      title_updated record
    - A file with a session_started record and no messages (excluded)
    - A second project, a hidden directory and a stray root-level file
    """
    projects = tmp_path / "projects"
    webapp = projects / "-Users-testuser-github-com-acme-webapp"
    webapp.mkdir(parents=True)

    _write_jsonl(webapp / "session-001.jsonl", [
        # 1. Session start (embedded id)
        {"type": "session_started", "session_id": "abc-session", "timestamp": "2025-01-20T09:59:00Z"},
        # 2. Summary without timestamp -> assistant message
        {"type": "summary", "summary": "Fixed login token expiry bug", "leafUuid": "uuid-005"},
        # 3. User prompt, content blocks
        {
            "type": "user",
            "message": {"role": "user", "content": [{"type": "text", "text": "Help me fix the login bug in the auth module"}]},
            "timestamp": "2025-01-20T10:00:00Z",
            "sessionId": "abc-session",
        },
        # 4. Assistant text + tool_use
        {
            "type": "assistant",
            "message": {"role": "assistant", "content": [
                {"type": "text", "text": "The login handler returns 500 when the token expires."},
                {"type": "tool_use", "id": "toolu_001", "name": "Read", "input": {"file_path": "/src/auth.py"}},
            ]},
            "timestamp": "2025-01-20T10:00:30Z",
        },
        # 5. Tool result with nested content blocks
        {
            "type": "user",
            "message": {"role": "user", "content": [
                {"type": "tool_result", "tool_use_id": "toolu_001", "content": [
                    {"type": "text", "text": "Traceback: KeyError 'exp'"},
                ]},
            ]},
            "timestamp": "2025-01-20T10:00:31Z",
        },
        # 6. Snapshot (skipped)
        {"type": "file-history-snapshot", "files": [{"path": "/src/auth.py"}]},
        # 7. Malformed line (skipped)
        '{"type": "assistant", "message": ',
        # 8. Assistant string content
        {
            "type": "assistant",
            "message": {"role": "assistant", "content": "Fixed it. The API now returns 401 instead of 500."},
            "timestamp": "2025-01-20T10:05:00Z",
        },
    ])

    _write_jsonl(webapp / "session-002.jsonl", [
        {"type": "human", "text": "What is a python decorator?", "ts": "2024-06-01T08:00:00Z"},
        {"type": "ai", "text": "A decorator wraps a function.", "ts": "2024-06-01T08:00:10Z"},
        {"role": "user", "content": "Show me an example please", "created_at": "2024-06-01T08:01:00Z"},
        {"query": "and with arguments?", "timestamp": "2024-06-01T08:02:00Z"},
        {"response": "Use a decorator factory.", "timestamp": "2024-06-01T08:03:00Z"},
        {"type": "title_updated", "title": "Python decorators"},
        {"type": "progress", "data": {"type": "hook_progress"}},
        {"role": "tool", "content": "not a chat role"},
    ])

    _write_jsonl(webapp / "empty.jsonl", [
        {"type": "session_started", "session_id": "abc123"},
    ])
    (webapp / "notes.txt").write_text("not a session", encoding="utf-8")

    notes = projects / "-Users-testuser-notes"
    notes.mkdir()
    _write_jsonl(notes / "legacy.jsonl", [
        {
            "type": "user",
            "message": {"role": "user", "content": "Deploy the API to production"},
            "timestamp": "2025-02-01T12:00:00Z",
        },
        {
            "type": "assistant",
            "message": {"role": "assistant", "content": [{"type": "text", "text": "Deployment finished."}]},
            "timestamp": "2025-02-01T12:10:00Z",
        },
    ])

    hidden = projects / ".cache"
    hidden.mkdir()
    _write_jsonl(hidden / "ignored.jsonl", [{"type": "user", "text": "hidden"}])
    _write_jsonl(projects / "stray.jsonl", [{"type": "user", "text": "stray"}])

    return projects


@pytest.fixture
def loader(tmp_claude_projects):
    return SessionLoader(tmp_claude_projects)


def _make_session(session_id, messages, title=None, project="/Users/test/dev/app", tags=None):
    """Build an in-memory Session from (role, content) pairs."""
    start = datetime(2025, 1, 15, 10, 0, 0, tzinfo=timezone.utc)
    return Session(
        id=session_id,
        title=title,
        created_at=start,
        updated_at=datetime(2025, 1, 15, 11, 30, 0, tzinfo=timezone.utc),
        messages=[Message(role=role, content=content, timestamp=start) for role, content in messages],
        filepath=f"/tmp/{session_id}.jsonl",
        project=project,
        tags=list(tags or []),
    )


@pytest.fixture
def sample_sessions():
    return [
        _make_session(
            "s-login",
            [
                ("user", "Fix login bug"),
                ("assistant", "the API returns 500 when login fails, so the login form shows nothing"),
            ],
            title="Fix login bug",
            tags=["auth"],
        ),
        _make_session(
            "s-docs",
            [
                ("user", "Write the README for the CLI"),
                ("assistant", "Here is a README draft."),
            ],
            title="Docs",
        ),
    ]


@pytest.fixture
def session_factory():
    return _make_session
