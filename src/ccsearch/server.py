"""FastAPI web server for ccsearch."""

import logging
from typing import Any, Literal, Optional

from fastapi import Body, FastAPI, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel

from . import __version__
from .analyzer import analyze_session, summary_text
from .core import Project, Session
from .export import (
    ImportValidationError,
    parse_import,
    session_to_dict,
    sessions_to_csv,
    sessions_to_json,
    sessions_to_markdown,
)
from .loader import SessionLoader
from .paths import encode_project_path
from .preview import build_preview
from .search import SearchEngine
from .store import SessionNotFoundError, SessionStore

logger = logging.getLogger(__name__)

app = FastAPI(title="ccsearch", version=__version__)

MAX_SEARCH_RESULTS = 50

# Loader cache (created on first request)
_loader: Optional[SessionLoader] = None
# Sessions loaded through /api/import; held in memory only
_imported_sessions: dict[str, Session] = {}

_search_engine = SearchEngine()


def _get_loader() -> SessionLoader:
    """Lazily create and cache the session loader."""
    global _loader
    if _loader is None:
        _loader = SessionLoader()
        logger.info("Reading sessions from %s", _loader.get_base_path())
    return _loader


def _load_sessions() -> list[Session]:
    try:
        return _get_loader().load_all()
    except Exception as e:
        logger.error("Failed to load sessions: %s", e)
        raise HTTPException(status_code=500, detail="Failed to load sessions")


def _find_session(session_id: str) -> Session:
    session = next((s for s in _load_sessions() if s.id == session_id), None)
    if session is None:
        session = _imported_sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _project_to_dict(project: Project) -> dict:
    return {
        "name": project.name,
        "path": project.path,
        "encoded_name": project.encoded_name,
        "session_count": project.session_count,
        "path_suspect": project.path_suspect,
    }


def _session_summary_dict(session: Session) -> dict:
    data = session_to_dict(session, include_messages=False)
    data["preview"] = build_preview(session)
    return data


def _filter_project(sessions: list[Session], project: Optional[str]) -> list[Session]:
    """Keep sessions of ``project``, given as a decoded path or an encoded directory name."""
    if not project or project == "all":
        return sessions
    return [
        s for s in sessions
        if s.project == project or encode_project_path(s.project) == project
    ]


# ── Routes ───────────────────────────────────────────────────────


@app.get("/api/projects")
async def get_projects():
    """Return projects with at least one session, busiest first."""
    return [_project_to_dict(p) for p in _get_loader().list_projects()]


@app.get("/api/sessions")
async def get_sessions(
    project: Optional[str] = Query(None, description="Decoded project path or encoded directory name"),
    tag: Optional[str] = Query(None, description="Only sessions carrying this tag"),
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
):
    """Return sessions, most recently updated first, with previews."""
    sessions = _load_sessions()

    sessions = _filter_project(sessions, project)
    if tag:
        sessions = [s for s in sessions if tag in s.tags]

    sessions.sort(key=lambda s: s.updated_at, reverse=True)

    total = len(sessions)
    page = sessions[offset: offset + limit]

    return {
        "total": total,
        "sessions": [_session_summary_dict(s) for s in page],
    }


@app.get("/api/session/{session_id}")
async def get_session(session_id: str):
    """Return one session with all of its messages."""
    return session_to_dict(_find_session(session_id))


@app.get("/api/session/{session_id}/summary")
async def get_session_summary(session_id: str):
    summary = analyze_session(_find_session(session_id))
    data = summary.to_dict()
    data["summary_text"] = summary_text(summary)
    return data


@app.put("/api/session/{session_id}/tags")
async def update_tags(session_id: str, payload: dict = Body(...)):
    tags = payload.get("tags")
    if not isinstance(tags, list):
        raise HTTPException(status_code=400, detail="Tags must be an array")

    try:
        tags = SessionStore(_get_loader()).set_tags(session_id, tags)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")
    except OSError as e:
        logger.error("Failed to update tags for %s: %s", session_id, e)
        raise HTTPException(status_code=500, detail="Failed to update tags")

    return {"success": True, "tags": tags}


@app.put("/api/session/{session_id}/title")
async def update_title(session_id: str, payload: dict = Body(...)):
    title = payload.get("title")
    if not isinstance(title, str):
        raise HTTPException(status_code=400, detail="Title must be a string")

    try:
        title = SessionStore(_get_loader()).set_title(session_id, title)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")
    except OSError as e:
        logger.error("Failed to update title for %s: %s", session_id, e)
        raise HTTPException(status_code=500, detail="Failed to update title")

    return {"success": True, "title": title}


@app.delete("/api/session/{session_id}")
async def delete_session(session_id: str):
    try:
        SessionStore(_get_loader()).delete(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")
    except OSError as e:
        logger.error("Failed to delete session %s: %s", session_id, e)
        raise HTTPException(status_code=500, detail="Failed to delete session")

    return {"success": True, "message": "Session deleted successfully"}


@app.get("/api/search")
async def search(
    q: Optional[str] = Query(None, description="Whitespace-separated search terms"),
    project: Optional[str] = Query(None, description="Decoded project path or encoded directory name"),
):
    """Rank sessions by term frequency and return highlighted excerpts."""
    if not q or not q.strip():
        raise HTTPException(status_code=400, detail='Query parameter "q" is required')

    sessions = _load_sessions()
    sessions = _filter_project(sessions, project)

    results = _search_engine.search(sessions, q)

    return {
        "query": q,
        "total": len(results),
        "results": [
            {
                "session": _session_summary_dict(r.session),
                "score": r.score,
                "matches": [
                    {
                        "message_index": m.message_index,
                        "role": r.session.messages[m.message_index].role,
                        "highlights": m.highlights,
                    }
                    for m in r.matches
                ],
            }
            for r in results[:MAX_SEARCH_RESULTS]
        ],
    }


class ExportRequest(BaseModel):
    session_ids: Optional[list[str]] = None
    project: Optional[str] = None
    format: Literal["json", "csv", "markdown"] = "json"


@app.post("/api/export")
async def export_sessions(request: ExportRequest):
    """Export selected sessions (or a whole project) as JSON, CSV or Markdown."""
    sessions = _load_sessions()

    if request.session_ids:
        wanted = set(request.session_ids)
        sessions = [s for s in sessions if s.id in wanted]
    else:
        sessions = _filter_project(sessions, request.project)

    if request.format == "csv":
        return Response(
            content=sessions_to_csv(sessions),
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="claude-sessions.csv"'},
        )
    if request.format == "markdown":
        return Response(
            content=sessions_to_markdown(sessions),
            media_type="text/markdown",
            headers={"Content-Disposition": 'attachment; filename="claude-sessions.md"'},
        )
    return Response(
        content=sessions_to_json(sessions),
        media_type="application/json",
        headers={"Content-Disposition": 'attachment; filename="claude-sessions.json"'},
    )


@app.post("/api/import")
async def import_sessions(payload: dict = Body(...)):
    """Load an export document into memory (viewable, never written to disk)."""
    data: Any = payload.get("data")

    try:
        result = parse_import(data)
    except ImportValidationError as e:
        raise HTTPException(status_code=400, detail={"error": e.error, "details": e.details})

    for session in result.sessions:
        _imported_sessions[session.id] = session
    logger.info("Imported %d of %d sessions", len(result.sessions), result.total_count)

    return {
        "success": True,
        "message": f"Successfully imported {len(result.sessions)} of {result.total_count} sessions",
        "importedCount": len(result.sessions),
        "totalCount": result.total_count,
        "warnings": result.warnings,
        "metadata": result.metadata,
        "sessions": [_session_summary_dict(s) for s in result.sessions],
    }
