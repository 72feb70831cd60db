"""CLI entry point for ccsearch."""

import logging
import os

import click
import uvicorn

from .config import get_server_host, get_server_port
from .loader import SessionLoader
from .search import SearchEngine


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.option(
    "--claude-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Projects directory to read (default: ~/.claude/projects).",
)
def main(verbose: bool, claude_dir: str | None):
    """Browse and search Claude CLI chat sessions."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if claude_dir:
        os.environ["CCSEARCH_CLAUDE_PATH"] = claude_dir


@main.command()
@click.option("--port", default=None, type=int, help="Port to serve on.")
@click.option("--host", default=None, help="Host to bind to.")
def serve(port: int | None, host: str | None):
    """Start the web API."""
    host = host or get_server_host()
    port = port or get_server_port()
    click.echo(f"Starting ccsearch on http://{host}:{port}")
    uvicorn.run("ccsearch.server:app", host=host, port=port, reload=False)


@main.command()
@click.argument("query")
@click.option("--project", "-p", default=None, help="Only search this decoded project path.")
@click.option("--limit", "-n", default=10, show_default=True, help="Maximum sessions to show.")
def search(query: str, project: str | None, limit: int):
    """Search session transcripts for QUERY."""
    sessions = SessionLoader().load_all()
    if project:
        sessions = [s for s in sessions if s.project == project]

    results = SearchEngine().search(sessions, query)
    if not results:
        click.echo("No matches.")
        return

    for result in results[:limit]:
        session = result.session
        click.secho(f"{session.title or 'Untitled Session'}", bold=True)
        click.echo(f"  {session.id}  {session.project}  score={result.score}")
        for match in result.matches[:3]:
            role = session.messages[match.message_index].role
            click.echo(f"    [{role} #{match.message_index}] {match.highlights[0]}")
        click.echo()


@main.command()
def projects():
    """List projects and their session counts."""
    for project in SessionLoader().list_projects():
        marker = " (?)" if project.path_suspect else ""
        click.echo(f"{project.session_count:5d}  {project.path}{marker}")
