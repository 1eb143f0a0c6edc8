"""Sidekick rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from sidekick.cli.errors import err_no_db
    console.print(err_no_db(str(db)))
    raise typer.Exit(1)
"""

from __future__ import annotations

from rich.markup import escape

from sidekick.rag.llm_client import ServiceErrorKind, user_message


def err_no_db(db_path: str = ".sidekick.db") -> str:
    """No database at *db_path*."""
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Run:  sidekick init"
    )


def err_project_not_found(project_id: str) -> str:
    """Project id does not exist in the record store."""
    return (
        f"[red]Error:[/] Project '{project_id}' not found.\n"
        "  Check the id with:  sidekick status"
    )


def err_not_indexed(project_id: str) -> str:
    """Project has no knowledge chunks yet — semantic search will find nothing."""
    return (
        f"[yellow]Warning:[/] Project '{project_id}' has not been indexed.\n"
        f"  Run:  sidekick reindex --project {project_id}"
    )


def err_config(detail: str) -> str:
    """Config file is invalid or contains a forbidden key."""
    return f"[red]Error:[/] Invalid configuration.\n  {escape(detail)}"


def err_service(kind: ServiceErrorKind, detail: str = "") -> str:
    """Categorized embedding/completion failure with the matching fix."""
    hints = {
        ServiceErrorKind.MISSING_CREDENTIAL: "  Set:  export OPENAI_API_KEY=sk-...  (or the key for your provider)",
        ServiceErrorKind.QUOTA: "  Check the billing page of your model provider.",
        ServiceErrorKind.RATE_LIMIT: "  Wait a moment, then retry.",
        ServiceErrorKind.GENERIC: "  Re-run with --verbose for details.",
    }
    return f"[red]Error:[/] {escape(user_message(kind, detail))}\n{hints[kind]}"


def err_index_partial(indexed: int) -> str:
    """Rebuild stopped part-way; the previous index was kept."""
    return (
        f"[yellow]Note:[/] {indexed} chunk(s) were embedded before the failure and discarded.\n"
        "  The previous index is unchanged."
    )


def err_reindex_busy(project_id: str, holder: str | None = None) -> str:
    """Another re-index of the same project holds the rebuild lease."""
    who = f" by {escape(holder)}" if holder else ""
    return (
        f"[red]Error:[/] Project '{project_id}' is being re-indexed{who}.\n"
        "  Wait for it to finish, or retry with a longer --wait."
    )
