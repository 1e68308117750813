"""
Command Line Interface for Editorial Desk.
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from sqlalchemy.orm import Session

from ..config import configure_logging, get_settings
from ..content.enums import AuditAction, StoredState
from ..content.schemas import (
    ContentItemCreate,
    ContentItemUpdate,
    PlacementSpec,
    PublishRequest,
)
from ..content.services import ContentService
from ..db.base import get_session_local, init_database
from ..errors import ContentNotFoundError, EditorialError

app = typer.Typer(help="Editorial Desk - content lifecycle administration")
console = Console()


@app.callback()
def _startup(
    log_format: Optional[str] = typer.Option(
        None, help="Override the log renderer (json/console)"
    ),
):
    """Configure logging before any command runs."""
    settings = get_settings()
    if log_format:
        settings = settings.model_copy(update={"log_format": log_format})
    configure_logging(settings)


@contextmanager
def _service() -> Iterator[ContentService]:
    db: Session = get_session_local()()
    try:
        yield ContentService(db)
    except EditorialError as exc:
        console.print(f"[bold red]{exc.code}[/bold red]: {exc.message}")
        raise typer.Exit(code=1)
    finally:
        db.close()


def _print_item(service: ContentService, item_id: str) -> None:
    item = service.get(item_id, include_deleted=True)
    if item is None:
        raise ContentNotFoundError(item_id)
    data = service.describe(item)

    table = Table(show_header=False, box=None)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("ID", data["id"])
    table.add_row("Slug", data["slug"] or "-")
    table.add_row("State", f"{data['state']['name']} ({data['state']['slug']})")
    table.add_row("Live", "yes" if data["is_live"] else "no")
    lock = data["lock"]
    table.add_row("Locked by", lock["holder_user_id"] if lock else "-")
    created = data["created"]
    table.add_row("Created by", created["user_id"] if created else "-")
    edited = data["edited"]
    table.add_row("Edited by", edited["user_id"] if edited else "-")
    table.add_row("Keywords", ", ".join(data["keywords"]) or "-")
    table.add_row("Tags", ", ".join(data["tags"]) or "-")
    if data["deleted_at"]:
        table.add_row("Deleted", data["deleted_at"])

    console.print(Panel(table, title=data["title"] or "(untitled)", expand=False))

    if data["publications"]:
        pubs = Table(title="Publications", header_style="bold magenta")
        pubs.add_column("Slot", style="yellow")
        pubs.add_column("Block")
        pubs.add_column("Activated")
        pubs.add_column("Publish at")
        for pub in data["publications"]:
            pubs.add_row(
                pub["slot_id"],
                pub["slot"]["name"] or "-",
                "yes" if pub["is_published"] else "no",
                pub["publish_at"] or "-",
            )
        console.print(pubs)


@app.command()
def init_db():
    """Create all database tables."""
    init_database()
    console.print("✅ Database initialized")


@app.command()
def create(
    title: str = typer.Argument(..., help="Title of the new item"),
    user: str = typer.Option(..., "--user", "-u", help="Acting user id"),
    state: int = typer.Option(
        StoredState.SUBMITTED.value, min=0, max=3, help="Stored state id (0-3)"
    ),
    body: Optional[str] = typer.Option(None, help="Body text"),
    short: Optional[str] = typer.Option(None, help="Short summary"),
    keyword: Optional[List[str]] = typer.Option(None, help="Keyword id (repeatable)"),
    tag: Optional[List[str]] = typer.Option(None, help="Tag id (repeatable)"),
):
    """Create a content item."""
    fields = ContentItemCreate(
        title=title,
        stored_state_id=StoredState(state),
        body=body,
        short=short,
        keywords=keyword or None,
        tags=tag or None,
    )
    with _service() as service:
        item = service.create(fields, user)
        console.print(f"✅ Created {item.id} ({item.slug})")


@app.command("list")
def list_items(
    state: Optional[int] = typer.Option(
        None, min=0, max=3, help="Filter by stored state id"
    ),
    scheduled: bool = typer.Option(False, help="Only items waiting for publication"),
    limit: Optional[int] = typer.Option(None, help="Page size"),
    offset: int = typer.Option(0, help="Items to skip"),
):
    """List content items, newest first."""
    with _service() as service:
        items = service.list(
            stored_state=StoredState(state) if state is not None else None,
            scheduled=scheduled,
            limit=limit or get_settings().default_page_size,
            offset=offset,
        )
        if not items:
            console.print("No content items")
            return

        table = Table(title="Content items", header_style="bold cyan")
        table.add_column("ID", style="yellow")
        table.add_column("Title")
        table.add_column("State", style="green")
        table.add_column("Created")
        for item in items:
            table.add_row(
                item.id,
                item.title or "",
                service.effective_state(item).name,
                item.created_at.strftime("%Y-%m-%d %H:%M"),
            )
        console.print(table)


@app.command()
def show(item_id: str = typer.Argument(..., help="Content item id")):
    """Show an item with its state, lock and publications."""
    with _service() as service:
        _print_item(service, item_id)


@app.command()
def history(
    item_id: str = typer.Argument(..., help="Content item id"),
    action: Optional[AuditAction] = typer.Option(None, help="Filter by action"),
):
    """Show the audit history of an item."""
    with _service() as service:
        records = service.history(item_id, action)
        if not records:
            console.print(f"No history for {item_id}")
            return

        table = Table(title=f"History of {item_id}", header_style="bold cyan")
        table.add_column("When")
        table.add_column("Action", style="green")
        table.add_column("User", style="yellow")
        table.add_column("Note")
        for record in records:
            table.add_row(
                record.created_at.strftime("%Y-%m-%d %H:%M:%S"),
                record.action,
                record.user_id,
                record.note or "",
            )
        console.print(table)


@app.command()
def lock(
    item_id: str = typer.Argument(..., help="Content item id"),
    user: str = typer.Option(..., "--user", "-u", help="Acting user id"),
):
    """Take the edit lock on an item."""
    with _service() as service:
        service.update(item_id, ContentItemUpdate(lock=True), user)
        console.print(f"🔒 {item_id} locked by {user}")


@app.command()
def unlock(
    item_id: str = typer.Argument(..., help="Content item id"),
    user: str = typer.Option(..., "--user", "-u", help="Acting user id"),
):
    """Release the edit lock on an item."""
    with _service() as service:
        service.update(item_id, ContentItemUpdate(lock=False), user)
        console.print(f"🔓 {item_id} unlocked")


@app.command()
def publish(
    item_id: str = typer.Argument(..., help="Content item id"),
    user: str = typer.Option(..., "--user", "-u", help="Acting user id"),
    section: str = typer.Option(..., help="Section id to place the item in"),
    category: Optional[str] = typer.Option(None, help="Category id"),
    item_type: Optional[str] = typer.Option(None, help="Item type id"),
    featured: bool = typer.Option(False, help="Also place in featured blocks"),
):
    """Place an item in every page block matching the criteria."""
    request = PublishRequest(
        section_id=section,
        category_id=category,
        item_type_id=item_type,
        is_featured=featured,
    )
    with _service() as service:
        service.update(item_id, ContentItemUpdate(publish=request), user)
        _print_item(service, item_id)


@app.command()
def place(
    item_id: str = typer.Argument(..., help="Content item id"),
    user: str = typer.Option(..., "--user", "-u", help="Acting user id"),
    slot: Optional[List[str]] = typer.Option(None, help="Page block id (repeatable)"),
    activate: bool = typer.Option(False, help="Activate the placements"),
    at: Optional[datetime] = typer.Option(None, help="Publish time (UTC)"),
):
    """Replace the placements of an item with the given page blocks."""
    placements = [
        PlacementSpec(slot_id=slot_id, is_published=activate, publish_at=at)
        for slot_id in slot or []
    ]
    with _service() as service:
        service.update(item_id, ContentItemUpdate(publications=placements), user)
        _print_item(service, item_id)


@app.command()
def delete(
    item_id: str = typer.Argument(..., help="Content item id"),
    user: str = typer.Option(..., "--user", "-u", help="Acting user id"),
):
    """Delete an item (soft delete once it has been placed)."""
    with _service() as service:
        hard = service.delete(item_id, user)
        console.print(f"🗑️ {item_id} {'removed' if hard else 'moved to trash'}")


@app.command()
def version():
    """Show version information."""
    from .. import __version__

    rprint(Panel.fit(f"Editorial Desk v{__version__}", style="bold green"))


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
