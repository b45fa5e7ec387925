"""
Foodies POS CLI.

Command-line interface for database setup, offline replay and the outbox.
"""

import asyncio
import sys

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="foodies-pos",
    help="Foodies POS backend CLI",
    add_completion=False,
)
console = Console()


# =============================================================================
# Database Commands
# =============================================================================

@app.command()
def db_init():
    """Create the backing store tables."""
    from sqlalchemy.exc import SQLAlchemyError

    from pos_api.models import Base
    from shared.infrastructure.db import engine

    console.print("[blue]Creating tables...[/blue]")
    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as e:
        console.print(f"[red]✗ Table creation failed: {e}[/red]")
        raise typer.Exit(1)
    console.print("[green]✓ Tables created/verified[/green]")


@app.command()
def db_seed(
    force: bool = typer.Option(False, "--force", "-f", help="Allow seeding in production"),
):
    """Seed the database with a development menu, floor and staff."""
    from sqlalchemy.exc import SQLAlchemyError

    from pos_api.seed import seed
    from shared.config.settings import settings
    from shared.infrastructure.db import get_db_context

    if settings.environment == "production" and not force:
        console.print("[red]Cannot seed production without --force[/red]")
        raise typer.Exit(1)

    try:
        with get_db_context() as db:
            seed(db)
    except SQLAlchemyError as e:
        console.print(f"[red]✗ Seeding failed: {e}[/red]")
        raise typer.Exit(1)
    console.print("[green]✓ Seed complete[/green]")


# =============================================================================
# Offline Queue Commands
# =============================================================================

@app.command()
def offline_status():
    """Show orders waiting in the local offline queue."""
    from pos_api.services.domain.offline_queue import get_offline_queue

    queue = get_offline_queue()
    entries = queue.pending()
    failed = queue.failed()

    table = Table(title=f"Offline Queue ({len(entries)} pending, {len(failed)} failed)")
    table.add_column("Status")
    table.add_column("#", style="cyan")
    table.add_column("Order", style="green")
    table.add_column("Attempts", style="yellow")
    table.add_column("Last error", style="red")
    table.add_column("Queued at")

    for entry in entries + failed:
        table.add_row(
            entry.status,
            str(entry.id),
            entry.order_id,
            str(entry.attempts),
            entry.last_error or "-",
            str(entry.created_at),
        )
    console.print(table)


@app.command()
def offline_sync():
    """Replay queued orders to the backing store (FIFO)."""
    from pos_api.services.domain.offline_queue import get_offline_queue
    from shared.infrastructure.db import get_db_context

    queue = get_offline_queue()
    with get_db_context() as db:
        result = queue.sync_result(db)

    if result.pending:
        console.print(f"[yellow]Synced {result.synced}, {result.pending} still pending[/yellow]")
        raise typer.Exit(1)
    console.print(f"[green]✓ Synced {result.synced} order(s)[/green]")


# =============================================================================
# Outbox Commands
# =============================================================================

@app.command()
def outbox_run_once():
    """Deliver one batch of pending outbox events."""
    from pos_api.services.events.outbox_processor import process_pending_events_once
    from shared.infrastructure.events import close_redis_pool

    async def _run() -> int:
        try:
            return await process_pending_events_once()
        finally:
            await close_redis_pool()

    delivered = asyncio.run(_run())
    console.print(f"[green]✓ Delivered {delivered} event(s)[/green]")


@app.command()
def version():
    """Show version information."""
    table = Table(title="Foodies POS Version")
    table.add_column("Component", style="cyan")
    table.add_column("Version", style="green")

    table.add_row("API", "0.1.0")
    table.add_row("Python", sys.version.split()[0])

    console.print(table)


if __name__ == "__main__":
    app()
