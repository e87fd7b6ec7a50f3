"""
El Criollo CLI.

Command-line interface for common operations.
"""

import sys
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="criollo",
    help="El Criollo Restaurant Management CLI",
    add_completion=False,
)
console = Console()


# =============================================================================
# Database Commands
# =============================================================================

@app.command()
def init_db():
    """Create all database tables."""
    from sqlalchemy.exc import SQLAlchemyError

    from criollo_api.models import Base
    from criollo_shared.infrastructure.db import engine

    console.print("[blue]Creating database tables[/blue]")
    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as e:
        console.print(f"[red]✗ Table creation failed: {e}[/red]")
        raise typer.Exit(1)
    console.print("[green]✓ Tables created/verified[/green]")


@app.command()
def seed(
    demo: bool = typer.Option(True, "--demo/--no-demo", help="Include demo tables and menu"),
    force: bool = typer.Option(False, "--force", "-f", help="Allow seeding in production"),
):
    """Seed roles, the administrator and optional demo data."""
    from criollo_api.models import Base
    from criollo_api.seed import seed as run_seed
    from criollo_shared.config.settings import settings
    from criollo_shared.infrastructure.db import engine, get_db_context

    if settings.environment == "production" and demo and not force:
        console.print("[red]Cannot seed demo data in production without --force[/red]")
        raise typer.Exit(1)

    Base.metadata.create_all(bind=engine)
    with get_db_context() as db:
        run_seed(db, demo=demo)
    console.print(f"[green]✓ Seed complete (demo={'yes' if demo else 'no'})[/green]")


# =============================================================================
# Operations Commands
# =============================================================================

@app.command()
def reset_tables():
    """Return every table without active orders to FREE."""
    from criollo_api.services.domain import TableService
    from criollo_shared.infrastructure.db import get_db_context

    with get_db_context() as db:
        reset, skipped = TableService(db).reset_all()

    console.print(f"[green]✓ {len(reset)} tables reset[/green]")
    if skipped:
        console.print(
            f"[yellow]Skipped tables with active orders: {', '.join(str(n) for n in skipped)}[/yellow]"
        )


@app.command()
def low_stock():
    """List products below their minimum stock."""
    from criollo_api.services.domain import InventoryService
    from criollo_shared.infrastructure.db import get_db_context

    with get_db_context() as db:
        rows = [
            (inv.product.name, inv.available, inv.minimum, inv.unit)
            for inv in InventoryService(db).low_stock()
        ]

    if not rows:
        console.print("[green]✓ No products below minimum stock[/green]")
        return

    table = Table(title="Low Stock")
    table.add_column("Product", style="cyan")
    table.add_column("Available", style="red")
    table.add_column("Minimum", style="yellow")
    table.add_column("Unit")
    for name, available, minimum, unit in rows:
        table.add_row(name, str(available), str(minimum), unit)
    console.print(table)


@app.command()
def expire_reservations():
    """Mark late reservations as no-shows and release their tables."""
    from criollo_api.services.domain import ReservationService
    from criollo_shared.infrastructure.db import get_db_context

    with get_db_context() as db:
        expired = ReservationService(db).expire_late()

    if expired:
        console.print(f"[yellow]Expired reservations: {', '.join(str(i) for i in expired)}[/yellow]")
    else:
        console.print("[green]✓ No late reservations[/green]")


@app.command()
def send_reminders():
    """Email reminders for reservations starting soon."""
    from criollo_api.services.domain import ReservationService
    from criollo_api.services.notifications import EmailService
    from criollo_api.services.notifications import templates
    from criollo_shared.infrastructure.db import SessionLocal, get_db_context

    email_service = EmailService(SessionLocal)
    sent = 0
    skipped = 0

    with get_db_context() as db:
        service = ReservationService(db)
        for reservation in service.due_reminders():
            content = templates.reservation_reminder(reservation)
            if content is None:
                skipped += 1
                continue
            if email_service.send(content):
                service.mark_reminder_sent(reservation.id)
                sent += 1
            else:
                skipped += 1

    table = Table(title="Reservation Reminders")
    table.add_column("Result", style="cyan")
    table.add_column("Count", style="green")
    table.add_row("Sent", str(sent))
    table.add_row("Skipped", str(skipped))
    console.print(table)


# =============================================================================
# Server Commands
# =============================================================================

@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address"),
    port: Optional[int] = typer.Option(None, help="Port (defaults to REST_API_PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Run the REST API with uvicorn."""
    import uvicorn

    from criollo_shared.config.settings import settings

    uvicorn.run(
        "criollo_api.main:app",
        host=host,
        port=port or settings.rest_api_port,
        reload=reload,
    )


@app.command()
def version():
    """Show version information."""
    table = Table(title="El Criollo Version")
    table.add_column("Component", style="cyan")
    table.add_column("Version", style="green")

    table.add_row("API", "1.0.0")
    table.add_row("Python", sys.version.split()[0])

    console.print(table)


if __name__ == "__main__":
    app()
