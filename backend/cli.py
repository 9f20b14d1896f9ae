"""
Fulfillment CLI.

Command-line interface for operator tasks: seeding reference data,
watching stock, and reconciling orders whose deduction did not land.
"""

import sys
from pathlib import Path

# Add backend to path for imports when run as a script
sys.path.insert(0, str(Path(__file__).parent))

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="fulfillment",
    help="Order fulfillment operations CLI",
    add_completion=False,
)
console = Console()


# =============================================================================
# Database Commands
# =============================================================================

@app.command()
def init_db():
    """Create database tables."""
    from fulfillment.models import Base
    from shared.infrastructure.db import engine

    Base.metadata.create_all(bind=engine)
    console.print("[green]✓ Tables created/verified[/green]")


@app.command()
def seed(
    force: bool = typer.Option(False, "--force", "-f", help="Allow seeding in production"),
):
    """Seed ingredients, packaging, products and the demo customer."""
    from fulfillment.models import Base
    from fulfillment.seed import seed as seed_reference_data
    from shared.config.settings import settings
    from shared.infrastructure.db import engine, get_db_context

    if settings.environment == "production" and not force:
        console.print("[red]Cannot seed production without --force[/red]")
        raise typer.Exit(1)

    Base.metadata.create_all(bind=engine)
    with get_db_context() as db:
        seed_reference_data(db)
    console.print("[green]✓ Reference data seeded[/green]")


# =============================================================================
# Inventory Commands
# =============================================================================

@app.command()
def low_stock():
    """List ingredients at or below their low-stock threshold."""
    from fulfillment.repositories import get_stock_ledger
    from shared.infrastructure.db import get_db_context

    with get_db_context() as db:
        ingredients = get_stock_ledger(db).list_low_stock()

        if not ingredients:
            console.print("[green]✓ All ingredients above threshold[/green]")
            return

        table = Table(title="Low Stock")
        table.add_column("Ingredient", style="cyan")
        table.add_column("Stock", style="red", justify="right")
        table.add_column("Threshold", style="yellow", justify="right")

        for ingredient in ingredients:
            table.add_row(
                f"{ingredient.name} ({ingredient.id})",
                f"{ingredient.stock:g}{ingredient.unit}",
                f"{ingredient.low_stock_threshold:g}{ingredient.unit}",
            )
        console.print(table)


@app.command()
def adjust_stock(
    ingredient_id: str = typer.Argument(..., help="Ingredient id, e.g. cup-grande"),
    delta: float = typer.Argument(..., help="Signed amount: positive restocks, negative removes"),
    reason: str = typer.Option(None, "--reason", "-r", help="Why the stock changed"),
):
    """Apply a signed stock correction."""
    from fulfillment.services.domain import DeductionFailedError, InventoryService, NotFoundError
    from shared.infrastructure.db import get_db_context

    if delta == 0:
        console.print("[yellow]Delta is zero, nothing to do[/yellow]")
        raise typer.Exit(1)

    with get_db_context() as db:
        try:
            record = InventoryService(db).adjust_stock(ingredient_id, delta, reason=reason)
        except NotFoundError as e:
            console.print(f"[red]✗ {e}[/red]")
            raise typer.Exit(1)
        except DeductionFailedError as e:
            console.print(f"[red]✗ Stock update failed: {e.reason}[/red]")
            raise typer.Exit(1)

    console.print(f"[green]✓ {record.name}: {record.stock:g}{record.unit}[/green]")


# =============================================================================
# Order Commands
# =============================================================================

@app.command()
def reconcile(
    order_id: str = typer.Option(None, "--order-id", "-o", help="Reconcile a single order"),
    limit: int = typer.Option(50, help="Max orders to scan"),
):
    """Retry inventory deduction for orders still missing it."""
    from fulfillment.services.domain import (
        DeductionFailedError,
        InvalidOrderError,
        NotFoundError,
        OrderService,
    )
    from shared.infrastructure.db import get_db_context

    with get_db_context() as db:
        service = OrderService(db)

        if order_id:
            try:
                plan = service.reconcile_inventory(order_id)
            except (NotFoundError, InvalidOrderError) as e:
                console.print(f"[red]✗ {e}[/red]")
                raise typer.Exit(1)
            except DeductionFailedError as e:
                console.print(f"[red]✗ Deduction failed again: {e.reason}[/red]")
                raise typer.Exit(1)

            if plan is None:
                console.print("[yellow]Order was already deducted[/yellow]")
            else:
                console.print(f"[green]✓ Deducted {len(plan.increments)} ingredients[/green]")
                for warning in plan.warnings:
                    console.print(f"[yellow]! {warning}[/yellow]")
            return

        outcomes = service.reconcile_pending(limit=limit)

    if not outcomes:
        console.print("[green]✓ No orders pending reconciliation[/green]")
        return

    table = Table(title="Reconciliation")
    table.add_column("Order", style="cyan")
    table.add_column("Result")

    failed = 0
    for outcome in outcomes:
        if outcome.error:
            failed += 1
            table.add_row(outcome.order_number, f"[red]✗ {outcome.error}[/red]")
        elif outcome.deducted:
            table.add_row(outcome.order_number, "[green]✓ Deducted[/green]")
        else:
            table.add_row(outcome.order_number, "[yellow]Already deducted[/yellow]")
    console.print(table)

    if failed:
        raise typer.Exit(1)


@app.command()
def order_status(
    order_id: str = typer.Argument(..., help="Order id"),
    status: str = typer.Argument(..., help="Target status"),
    reason: str = typer.Option(None, "--reason", "-r", help="Cancellation reason"),
):
    """Move an order to a new status (admin override of the queue UI)."""
    from fulfillment.services.domain import InvalidTransitionError, NotFoundError, OrderService
    from shared.infrastructure.db import get_db_context

    with get_db_context() as db:
        try:
            result = OrderService(db).transition(order_id, status, reason=reason)
        except (NotFoundError, InvalidTransitionError) as e:
            console.print(f"[red]✗ {e}[/red]")
            raise typer.Exit(1)

    console.print(f"[green]✓ {result.from_status} → {result.to_status}[/green]")
    if result.inventory_deducted:
        console.print("[green]  inventory deducted[/green]")
    if result.points_awarded:
        console.print(f"[green]  {result.points_awarded} points awarded[/green]")
    for warning in result.warnings:
        console.print(f"[yellow]! {warning}[/yellow]")


@app.command()
def version():
    """Show version information."""
    table = Table(title="Fulfillment Version")
    table.add_column("Component", style="cyan")
    table.add_column("Version", style="green")

    table.add_row("API", "0.1.0")
    table.add_row("Python", sys.version.split()[0])

    console.print(table)


if __name__ == "__main__":
    app()
