# Author: Green Mountain Systems AI Inc.
# Donated to IAB Tech Lab

"""CLI interface for delivery operations.

Provides commands for:
- Checking placements of an order for completion
- Sweeping digital placements after a campaign ends
- Validating and recalculating campaign metrics
- Moving orders and placements through their statuses
- Generating insertion orders for an approved campaign
- Listing completion rules
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ...config import get_settings
from ...storage import StorageBackend, get_storage_backend

T = TypeVar("T")

app = typer.Typer(
    name="ad-delivery",
    help="Ad Delivery System CLI - Reconcile campaign delivery and placement status",
)
console = Console()
state: dict[str, Optional[str]] = {"storage": None}


@app.callback()
def main(
    storage: Optional[str] = typer.Option(
        None,
        "--storage",
        "-s",
        help="Storage backend: sqlite, redis, memory (defaults to settings)",
    ),
):
    """Configure logging and storage for every command."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    state["storage"] = storage


def _run(action: Callable[[StorageBackend], Awaitable[T]]) -> T:
    """Connect to storage, run `action`, and always disconnect."""

    async def runner() -> T:
        store = get_storage_backend(state["storage"])
        await store.connect()
        try:
            return await action(store)
        finally:
            await store.disconnect()

    return asyncio.run(runner())


def _progress_text(progress) -> str:
    if progress is None:
        return "-"
    return f"{progress.delivered:g}/{progress.goal:g} ({progress.percent}%)"


@app.command("check-order")
def check_order(
    order_id: str = typer.Argument(..., help="Insertion order ID"),
):
    """Check every placement of an order and complete those that are ready."""
    from ...services import InsertionOrderService, PlacementCompletionService

    async def action(store: StorageBackend):
        order = await InsertionOrderService(store).get_order(order_id)
        if order is None:
            return None
        return await PlacementCompletionService(store).check_all_placements_in_order(order_id)

    summary = _run(action)
    if summary is None:
        console.print(f"[red]Order not found: {order_id}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"Order {order_id}")
    table.add_column("Placement", style="cyan")
    table.add_column("Completed")
    table.add_column("Reason")
    table.add_column("Progress", style="yellow")

    for placement_id, result in summary.results.items():
        if result.completed:
            completed = "[green]✓[/green]"
        elif result.retryable:
            completed = "[yellow]retry[/yellow]"
        else:
            completed = "-"
        table.add_row(placement_id, completed, result.reason or "", _progress_text(result.progress))

    console.print(table)
    console.print(f"Checked {summary.checked}, completed {summary.completed}")


@app.command("sweep-ended")
def sweep_ended(
    order_id: str = typer.Argument(..., help="Insertion order ID"),
):
    """Complete in-production digital placements of an order whose campaign has ended."""
    from ...services import PlacementCompletionService

    result = _run(
        lambda store: PlacementCompletionService(store).check_digital_placements_for_campaign_end(order_id)
    )
    console.print(
        Panel(
            f"Checked: {result.checked}\nCompleted: {result.completed}",
            title=f"Campaign-end sweep: {order_id}",
        )
    )


def _load_campaign_or_exit(campaign_id: str):
    from ...services import CampaignService

    campaign = _run(lambda store: CampaignService(store).get(campaign_id))
    if campaign is None:
        console.print(f"[red]Campaign not found: {campaign_id}[/red]")
        raise typer.Exit(1)
    return campaign


@app.command("validate-campaign")
def validate_campaign(
    campaign_id: str = typer.Argument(..., help="Campaign ID or storage ID"),
):
    """Compare a campaign's stored pricing and reach with freshly calculated values."""
    from ...engines import CampaignMetricsValidator

    campaign = _load_campaign_or_exit(campaign_id)
    validator = CampaignMetricsValidator()
    pricing = validator.validate_pricing(campaign)
    reach = validator.validate_reach(campaign)

    table = Table(title=f"Campaign {campaign.campaign_id}")
    table.add_column("Check", style="cyan")
    table.add_column("Stored")
    table.add_column("Calculated")
    table.add_column("Diff %")
    table.add_column("Result")

    table.add_row(
        "Pricing",
        f"${pricing.stored_total:,.2f}",
        f"${pricing.calculated_total:,.2f}",
        f"{pricing.discrepancy:.1f}",
        "[green]PASS[/green]" if pricing.is_valid else "[red]WARN[/red]",
    )
    table.add_row(
        "Reach",
        f"{reach.stored_reach:,.0f}",
        f"{reach.calculated_reach:,.0f}",
        f"{reach.discrepancy:.1f}",
        "[green]PASS[/green]" if reach.is_valid else "[red]WARN[/red]",
    )

    console.print(table)
    console.print(pricing.message)
    console.print(reach.message)


@app.command()
def recalculate(
    campaign_id: str = typer.Argument(..., help="Campaign ID or storage ID"),
    save: bool = typer.Option(False, "--save", help="Overwrite the stored snapshot"),
):
    """Recalculate a campaign's pricing and reach."""
    from ...engines import CampaignMetricsValidator
    from ...services import CampaignService

    campaign = _load_campaign_or_exit(campaign_id)
    metrics = CampaignMetricsValidator().recalculate_metrics(campaign)
    if metrics.error:
        console.print(f"[red]✗[/red] {metrics.error}")
        raise typer.Exit(1)

    table = Table(title="Publication Totals")
    table.add_column("Publication", style="cyan")
    table.add_column("Total", style="green")
    for publication_id, total in metrics.pricing.publication_totals.items():
        table.add_row(str(publication_id), f"${total:,.2f}")
    console.print(table)

    console.print(Panel(
        f"Subtotal: ${metrics.pricing.subtotal:,.2f}\n"
        f"Unique reach: {metrics.reach.estimated_unique_reach:,.0f}\n"
        f"Total reach: {metrics.reach.estimated_total_reach:,.0f}\n"
        f"Monthly impressions: {metrics.reach.total_monthly_impressions or 0:,.0f}",
        title=f"Campaign {campaign.campaign_id}",
    ))

    if save:
        _run(lambda store: CampaignService(store).refresh_metrics(campaign_id))
        console.print("[green]✓[/green] Snapshot saved")


@app.command()
def transition(
    order_id: str = typer.Argument(..., help="Insertion order ID"),
    status: str = typer.Argument(..., help="New order status"),
    user: str = typer.Option("cli", "--user", "-u", help="User recorded in the history"),
    notes: Optional[str] = typer.Option(None, "--notes", "-n", help="History notes"),
):
    """Move an order to a new status."""
    from ...services import InsertionOrderService

    result = _run(
        lambda store: InsertionOrderService(store).update_order_status(order_id, status, user, notes)
    )
    if not result.success:
        console.print(f"[red]✗ {result.error}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Order {order_id} is now {status}")


@app.command()
def placement(
    order_id: str = typer.Argument(..., help="Insertion order ID"),
    placement_id: str = typer.Argument(..., help="Placement path"),
    status: str = typer.Argument(..., help="New placement status"),
    user: str = typer.Option("cli", "--user", "-u", help="User recorded in the history"),
    notes: Optional[str] = typer.Option(None, "--notes", "-n", help="History notes"),
):
    """Manually change a placement's status."""
    from ...services import InsertionOrderService

    result = _run(
        lambda store: InsertionOrderService(store).update_placement_status(
            order_id, placement_id, status, user, notes
        )
    )
    if not result.success:
        console.print(f"[red]✗ {result.error}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Placement {placement_id} is now {status}")
    if result.data.get("order_confirmed"):
        console.print("[green]✓[/green] All placements accepted, order confirmed")


@app.command("generate-orders")
def generate_orders(
    campaign_id: str = typer.Argument(..., help="Campaign ID or storage ID"),
    user: str = typer.Option("cli", "--user", "-u", help="User recorded in the history"),
):
    """Generate and send insertion orders for an approved campaign."""
    from ...services import InsertionOrderService

    result = _run(
        lambda store: InsertionOrderService(store).generate_orders_for_campaign(campaign_id, user)
    )
    if not result.success:
        console.print(f"[red]✗ {result.error}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] {result.data['orders_generated']} orders sent")


@app.command()
def rules():
    """List the completion rule for each channel."""
    from ...engines import COMPLETION_RULES
    from ...engines.completion_rules import DEFAULT_COMPLETION_RULE

    table = Table(title="Completion Rules")
    table.add_column("Channel", style="cyan")
    table.add_column("Type", style="yellow")
    table.add_column("Uses Frequency")
    table.add_column("Description")

    for channel, rule in COMPLETION_RULES.items():
        table.add_row(channel, rule.type.value, "yes" if rule.uses_frequency else "no", rule.description)
    table.add_row(
        "(other)",
        DEFAULT_COMPLETION_RULE.type.value,
        "yes" if DEFAULT_COMPLETION_RULE.uses_frequency else "no",
        DEFAULT_COMPLETION_RULE.description,
    )

    console.print(table)


if __name__ == "__main__":
    app()
