"""Position tracking commands for the Sensex Options Tracker CLI.

Handles creating tracked options, recording price updates, exiting,
removing and displaying positions with their trailing stop-loss.
"""

import json

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from sensextracker.engine.metrics import position_metrics
from sensextracker.errors import TrackerError
from sensextracker.models import Position

console = Console()

RISK_COLORS = {
    "critical": "red",
    "warning": "yellow",
    "safe": "green",
}

STATUS_COLORS = {
    "TRACKING": "cyan",
    "STOPLOSS_HIT": "red",
    "EXITED": "dim",
}


def _get_tracker():
    """Get a tracker bound to the configured position store.

    Raises:
        StorageError: If the store cannot be opened or read.
    """
    from sensextracker.config import get_db_path, load_config
    from sensextracker.db.store import PositionStore
    from sensextracker.engine.tracker import PositionTracker

    store = PositionStore(get_db_path(load_config()))
    return PositionTracker(store=store)


def _fail(title: str, error: Exception) -> None:
    """Print an error panel and exit with status 1."""
    console.print(Panel(
        f"[red]{title}:[/red]\n\n{error}",
        title="[bold red]Error[/bold red]",
        border_style="red",
    ))
    raise SystemExit(1)


def _signed(value: float) -> str:
    color = "green" if value >= 0 else "red"
    return f"[{color}]{value:+,.2f}[/{color}]"


def _position_summary(position: Position) -> str:
    """Build the rich text block describing one position."""
    metrics = position_metrics(position)
    risk_color = RISK_COLORS[metrics["riskLevel"]]
    status_color = STATUS_COLORS[position.status]

    lines = [
        f"[bold]{position.option_type} {position.strike:,.0f}[/bold]  "
        f"[{status_color}]{position.status}[/{status_color}]\n",
        f"Entry:      ₹{position.entry_price:,.2f} x {position.quantity}",
        f"Current:    ₹{position.current_price:,.2f}",
        f"Highest:    ₹{position.highest_price:,.2f}",
        f"Stoploss:   ₹{position.stoploss:,.2f} ({position.trailing_percent:g}% trail)",
        f"Distance:   [{risk_color}]₹{metrics['distanceToStoploss']:,.2f} "
        f"({metrics['distancePercent']:.2f}%)[/{risk_color}]",
        f"P&L:        {_signed(metrics['pnl'])} ({metrics['pnlPercent']:+.2f}%)",
    ]

    if position.status == "STOPLOSS_HIT":
        lines.append("\n[bold red]Stoploss hit - exit this position.[/bold red]")
    elif position.status == "TRACKING" and metrics["riskLevel"] == "critical":
        lines.append("\n[bold yellow]Near stoploss.[/bold yellow]")

    if position.status == "EXITED":
        lines.append(
            f"\nExited at ₹{position.exit_price:,.2f} on "
            f"{position.exited_at:%Y-%m-%d %H:%M}, final P&L {_signed(position.final_pnl)}"
        )

    return "\n".join(lines)


def _position_record(position: Position) -> dict:
    record = position.to_record()
    record["metrics"] = position_metrics(position)
    return record


@click.command()
@click.argument("option_type", type=click.Choice(["CALL", "PUT"], case_sensitive=False))
@click.argument("strike", type=float)
@click.argument("entry_price", type=float)
@click.option(
    "-q", "--quantity",
    type=int,
    default=1,
    show_default=True,
    help="Contract multiplier used to scale P&L.",
)
@click.option(
    "-t", "--trailing",
    "trailing_percent",
    type=float,
    required=True,
    help="Trailing stop distance in percent of the highest price.",
)
def track(option_type: str, strike: float, entry_price: float, quantity: int, trailing_percent: float) -> None:
    """Start tracking an option with a trailing stop-loss.

    OPTION_TYPE is CALL or PUT, STRIKE the strike price and ENTRY_PRICE
    the premium paid.

    \b
    Examples:
      sensextracker track CALL 75500 250 -q 10 -t 5
      sensextracker track PUT 75000 180 -t 8
    """
    try:
        tracker = _get_tracker()
        position = tracker.create(entry_price, quantity, trailing_percent, option_type, strike)
    except TrackerError as e:
        _fail("Failed to track option", e)

    console.print(Panel(
        f"[green]Tracking option {position.id}[/green]\n\n{_position_summary(position)}",
        title="[bold green]Option Added[/bold green]",
        border_style="green",
    ))


@click.command()
@click.argument("position_id", type=int)
@click.argument("new_price", type=float)
def price(position_id: int, new_price: float) -> None:
    """Record a new premium for a tracked option.

    The stop-loss trails the highest premium seen; if the new premium is
    at or below the stop-loss the option is marked STOPLOSS_HIT.

    \b
    Examples:
      sensextracker price 1718000000000 275.5
    """
    try:
        tracker = _get_tracker()
        before = tracker.get(position_id)
        position = tracker.update_price(position_id, new_price)
    except TrackerError as e:
        _fail("Failed to update price", e)

    if position.status == "STOPLOSS_HIT" and before.status == "TRACKING":
        border, title = "red", "[bold red]Stoploss Hit[/bold red]"
    elif position.stoploss > before.stoploss:
        border, title = "green", "[bold green]Stoploss Raised[/bold green]"
    else:
        border, title = "cyan", "[bold]Price Updated[/bold]"

    console.print(Panel(_position_summary(position), title=title, border_style=border))


@click.command(name="exit")
@click.argument("position_id", type=int)
@click.option("--force", is_flag=True, help="Exit again even if already exited.")
def exit_position(position_id: int, force: bool) -> None:
    """Exit a tracked option at its current premium.

    \b
    Examples:
      sensextracker exit 1718000000000
    """
    try:
        tracker = _get_tracker()
        current = tracker.get(position_id)
        if current.status == "EXITED" and not force:
            console.print(
                f"[yellow]Option {position_id} was already exited "
                f"at ₹{current.exit_price:,.2f}.[/yellow] Use --force to exit again."
            )
            return
        position = tracker.exit(position_id)
    except TrackerError as e:
        _fail("Failed to exit option", e)

    console.print(Panel(
        _position_summary(position),
        title="[bold]Option Exited[/bold]",
        border_style="cyan",
    ))


@click.command()
@click.argument("position_id", type=int)
@click.option("--confirm", is_flag=True, help="Skip confirmation prompt.")
def remove(position_id: int, confirm: bool) -> None:
    """Stop tracking an option and delete it.

    \b
    Examples:
      sensextracker remove 1718000000000 --confirm
    """
    try:
        tracker = _get_tracker()
        tracker.get(position_id)
        if not confirm and not click.confirm(f"Remove option {position_id}?"):
            console.print("[dim]Remove cancelled.[/dim]")
            return
        removed = tracker.remove(position_id)
    except TrackerError as e:
        _fail("Failed to remove option", e)

    console.print(f"[green]Option removed:[/green] {removed.option_type} {removed.strike:,.0f} ({removed.id})")


@click.command()
@click.argument("position_id", type=int)
@click.option("--json", "as_json", is_flag=True, help="Print the JSON record.")
def show(position_id: int, as_json: bool) -> None:
    """Show one tracked option with its update log."""
    try:
        position = _get_tracker().get(position_id)
    except TrackerError as e:
        _fail("Failed to load option", e)

    if as_json:
        click.echo(json.dumps(_position_record(position), indent=2))
        return

    console.print(Panel(
        _position_summary(position),
        title=f"[bold]Option {position.id}[/bold]",
        border_style=STATUS_COLORS[position.status],
    ))

    if not position.update_log:
        console.print("[dim]No price updates yet.[/dim]")
        return

    table = Table(title="Update Log", show_header=True, header_style="bold cyan")
    table.add_column("Time")
    table.add_column("Prev High", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Stoploss", justify="right")
    table.add_column("P&L", justify="right")

    for entry in position.update_log:
        table.add_row(
            f"{entry.timestamp:%Y-%m-%d %H:%M:%S}",
            f"₹{entry.previous_price:,.2f}",
            f"₹{entry.new_price:,.2f}",
            f"₹{entry.stoploss:,.2f}",
            f"{_signed(entry.pnl)} ({entry.pnl_percent:+.2f}%)",
        )

    console.print(table)


def _stats_line(stats: dict) -> str:
    return (
        f"Tracked: [bold]{stats['total']}[/bold]  "
        f"Active: [cyan]{stats['active']}[/cyan]  "
        f"Stoploss: [red]{stats['stoploss']}[/red]  "
        f"Exited: [dim]{stats['exited']}[/dim]"
    )


def build_positions_table(positions: list[Position]) -> Table:
    """Build the table of tracked options."""
    table = Table(title="Tracked Options", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Option", style="bold")
    table.add_column("Qty", justify="right")
    table.add_column("Entry", justify="right")
    table.add_column("Current", justify="right")
    table.add_column("Highest", justify="right")
    table.add_column("Stoploss", justify="right")
    table.add_column("Distance", justify="right")
    table.add_column("P&L", justify="right")
    table.add_column("Status")

    for position in positions:
        metrics = position_metrics(position)
        risk_color = RISK_COLORS[metrics["riskLevel"]]
        status_color = STATUS_COLORS[position.status]
        table.add_row(
            str(position.id),
            f"{position.option_type} {position.strike:,.0f}",
            str(position.quantity),
            f"₹{position.entry_price:,.2f}",
            f"₹{position.current_price:,.2f}",
            f"₹{position.highest_price:,.2f}",
            f"₹{position.stoploss:,.2f}",
            f"[{risk_color}]{metrics['distancePercent']:.2f}%[/{risk_color}]",
            f"{_signed(metrics['pnl'])} ({metrics['pnlPercent']:+.2f}%)",
            f"[{status_color}]{position.status}[/{status_color}]",
        )

    return table


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Print JSON records.")
def options(as_json: bool) -> None:
    """List all tracked options.

    \b
    Examples:
      sensextracker options
      sensextracker options --json
    """
    try:
        tracker = _get_tracker()
    except TrackerError as e:
        _fail("Failed to load options", e)

    positions = tracker.list()

    if as_json:
        click.echo(json.dumps([_position_record(p) for p in positions], indent=2))
        return

    if not positions:
        console.print("[dim]No options tracked. Add one with 'sensextracker track'.[/dim]")
        return

    console.print(build_positions_table(positions))
    console.print(_stats_line(tracker.stats()))


@click.command()
def stats() -> None:
    """Show counts of tracked, active, stoploss-hit and exited options."""
    try:
        tracker = _get_tracker()
    except TrackerError as e:
        _fail("Failed to load options", e)

    console.print(_stats_line(tracker.stats()))


@click.command()
@click.option("--confirm", is_flag=True, help="Skip confirmation prompt.")
def reset(confirm: bool) -> None:
    """Delete every tracked option."""
    try:
        tracker = _get_tracker()
        count = len(tracker.list())
        if not confirm and not click.confirm(f"Delete all {count} tracked options?"):
            console.print("[dim]Reset cancelled.[/dim]")
            return
        count = tracker.clear()
    except TrackerError as e:
        _fail("Failed to reset options", e)

    console.print(f"[green]Deleted {count} tracked options.[/green]")
