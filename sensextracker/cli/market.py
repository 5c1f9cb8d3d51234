"""Market data commands for the Sensex Options Tracker CLI.

Shows the Sensex snapshot and a live ticker that refreshes on its own
cadence while the tracked options are re-read from the store.
"""

import json

import click
from rich.console import Console, Group
from rich.panel import Panel

from sensextracker.errors import TrackerError
from sensextracker.models import MarketSnapshot

console = Console()


def build_feed(config: dict):
    """Build the market data feed from configuration."""
    from sensextracker.market.feed import MarketDataFeed
    from sensextracker.sources import SOURCE_REGISTRY, RapidApiSource

    market_config = config.get("market", {})
    sources = []
    for name in market_config.get("sources", []):
        source_cls = SOURCE_REGISTRY.get(str(name).lower())
        if source_cls is None:
            raise click.ClickException(f"Unknown market data source '{name}'")
        if source_cls is RapidApiSource:
            sources.append(RapidApiSource(api_key=config.get("rapidapi", {}).get("api_key") or None))
        else:
            sources.append(source_cls())

    return MarketDataFeed(
        sources,
        interval=float(market_config.get("refresh_interval", 10)),
        source_timeout=float(market_config.get("source_timeout", 5)),
    )


def render_ticker(snapshot: MarketSnapshot) -> Panel:
    """Render the Sensex ticker panel."""
    if snapshot.change_percent >= 0:
        change_color, arrow = "green", "▲"
    else:
        change_color, arrow = "red", "▼"

    if snapshot.options_active:
        status = "[green]OPTIONS ▲ ACTIVE[/green]"
    else:
        status = "[red]OPTIONS ● CLOSED[/red]"

    text = (
        f"[{change_color}]SENSEX {arrow} {snapshot.index_level:,.0f}[/{change_color}]  "
        f"[{change_color}]{snapshot.change:+,.2f} ({snapshot.change_percent:+.2f}%)[/{change_color}]\n"
        f"VOLATILITY ▲ {snapshot.volatility:.2f}%    {status}\n"
        f"[dim]Market {snapshot.market_status} | Source: {snapshot.source} | "
        f"Updated {snapshot.last_update:%H:%M:%S}[/dim]"
    )
    if snapshot.error:
        text += f"\n[red]Last error: {snapshot.error}[/red]"

    return Panel(text, title="[bold]Live Market[/bold]", border_style=change_color)


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Print the snapshot as JSON.")
def market(as_json: bool) -> None:
    """Fetch and show the current Sensex snapshot.

    Tries each configured data source in order and falls back to
    simulated data when none responds.

    \b
    Examples:
      sensextracker market
      sensextracker market --json
    """
    from sensextracker.config import load_config
    from sensextracker.market.hours import get_market_status

    feed = build_feed(load_config())
    try:
        snapshot = feed.refresh()
    finally:
        feed.close()

    if as_json:
        click.echo(json.dumps(snapshot.to_record(), indent=2))
        return

    console.print(render_ticker(snapshot))
    console.print(f"[dim]{get_market_status()['message']}[/dim]")


@click.command()
@click.option(
    "-r", "--refresh",
    default=5,
    type=int,
    help="Screen refresh interval in seconds (default: 5)",
)
def watch(refresh: int) -> None:
    """Watch the live Sensex ticker and tracked options.

    The market snapshot refreshes in the background on the configured
    interval; tracked options are reloaded every screen refresh.

    Press Ctrl+C to stop watching.

    \b
    Examples:
      sensextracker watch
      sensextracker watch --refresh 7
    """
    import time

    from rich.live import Live

    from sensextracker.cli.positions import _fail, _get_tracker, build_positions_table
    from sensextracker.config import load_config

    feed = build_feed(load_config())

    def generate_view() -> Group:
        positions = _get_tracker().list()
        parts = [render_ticker(feed.read())]
        if positions:
            parts.append(build_positions_table(positions))
        else:
            parts.append("[dim]No options tracked.[/dim]")
        return Group(*parts)

    console.print(f"[dim]Refreshing every {refresh}s (Ctrl+C to stop)...[/dim]\n")

    try:
        with feed, Live(generate_view(), refresh_per_second=1, console=console) as live_display:
            while True:
                time.sleep(refresh)
                live_display.update(generate_view())
    except TrackerError as e:
        _fail("Failed to load options", e)
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped watching.[/dim]")
