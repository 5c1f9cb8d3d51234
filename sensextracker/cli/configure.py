"""Configuration command for the Sensex Options Tracker CLI."""

import click
from rich.console import Console
from rich.panel import Panel

console = Console()


@click.command()
@click.option("--api-key", default="", help="RapidAPI key for live Sensex quotes.")
@click.option("--interval", default=10, type=int, show_default=True, help="Market refresh interval in seconds.")
@click.option("--force", is_flag=True, help="Overwrite an existing config file.")
def init(api_key: str, interval: int, force: bool) -> None:
    """Create the configuration file.

    \b
    Examples:
      sensextracker init
      sensextracker init --api-key XXXX --interval 5
    """
    import copy

    from sensextracker.config import DEFAULT_CONFIG, get_config_path, get_db_path, save_config

    config_path = get_config_path()
    if config_path.exists() and not force:
        console.print(f"[yellow]Config already exists at {config_path}.[/yellow] Use --force to overwrite.")
        return

    config = copy.deepcopy(DEFAULT_CONFIG)
    config["market"]["refresh_interval"] = interval
    config["rapidapi"]["api_key"] = api_key
    config["storage"]["db_path"] = str(get_db_path(config))

    path = save_config(config)
    console.print(Panel(
        f"[green]Configuration written.[/green]\n\n"
        f"Config:   {path}\n"
        f"Database: {config['storage']['db_path']}",
        title="[bold green]Ready[/bold green]",
        border_style="green",
    ))
