"""Main CLI entry point for the Sensex Options Tracker.

Commands are loaded lazily so that quick commands such as ``stats`` do
not pay for importing the HTTP stack.
"""

import importlib
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

# Log records go to stderr so JSON output on stdout stays parseable
log_console = Console(stderr=True)


class LazyGroup(click.Group):
    """A click Group that imports command modules on first use."""

    def __init__(self, *args, lazy_subcommands: dict[str, str] | None = None, **kwargs):
        """Initialize the lazy group.

        Args:
            lazy_subcommands: Mapping of command names to module paths.
        """
        super().__init__(*args, **kwargs)
        self._lazy_subcommands = lazy_subcommands or {}

    def list_commands(self, ctx: click.Context) -> list[str]:
        return sorted(set(super().list_commands(ctx)) | set(self._lazy_subcommands))

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        if cmd_name in self.commands:
            return self.commands[cmd_name]
        if cmd_name not in self._lazy_subcommands:
            return None

        module_path = self._lazy_subcommands[cmd_name]
        module = importlib.import_module(module_path)

        for attr_name in dir(module):
            attr = getattr(module, attr_name)
            if isinstance(attr, click.Command) and attr.name == cmd_name:
                self.add_command(attr)
                return attr

        raise click.ClickException(f"Could not find command '{cmd_name}' in {module_path}")


LAZY_SUBCOMMANDS = {
    # Position tracking
    "track": "sensextracker.cli.positions",
    "price": "sensextracker.cli.positions",
    "exit": "sensextracker.cli.positions",
    "remove": "sensextracker.cli.positions",
    "show": "sensextracker.cli.positions",
    "options": "sensextracker.cli.positions",
    "stats": "sensextracker.cli.positions",
    "reset": "sensextracker.cli.positions",
    # Market data
    "market": "sensextracker.cli.market",
    "watch": "sensextracker.cli.market",
    # Setup
    "init": "sensextracker.cli.configure",
}


CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


def setup_logging(verbose: bool) -> None:
    """Route log records through the rich console."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=log_console, show_path=False)],
        force=True,
    )


@click.group(cls=LazyGroup, lazy_subcommands=LAZY_SUBCOMMANDS, context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="sensextracker")
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Sensex Options Tracker - trailing stop-loss for Sensex options.

    Track option premiums, let the stop-loss trail the highest price
    seen, and watch the live Sensex snapshot.

    \b
    Quick Start:
      sensextracker track CALL 75500 250 -q 10 -t 5
      sensextracker price <ID> 275
      sensextracker options
      sensextracker watch
    """
    setup_logging(verbose)
    ctx.ensure_object(dict)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
