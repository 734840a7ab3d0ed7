"""Typer CLI root application."""

import typer

from address_timeline.core.config import get_settings
from address_timeline.core.logging import setup_logging

app = typer.Typer(name="address-timeline", help="Address assignment timeline operator CLI")


@app.callback()
def _main_callback() -> None:
    """Initialize logging for all CLI commands."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir)


def _register_subcommands() -> None:
    """Register all CLI subcommand groups."""
    from address_timeline.cli.db_cmd import db_app
    from address_timeline.cli.lookup_cmd import history, lookup

    app.add_typer(db_app, name="db", help="Database migration commands")
    app.command("lookup")(lookup)
    app.command("history")(history)


_register_subcommands()
