"""CLI handling for wlclipsync.

This module provides the command-line interface for wlclipsync: argument
parsing via click, logging configuration, and starting the supervisor that
keeps the Wayland and X11 clipboards in sync.

Usage:
    wlclipsync [--verbose] [--poll-interval SECONDS]
"""

import sys

import click

from wlclipsync.main_logging import configure_logging
from wlclipsync.sync_constants import PASS_INTERVAL


@click.command()
@click.option(
    "--poll-interval",
    type=click.FloatRange(min=0, min_open=True),
    default=PASS_INTERVAL,
    show_default=True,
    help="Seconds between clipboard polling passes",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Enable DEBUG-level logging",
)
def main(poll_interval: float, verbose: bool) -> None:
    """Keep the Wayland and X11 clipboards of this session in sync."""
    configure_logging(verbose)

    from wlclipsync.discovery import DiscoveryError
    from wlclipsync.supervisor import run_supervisor

    try:
        run_supervisor(poll_interval)
    except DiscoveryError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
