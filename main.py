#!/usr/bin/env python3
"""
OpenStreetMap Replication State Locator - CLI Interface.

Usage:
    python main.py locate day 2024-05-16
    python main.py locate hour "2024-05-16T12:00" https://planet.osm.org/replication/
    python main.py locate minute "2024-05-16 12:00:00" https://custom.server/minute-diffs/ --no-osm-like
    python main.py resolve hour https://my-mirror.com/planet/hour/000/001/234.state.txt
    python main.py latest day

The state file URL is the only thing written to stdout; logs and tables go
to stderr.
"""

import sys
from pathlib import Path

import click
from loguru import logger

sys.path.insert(0, str(Path(__file__).parent))

from osm_diff_state import __version__
from osm_diff_state.config.global_config import LocatorConfig, load_config
from osm_diff_state.constants import VALID_PERIODS
from osm_diff_state.core.locator import Outcome, SequenceLocator
from osm_diff_state.errors import LocatorError
from osm_diff_state.replication.sequence import sequence_url
from osm_diff_state.utils.console import console, print_result
from osm_diff_state.utils.timestamps import format_epoch, to_epoch
from osm_diff_state.utils.url_resolver import resolve_base_url, validate_base_url

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_FUTURE = 2
"""Requested time is after the newest state; the newest state URL was printed"""

LOG_LEVELS = {
    "debug": "DEBUG",
    "info": "INFO",
    "warn": "WARNING",
    "error": "ERROR",
    "fatal": "CRITICAL",
}

LOG_FORMAT = "<level>[{time:YYYY-MM-DD HH:mm:ss}] {level}: {message}</level>"


def setup_logging(level: str = "info") -> None:
    """
    Configures the logger to write to stderr.

    stdout is reserved for the resulting URL so that the tool can be used
    in pipelines.

    Args:
        level: One of debug, info, warn, error, fatal.
    """
    logger.remove()
    logger.add(sys.stderr, level=LOG_LEVELS[level], format=LOG_FORMAT)


def prepare(config_path: Path | None, log_level: str | None, verbose: bool) -> LocatorConfig:
    """
    Loads configuration and sets up logging for a command.

    Exits with status 1 if the configuration file is invalid.
    """
    try:
        config = load_config(config_path)
    except ValueError as e:
        setup_logging("error")
        logger.error(str(e))
        raise SystemExit(EXIT_ERROR) from None

    level = "debug" if verbose else (log_level or config.log_level)
    setup_logging(level.lower())
    return config


period_argument = click.argument("period", type=click.Choice(VALID_PERIODS, case_sensitive=False))
url_argument = click.argument("replication_url", required=False)
osm_like_option = click.option(
    "--osm-like/--no-osm-like",
    default=None,
    help="Server uses the planet.osm.org layout (<root>/<period>/). Default from config: true",
)
config_option = click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Configuration file (default: config/defaults.toml)",
)
log_level_option = click.option(
    "--log-level",
    type=click.Choice(list(LOG_LEVELS), case_sensitive=False),
    help="Log level (overrides config)",
)
verbose_option = click.option("-v", "--verbose", is_flag=True, help="Debug logging")


@click.group()
@click.version_option(version=__version__, prog_name="osm-diff-state")
def cli():
    """Find OpenStreetMap replication files for a specific timestamp."""
    pass


@cli.command()
@period_argument
@click.argument("timestamp")
@url_argument
@osm_like_option
@click.option("--details", is_flag=True, help="Print a summary table to stderr")
@click.option("--no-probe", is_flag=True, help="Skip HEAD checks of the directory and result")
@config_option
@log_level_option
@verbose_option
def locate(
    period: str,
    timestamp: str,
    replication_url: str | None,
    osm_like: bool | None,
    details: bool,
    no_probe: bool,
    config_path: Path | None,
    log_level: str | None,
    verbose: bool,
):
    """
    Print the URL of the latest state file at or before TIMESTAMP.

    TIMESTAMP is YYYY-MM-DD[THH[:MM[:SS]]][Z] in UTC. REPLICATION_URL may be
    the replication root, a period directory, a state.txt or a sequence
    state file. Exits with 2 when TIMESTAMP is after the newest state, in
    which case the newest state URL is printed.
    """
    config = prepare(config_path, log_level, verbose)
    period = period.lower()

    locator = SequenceLocator(config=config, probe=not no_probe)
    try:
        result = locator.locate_detailed(period, timestamp, replication_url, osm_like)
    except LocatorError as e:
        logger.error(str(e))
        raise SystemExit(EXIT_ERROR) from None

    if details:
        print_result(result, period)
    click.echo(result.url)

    if result.outcome is Outcome.FUTURE_APPROXIMATION:
        raise SystemExit(EXIT_FUTURE)


@cli.command()
@period_argument
@url_argument
@osm_like_option
@config_option
@log_level_option
@verbose_option
def resolve(
    period: str,
    replication_url: str | None,
    osm_like: bool | None,
    config_path: Path | None,
    log_level: str | None,
    verbose: bool,
):
    """Print the directory that holds state.txt for PERIOD (no network access)."""
    config = prepare(config_path, log_level, verbose)
    if osm_like is None:
        osm_like = config.osm_like

    try:
        base_url = validate_base_url(
            resolve_base_url(replication_url or config.default_url, period.lower(), osm_like)
        )
    except LocatorError as e:
        logger.error(str(e))
        raise SystemExit(EXIT_ERROR) from None

    click.echo(base_url)


@cli.command()
@period_argument
@url_argument
@osm_like_option
@config_option
@log_level_option
@verbose_option
def latest(
    period: str,
    replication_url: str | None,
    osm_like: bool | None,
    config_path: Path | None,
    log_level: str | None,
    verbose: bool,
):
    """Print the URL of the newest state file for PERIOD."""
    config = prepare(config_path, log_level, verbose)
    if osm_like is None:
        osm_like = config.osm_like

    locator = SequenceLocator(config=config)
    try:
        base_url = validate_base_url(
            resolve_base_url(replication_url or config.default_url, period.lower(), osm_like)
        )
        sequence, raw_timestamp = locator.read_latest_state(base_url)
        epoch = to_epoch(raw_timestamp)
        url = sequence_url(base_url, sequence)
    except LocatorError as e:
        logger.error(str(e))
        raise SystemExit(EXIT_ERROR) from None

    # Using rich to display info nicely
    from rich import box
    from rich.table import Table

    table = Table(title=f"Latest {period.lower()} state", box=box.ROUNDED)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Sequence", str(sequence))
    table.add_row("Timestamp", format_epoch(epoch))
    table.add_row("Directory", base_url)
    console.print(table)

    click.echo(url)


if __name__ == "__main__":
    cli()
