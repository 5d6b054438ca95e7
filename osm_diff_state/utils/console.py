"""
Console Output Manager.
Renders human-readable result details with rich, on stderr only so that
stdout carries nothing but the state file URL.
"""
from rich import box
from rich.console import Console
from rich.table import Table

from osm_diff_state.core.locator import LocateResult, Outcome
from osm_diff_state.utils.timestamps import format_epoch

console = Console(stderr=True)


def build_result_table(result: LocateResult, period: str) -> Table:
    """
    Builds a summary table for a located state file.

    Args:
        result: Result returned by SequenceLocator.locate_detailed().
        period: Replication period that was searched.

    Returns:
        A Rich Table.
    """
    table = Table(title="Replication State", box=box.ROUNDED, show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Period", period)
    table.add_row("Directory", result.base_url)
    table.add_row("Requested", format_epoch(result.target_epoch))
    table.add_row("Sequence", str(result.sequence))
    table.add_row("State time", format_epoch(result.timestamp) if result.timestamp is not None else "-")
    table.add_row("Probes", str(result.probes))
    if result.outcome is Outcome.FUTURE_APPROXIMATION:
        table.add_row("Outcome", "[yellow]latest available (requested time is in the future)[/yellow]")
    else:
        table.add_row("Outcome", "[green]exact[/green]")
    table.add_row("URL", result.url)
    return table


def print_result(result: LocateResult, period: str) -> None:
    """Prints the result summary table to stderr."""
    console.print(build_result_table(result, period))
