# backend/app/features/scanner/reporting/console.py
"""Rich terminal UI for CLI output."""

from typing import List

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from backend.app.core.config import settings
from ..models import (
    PortProbeResult,
    PortStatus,
    ScanProgress,
    ScanResult,
    ScanSummary,
    Surface,
    Verdict,
)

# Global console instance
console = Console()

# Sorting orders
STATUS_ORDER = {Verdict.FAIL: 0, Verdict.ERROR: 1, Verdict.PASS: 2}
PORT_ORDER = {PortStatus.OPEN: 0, PortStatus.FILTERED: 1, PortStatus.CLOSED: 2}


def show_progress(message: str) -> None:
    """Show a progress message in the terminal."""
    text = escape(message)
    # Color code based on message type - emphasize failures
    if "[FAIL]" in message or "[ERROR]" in message or "[WARN]" in message:
        console.print(f"[bold red]{text}[/bold red]")
    elif "[PASS]" in message or "[OPEN]" in message:
        console.print(f"[dim green]{text}[/dim green]")
    elif "[PAUSED]" in message or "[STOPPED]" in message:
        console.print(f"[yellow]{text}[/yellow]")
    else:
        console.print(f"[cyan]{text}[/cyan]")


def describe_result(result) -> str:
    """One progress line for a freshly recorded result."""
    if isinstance(result, PortProbeResult):
        tag = result.status.value.upper()
        banner = f" - {result.banner}" if result.banner else ""
        return f"[{tag}] {result.host}:{result.port} ({result.service}){banner}"
    tag = result.status.value.upper()
    issues = f", {len(result.vulnerabilities)} finding(s)" if result.vulnerabilities else ""
    return f"[{tag}] {result.method} {result.endpoint_name} ({result.response_time_ms}ms{issues})"


def describe_progress(progress: ScanProgress) -> str:
    current = f" - {progress.current_item_id}" if progress.current_item_id else ""
    return (
        f"{progress.surface.value} scan {progress.state.value}: "
        f"{progress.cursor_index}/{progress.total} ({progress.progress}%){current}"
    )


def show_http_results(results: List[ScanResult]) -> None:
    """Display HTTP results, failures first."""
    if not results:
        console.print("[dim]No test results yet.[/dim]")
        return

    ordered = sorted(results, key=lambda r: STATUS_ORDER.get(r.status, 3))
    issue_count = sum(1 for r in results if r.status != Verdict.PASS)
    title_style = "bold red" if issue_count else "bold cyan"
    title_suffix = f" ({issue_count} issues)" if issue_count else ""

    table = Table(
        title=f"Endpoint Results{title_suffix}",
        show_header=True,
        header_style="bold cyan",
        title_style=title_style,
    )
    table.add_column("Endpoint", style="cyan", width=24)
    table.add_column("Method", width=7)
    table.add_column("Status", justify="center", width=8)
    table.add_column("Code", justify="right", width=5)
    table.add_column("Time", justify="right", width=8)
    table.add_column("Findings")

    for result in ordered:
        if result.status == Verdict.PASS:
            status_display = "[dim green]PASS[/dim green]"
        elif result.status == Verdict.FAIL:
            status_display = "[bold red]FAIL[/bold red]"
        else:
            status_display = "[yellow]ERROR[/yellow]"

        table.add_row(
            result.endpoint_name,
            result.method,
            status_display,
            str(result.status_code),
            f"{result.response_time_ms}ms",
            "\n".join(result.vulnerabilities) or "[dim]-[/dim]",
        )

    console.print()
    console.print(table)


def show_port_results(results: List[PortProbeResult]) -> None:
    """Display port results, open ports first."""
    if not results:
        console.print("[dim]No port results yet.[/dim]")
        return

    ordered = sorted(results, key=lambda r: (PORT_ORDER.get(r.status, 3), r.port))
    open_count = sum(1 for r in results if r.status == PortStatus.OPEN)

    table = Table(
        title=f"Port Results ({open_count} open)",
        show_header=True,
        header_style="bold cyan",
        title_style="bold cyan",
    )
    table.add_column("Host", style="cyan")
    table.add_column("Port", justify="right", width=6)
    table.add_column("Status", justify="center", width=9)
    table.add_column("Service", width=12)
    table.add_column("Banner")

    status_styles = {
        PortStatus.OPEN: "bold green",
        PortStatus.FILTERED: "yellow",
        PortStatus.CLOSED: "dim",
    }
    for result in ordered:
        style = status_styles.get(result.status, "white")
        table.add_row(
            result.host,
            str(result.port),
            f"[{style}]{result.status.value}[/{style}]",
            result.service,
            result.banner or "[dim]-[/dim]",
        )

    console.print()
    console.print(table)


def show_summary(summary: ScanSummary) -> None:
    """Show the final scan summary panel."""
    if summary.stopped:
        border, title = "yellow", "[bold yellow]SCAN STOPPED[/bold yellow]"
    elif summary.issues and summary.surface is Surface.HTTP:
        border, title = "red", "[bold red]ISSUES FOUND[/bold red]"
    else:
        border, title = "green", "[bold green]SCAN COMPLETE[/bold green]"

    content = (
        f"{summary.message}\n\n"
        f"Scanned: {summary.total}\n"
        f"Passed/Open: {summary.passed}\n"
        f"Issues/Closed: {summary.issues}"
    )
    console.print()
    console.print(Panel(content, border_style=border, title=title, title_align="left"))


def show_error(message: str) -> None:
    """Display an error message without stack trace."""
    console.print(f"\n[bold red][ERROR][/bold red] {escape(message)}\n")


def show_info() -> None:
    """Print the active configuration."""
    console.print()
    console.print("[bold]Configuration[/bold]")
    console.print()
    console.print(f"  App Name:       {settings.APP_NAME}")
    console.print(f"  Version:        {settings.APP_VERSION}")
    console.print(f"  Environment:    {settings.ENVIRONMENT}")
    console.print(f"  Data dir:       {settings.DATA_DIR}")
    console.print(f"  HTTP timeout:   {settings.HTTP_PROBE_TIMEOUT}s")
    console.print(f"  Port timeout:   {settings.PORT_PROBE_TIMEOUT}s")
    console.print()
