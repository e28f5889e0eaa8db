# backend/app/cli.py
"""Typer CLI application for the Endpoint Security Scanner."""

import asyncio
import signal
from pathlib import Path
from typing import Optional

import typer
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from backend.app.core import AppException, ConfigurationError, configure_logging, settings
from backend.app.features.scanner.controller import ScanController
from backend.app.features.scanner.models import (
    HttpScanConfig,
    PortScanConfig,
    ScanProgress,
    ScanState,
    ScanSummary,
    Surface,
    TestConfig,
    Verdict,
)
from backend.app.features.scanner.reporting import (
    console,
    describe_progress,
    describe_result,
    endpoints_from_csv,
    endpoints_from_json,
    endpoints_to_csv,
    endpoints_to_json,
    export_filename,
    port_results_to_csv,
    results_from_json,
    results_to_csv,
    results_to_json,
    show_error,
    show_http_results,
    show_info,
    show_port_results,
    show_progress,
    show_summary,
)
from backend.app.features.scanner.services import ScannerService

app = typer.Typer(
    name="scanner",
    help="Endpoint Security Scanner - test project endpoints and probe open ports",
    add_completion=False,
    no_args_is_help=True,
)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ERROR)",
    ),
) -> None:
    configure_logging(log_level)


@app.command()
def scan(
    project: str = typer.Argument(..., help="Project id whose endpoints are tested"),
    check_status: bool = typer.Option(
        False,
        "--check-status",
        help="Require status 200 for endpoints without an expected status",
    ),
    check_content: bool = typer.Option(
        False,
        "--check-content",
        help="Require the expected content in each response body",
    ),
    expected_content: str = typer.Option(
        "",
        "--expected-content",
        "-e",
        help="Content required with --check-content (defaults to each endpoint's own)",
    ),
) -> None:
    """
    Test every endpoint of a project, one at a time.

    Press Ctrl+C to stop after the current endpoint; results so far are kept.

    Example usage:

        scanner scan 3f2a9c1b7d4e

        scanner scan 3f2a9c1b7d4e --check-status --check-content -e '"ok"'
    """
    config = HttpScanConfig(
        project_id=project,
        test=TestConfig(
            check_status=check_status,
            check_content=check_content,
            expected_content=expected_content,
        ),
    )
    summary = _run_surface(Surface.HTTP, config)
    if summary is not None and summary.issues:
        raise typer.Exit(1)


@app.command()
def ports(
    target: Optional[str] = typer.Argument(
        None,
        help="Host or IP to probe (defaults to the project's IP address)",
    ),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Project the results belong to"),
    scan_type: str = typer.Option(
        "common",
        "--type",
        "-t",
        help="Port selection: common, range or custom",
    ),
    port_range: str = typer.Option("1-1000", "--range", "-r", help="Range for --type range"),
    custom_ports: str = typer.Option("", "--ports", help="Comma-separated ports for --type custom"),
) -> None:
    """
    Probe TCP ports on a host, one at a time.

    Example usage:

        scanner ports 10.0.0.5

        scanner ports 10.0.0.5 --type range --range 8000-8100

        scanner ports --project 3f2a9c1b7d4e --type custom --ports 22,80,443
    """
    if scan_type not in ("common", "range", "custom"):
        show_error(f"Unknown scan type '{scan_type}'. Use common, range or custom.")
        raise typer.Exit(1)

    config = PortScanConfig(
        target=target or "",
        project_id=project,
        scan_type=scan_type,
        port_range=port_range,
        custom_ports=custom_ports,
    )
    _run_surface(Surface.PORTS, config)


@app.command("test-endpoint")
def check_endpoint(
    endpoint_id: str = typer.Argument(..., help="Id of the endpoint to test"),
    check_status: bool = typer.Option(
        False,
        "--check-status",
        help="Require status 200 when the endpoint sets no expected status",
    ),
    check_content: bool = typer.Option(
        False,
        "--check-content",
        help="Require the expected content in the response body",
    ),
    expected_content: str = typer.Option(
        "",
        "--expected-content",
        "-e",
        help="Content required with --check-content (defaults to the endpoint's own)",
    ),
) -> None:
    """
    Test a single endpoint and add the result to the result log.

    Exits with status 1 when the endpoint fails or errors.

    Example usage:

        scanner test-endpoint csv_1a2b3c4d_0 --check-status
    """
    service = ScannerService()
    test = TestConfig(
        check_status=check_status,
        check_content=check_content,
        expected_content=expected_content,
    )
    try:
        result = asyncio.run(service.test_endpoint(endpoint_id, test))
    except AppException as e:
        show_error(e.message)
        raise typer.Exit(1)

    show_progress(describe_result(result))
    if result.status == Verdict.PASS:
        console.print("[green]Endpoint test passed![/green]")
        return
    show_error(f"Issues found: {', '.join(result.vulnerabilities)}")
    raise typer.Exit(1)


def _run_surface(surface: Surface, config) -> Optional[ScanSummary]:
    try:
        summary = asyncio.run(_run_scan(surface, config))
    except AppException as e:
        show_error(e.message)
        raise typer.Exit(1)

    if summary is not None:
        show_summary(summary)
    return summary


async def _run_scan(surface: Surface, config) -> Optional[ScanSummary]:
    """Run one scan with a progress bar; Ctrl+C requests a cooperative stop."""
    service = ScannerService()
    controller = service.controller(surface)

    console.print()
    console.print(f"[bold cyan]{settings.APP_NAME}[/bold cyan] v{settings.APP_VERSION}")
    console.print()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        console=console,
        transient=True,
    ) as progress:
        task_id = progress.add_task("Preparing scan...", total=100)
        printed = 0
        stop_reported = False

        def on_progress(snapshot: ScanProgress) -> None:
            nonlocal printed, stop_reported
            results = controller.results
            for result in results[printed:]:
                show_progress(describe_result(result))
            printed = len(results)

            label = snapshot.current_item_id or snapshot.state.value
            progress.update(
                task_id,
                completed=snapshot.progress,
                description=f"{snapshot.cursor_index}/{snapshot.total} {label}",
            )
            if snapshot.state is ScanState.STOPPED and not stop_reported:
                stop_reported = True
                show_progress(f"[STOPPED] {describe_progress(snapshot)}")

        unsubscribe = controller.subscribe(on_progress)
        _install_stop_handler(controller)
        try:
            if surface is Surface.HTTP:
                service.start_http_scan(config)
            else:
                service.start_port_scan(config)
            summary = await controller.wait()
        finally:
            unsubscribe()
            _remove_stop_handler()

    if surface is Surface.HTTP:
        show_http_results(controller.results)
    else:
        show_port_results(controller.results)
    return summary


def _install_stop_handler(controller: ScanController) -> None:
    try:
        asyncio.get_running_loop().add_signal_handler(signal.SIGINT, controller.stop)
    except NotImplementedError:
        # Event loops without signal support fall back to KeyboardInterrupt
        pass


def _remove_stop_handler() -> None:
    try:
        asyncio.get_running_loop().remove_signal_handler(signal.SIGINT)
    except NotImplementedError:
        pass


@app.command()
def results(
    surface: Surface = typer.Argument(Surface.HTTP, help="Result log to show: http or ports"),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Only this project's results"),
) -> None:
    """Show the persisted result log."""
    service = ScannerService()
    records = service.get_results(surface, project)
    if surface is Surface.HTTP:
        show_http_results(records)
    else:
        show_port_results(records)


@app.command()
def export(
    surface: Surface = typer.Argument(Surface.HTTP, help="Result log to export: http or ports"),
    format: str = typer.Option("csv", "--format", "-f", help="csv or json"),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output file (defaults to a dated file name in the current directory)",
    ),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Only this project's results"),
) -> None:
    """Export the result log as CSV or JSON."""
    if format not in ("csv", "json"):
        show_error("Format must be csv or json")
        raise typer.Exit(1)

    service = ScannerService()
    records = service.get_results(surface, project)
    if not records:
        show_error("No results to export")
        raise typer.Exit(1)

    if format == "json":
        content = results_to_json(records)
    elif surface is Surface.HTTP:
        content = results_to_csv(records)
    else:
        content = port_results_to_csv(records)

    prefix = "vulnerability-test-results" if surface is Surface.HTTP else "port-scan-results"
    path = output or Path(export_filename(prefix, format))
    path.write_text(content, encoding="utf-8")
    console.print(f"[dim]Exported {len(records)} result(s) to: {path}[/dim]")


@app.command("import-endpoints")
def import_endpoints(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON or CSV file"),
    project: str = typer.Option(..., "--project", "-p", help="Project the endpoints belong to"),
) -> None:
    """
    Import endpoints from a JSON array or a CSV file.

    CSV headers are matched loosely: "Endpoint URL", "HTTP Verb" and
    "Notes" map to url, method and description.
    """
    service = ScannerService()
    try:
        service.projects.require_project(project)
        text = file.read_text(encoding="utf-8")
        if file.suffix.lower() == ".csv":
            endpoints = endpoints_from_csv(text, project)
        else:
            endpoints = endpoints_from_json(text, project)
        if not endpoints:
            raise ConfigurationError("No endpoints found in file")
    except AppException as e:
        show_error(e.message)
        raise typer.Exit(1)

    count = service.projects.add_endpoints(endpoints)
    service.projects.touch_project(project)
    console.print(f"[green]Imported {count} endpoint(s)[/green]")


@app.command("import-results")
def import_results(
    file: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        help="JSON file written by 'export http --format json'",
    ),
) -> None:
    """Merge exported HTTP results into the result log. Results already present are skipped."""
    service = ScannerService()
    try:
        records = results_from_json(file.read_text(encoding="utf-8"))
    except AppException as e:
        show_error(e.message)
        raise typer.Exit(1)

    added = service.http.sink.extend(records)
    skipped = len(records) - added
    console.print(f"[green]Imported {added} result(s)[/green] [dim]({skipped} already present)[/dim]")


@app.command("export-endpoints")
def export_endpoints(
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Only this project's endpoints"),
    format: str = typer.Option("csv", "--format", "-f", help="csv or json"),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output file (defaults to a dated file name in the current directory)",
    ),
) -> None:
    """Export endpoints grouped by category as CSV or JSON."""
    if format not in ("csv", "json"):
        show_error("Format must be csv or json")
        raise typer.Exit(1)

    service = ScannerService()
    endpoints = service.projects.list_endpoints()
    if project:
        endpoints = [e for e in endpoints if e.project_id == project]
    if not endpoints:
        show_error("No endpoints to export")
        raise typer.Exit(1)

    content = endpoints_to_json(endpoints) if format == "json" else endpoints_to_csv(endpoints)
    path = output or Path(export_filename("endpoints-by-category", format))
    path.write_text(content, encoding="utf-8")
    console.print(f"[dim]Exported {len(endpoints)} endpoint(s) to: {path}[/dim]")


@app.command("add-project")
def add_project(
    name: str = typer.Argument(..., help="Project name"),
    ip: Optional[str] = typer.Option(
        None,
        "--ip",
        help="Host that replaces each endpoint URL's host during scans",
    ),
    category: str = typer.Option("Web Application", "--category", "-c"),
    description: str = typer.Option("", "--description", "-d"),
) -> None:
    """Create a project."""
    service = ScannerService()
    project = service.projects.add_project(name, ip_address=ip, category=category, description=description)
    console.print(f"[green]Created project[/green] {project.name} [dim]({project.id})[/dim]")


@app.command("delete-project")
def delete_project(
    project: str = typer.Argument(..., help="Id of the project to delete"),
) -> None:
    """Delete a project. Its endpoints and results are kept."""
    service = ScannerService()
    if not service.projects.delete_project(project):
        show_error(f"Project '{project}' not found")
        raise typer.Exit(1)
    console.print(f"[green]Deleted project[/green] {project}")


@app.command()
def projects() -> None:
    """List projects and their endpoint counts."""
    service = ScannerService()
    all_projects = service.projects.list_projects()
    if not all_projects:
        console.print("[dim]No projects yet. Create one with 'add-project'.[/dim]")
        return

    endpoints = service.projects.list_endpoints()
    table = Table(title="Projects", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("IP Address")
    table.add_column("Category")
    table.add_column("Endpoints", justify="right")
    for project in all_projects:
        count = sum(1 for e in endpoints if e.project_id == project.id)
        table.add_row(project.id, project.name, project.ip_address or "-", project.category, str(count))
    console.print(table)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8000, "--port"),
    reload: bool = typer.Option(False, "--reload"),
) -> None:
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("backend.app.main:app", host=host, port=port, reload=reload)


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"{settings.APP_NAME} v{settings.APP_VERSION}")


@app.command()
def info() -> None:
    """Show configuration information."""
    show_info()


if __name__ == "__main__":
    app()
