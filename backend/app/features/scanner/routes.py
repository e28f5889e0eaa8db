# backend/app/features/scanner/routes.py
"""FastAPI routes for the scanner API."""

import asyncio
import json
from typing import Any, AsyncGenerator, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, Query, Response
from sse_starlette.sse import EventSourceResponse

from backend.app.core import logs
from .models import ScanState, Surface
from .reporting import export_filename, port_results_to_csv, results_to_csv, results_to_json
from .schemas import (
    EndpointTestRequest,
    HttpScanStartRequest,
    PortScanStartRequest,
    ScanActionResponse,
    ScanStartResponse,
    ScanStatusResponse,
    SelectProjectRequest,
)
from .services import ScannerService, get_scanner_service

router = APIRouter(prefix="/scanner", tags=["scanner"])

STREAM_INTERVAL_SECONDS = 0.5


@router.post("/projects/select")
async def select_project(
    request: SelectProjectRequest,
    service: ScannerService = Depends(get_scanner_service),
) -> Dict[str, str]:
    """Remember the project later scans default to."""
    service.select_project(request.project_id)
    return {"project_id": request.project_id}


@router.post("/http/start", response_model=ScanStartResponse)
async def start_http_scan(
    request: HttpScanStartRequest,
    service: ScannerService = Depends(get_scanner_service),
) -> ScanStartResponse:
    """
    Start testing every endpoint of a project.

    Returns immediately; follow progress via /http/status or /http/stream.
    """
    logs.info("HTTP scan request received", "api", {"project_id": request.project_id})
    service.start_http_scan(request.to_config())
    return ScanStartResponse(surface=Surface.HTTP.value, total=service.http.total)


@router.post("/ports/start", response_model=ScanStartResponse)
async def start_port_scan(
    request: PortScanStartRequest,
    service: ScannerService = Depends(get_scanner_service),
) -> ScanStartResponse:
    """Start probing ports on a host."""
    logs.info(
        "Port scan request received",
        "api",
        {"target": request.target, "scan_type": request.scan_type},
    )
    service.start_port_scan(request.to_config())
    return ScanStartResponse(surface=Surface.PORTS.value, total=service.ports.total)


@router.post("/http/endpoints/{endpoint_id}/test")
async def run_endpoint_test(
    endpoint_id: str,
    request: Optional[EndpointTestRequest] = None,
    service: ScannerService = Depends(get_scanner_service),
) -> Dict[str, Any]:
    """
    Test one endpoint and append the result to the HTTP result log.

    Waits for the response; rejected with 409 while an HTTP scan runs.
    """
    logs.info("Endpoint test request received", "api", {"endpoint_id": endpoint_id})
    test = request.to_test_config() if request is not None else None
    result = await service.test_endpoint(endpoint_id, test)
    return result.model_dump(mode="json")


@router.post("/{surface}/pause", response_model=ScanActionResponse)
async def pause_scan(
    surface: Surface, service: ScannerService = Depends(get_scanner_service)
) -> ScanActionResponse:
    controller = service.controller(surface)
    accepted = controller.pause()
    return ScanActionResponse(accepted=accepted, status=controller.snapshot())


@router.post("/{surface}/resume", response_model=ScanActionResponse)
async def resume_scan(
    surface: Surface, service: ScannerService = Depends(get_scanner_service)
) -> ScanActionResponse:
    controller = service.controller(surface)
    accepted = controller.resume()
    return ScanActionResponse(accepted=accepted, status=controller.snapshot())


@router.post("/{surface}/stop", response_model=ScanActionResponse)
async def stop_scan(
    surface: Surface, service: ScannerService = Depends(get_scanner_service)
) -> ScanActionResponse:
    controller = service.controller(surface)
    accepted = controller.stop()
    return ScanActionResponse(accepted=accepted, status=controller.snapshot())


@router.post("/{surface}/clear", response_model=ScanActionResponse)
async def clear_results(
    surface: Surface, service: ScannerService = Depends(get_scanner_service)
) -> ScanActionResponse:
    """Empty the surface's result log. Rejected with 409 while a scan runs."""
    controller = service.controller(surface)
    controller.clear_results()
    return ScanActionResponse(accepted=True, status=controller.snapshot())


@router.get("/{surface}/status", response_model=ScanStatusResponse)
async def get_scan_status(
    surface: Surface, service: ScannerService = Depends(get_scanner_service)
) -> ScanStatusResponse:
    """Get the current state and progress of a surface."""
    controller = service.controller(surface)
    return ScanStatusResponse(status=controller.snapshot(), last_summary=controller.last_summary)


@router.get("/{surface}/results")
async def get_scan_results(
    surface: Surface,
    project_id: Optional[str] = Query(default=None),
    service: ScannerService = Depends(get_scanner_service),
) -> List[Dict[str, Any]]:
    """Get the persisted result log, optionally for one project."""
    return [r.model_dump(mode="json") for r in service.get_results(surface, project_id)]


@router.get("/{surface}/stream")
async def stream_scan(
    surface: Surface, service: ScannerService = Depends(get_scanner_service)
) -> EventSourceResponse:
    """
    Stream scan progress via Server-Sent Events.

    Events:
    - type: "progress" - State/progress snapshot whenever it changes
    - type: "summary" - Completion summary once the surface is idle again
    """
    controller = service.controller(surface)

    async def event_generator() -> AsyncGenerator[dict, None]:
        """Generate SSE events for scan progress."""
        last_sent = None

        while True:
            snapshot = controller.snapshot()
            payload = snapshot.model_dump(mode="json")
            if payload != last_sent:
                yield {
                    "event": "message",
                    "data": json.dumps({"type": "progress", "data": payload}),
                }
                last_sent = payload

            if snapshot.state is ScanState.IDLE and not controller.is_active:
                summary = controller.last_summary
                if summary is not None:
                    yield {
                        "event": "message",
                        "data": json.dumps({"type": "summary", "data": summary.model_dump(mode="json")}),
                    }
                break

            await asyncio.sleep(STREAM_INTERVAL_SECONDS)

    return EventSourceResponse(event_generator())


@router.get("/{surface}/export")
async def export_results(
    surface: Surface,
    format: Literal["csv", "json"] = Query(default="csv"),
    project_id: Optional[str] = Query(default=None),
    service: ScannerService = Depends(get_scanner_service),
) -> Response:
    """Download the result log as CSV or JSON."""
    results = service.get_results(surface, project_id)
    prefix = "vulnerability-test-results" if surface is Surface.HTTP else "port-scan-results"

    if format == "json":
        content = results_to_json(results)
        media_type = "application/json"
    else:
        content = results_to_csv(results) if surface is Surface.HTTP else port_results_to_csv(results)
        media_type = "text/csv"

    filename = export_filename(prefix, format)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
