# backend/app/features/scanner/probes/port.py
"""Port probe: genuine TCP connect with a bounded timeout."""

import asyncio
import errno
import time
from typing import Awaitable, Callable, Optional, Tuple

from backend.app.core import logs, settings
from ..models import PortOutcome, PortScanConfig
from .base import Probe

Connector = Callable[[str, int], Awaitable[Tuple[asyncio.StreamReader, asyncio.StreamWriter]]]

# Servers on these ports speak TLS first; reading a banner yields nothing useful
TLS_PORTS = {443, 465, 636, 993, 995, 8443}

_UNREACHABLE_ERRNOS = {errno.EHOSTUNREACH, errno.ENETUNREACH}

BANNER_MAX_LENGTH = 200


class PortProbe(Probe[int, PortOutcome]):
    """Connects to ``host:port`` and reports how the attempt ended."""

    name = "Port Probe"

    def __init__(
        self,
        timeout: Optional[float] = None,
        banner_timeout: Optional[float] = None,
        connector: Optional[Connector] = None,
    ) -> None:
        self.timeout = timeout if timeout is not None else settings.PORT_PROBE_TIMEOUT
        self.banner_timeout = (
            banner_timeout if banner_timeout is not None else settings.PORT_BANNER_TIMEOUT
        )
        self._connect = connector or asyncio.open_connection

    async def probe(self, item: int, context: PortScanConfig) -> PortOutcome:
        host = context.target or ""
        start = time.perf_counter()
        try:
            reader, writer = await asyncio.wait_for(self._connect(host, item), self.timeout)
        except asyncio.TimeoutError:
            return self._outcome(host, item, "timeout", start, error="Connection timed out")
        except ConnectionRefusedError:
            return self._outcome(host, item, "refused", start, error="Connection refused")
        except OSError as e:
            reason = "unreachable" if e.errno in _UNREACHABLE_ERRNOS else "error"
            return self._outcome(host, item, reason, start, error=str(e) or type(e).__name__)

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        banner = None
        try:
            if item not in TLS_PORTS:
                banner = await self._read_banner(reader)
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as e:
                logs.debug("Error closing probe socket", "port_probe", {"port": item, "error": str(e)})

        return PortOutcome(
            host=host,
            port=item,
            reason="connected",
            elapsed_ms=elapsed_ms,
            banner=banner,
        )

    async def _read_banner(self, reader: asyncio.StreamReader) -> Optional[str]:
        """First line the server volunteers, if any, within the banner timeout."""
        try:
            data = await asyncio.wait_for(reader.read(1024), self.banner_timeout)
        except (asyncio.TimeoutError, OSError):
            return None
        if not data:
            return None
        text = data.decode("utf-8", errors="replace").strip()
        first_line = text.splitlines()[0] if text else ""
        return first_line[:BANNER_MAX_LENGTH] or None

    @staticmethod
    def _outcome(host: str, port: int, reason: str, start: float, error: str) -> PortOutcome:
        return PortOutcome(
            host=host,
            port=port,
            reason=reason,
            elapsed_ms=int((time.perf_counter() - start) * 1000),
            error=error,
        )
