# backend/app/features/scanner/probes/http.py
"""HTTP probe: issue one request per endpoint and record what came back."""

import json
import re
import time
from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

import httpx

from backend.app.core import logs, settings
from backend.app.features.projects.models import BODY_METHODS, Endpoint
from ..models import HttpOutcome, HttpScanConfig
from .base import Probe

_SCHEME_HOST = re.compile(r"^(https?://)(\[[^\]]*\]|[^/:?#]*)", re.IGNORECASE)


def normalize_scheme(url: str) -> str:
    """Assume https for URLs that carry no http/https prefix."""
    url = url.strip()
    if url.lower().startswith(("http://", "https://")):
        return url
    return f"https://{url}"


def _format_host(host: str) -> str:
    # Bare IPv6 literals need brackets inside a URL
    if ":" in host and not host.startswith("["):
        return f"[{host}]"
    return host


def resolve_target_url(url: str, override_host: Optional[str] = None) -> str:
    """Effective URL for an endpoint, with the project host override applied.

    Scheme, port, path and query are preserved. A URL that cannot be split
    falls back to replacing the scheme+host prefix textually; if that also
    fails the normalized URL is used as-is. Never raises.
    """
    target = normalize_scheme(url)
    if not override_host:
        return target

    host = _format_host(override_host.strip())
    try:
        parts = urlsplit(target)
        if not parts.hostname:
            raise ValueError("missing host")
        netloc = host if parts.port is None else f"{host}:{parts.port}"
        return urlunsplit(parts._replace(netloc=netloc))
    except ValueError:
        pass

    match = _SCHEME_HOST.match(target)
    if match and match.group(2):
        return f"{match.group(1)}{host}{target[match.end():]}"
    return target


def parse_headers(raw: Optional[str]) -> Dict[str, str]:
    """Parse header text as a JSON object. Anything else yields no headers.

    Entries whose name or value is not plain ASCII are dropped.
    """
    if not raw or not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        logs.debug("Ignoring invalid headers JSON", "http_probe", {"headers": raw[:80]})
        return {}
    if not isinstance(data, dict):
        return {}

    headers = {}
    for key, value in data.items():
        name, text = str(key), str(value)
        # httpx encodes header names and values as ASCII
        if not (name.isascii() and text.isascii()):
            logs.debug("Dropping non-ASCII header", "http_probe", {"header": name[:40]})
            continue
        headers[name] = text
    return headers


def build_body(method: str, raw: Optional[str]) -> Dict[str, Any]:
    """httpx keyword arguments for the request body, if the method takes one."""
    if method not in BODY_METHODS or not raw:
        return {}
    try:
        return {"json": json.loads(raw)}
    except ValueError:
        return {"content": raw}


class HttpProbe(Probe[Endpoint, HttpOutcome]):
    """Sends each endpoint's configured request and captures the response."""

    name = "HTTP Probe"

    def __init__(
        self,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.timeout = timeout if timeout is not None else settings.HTTP_PROBE_TIMEOUT
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def open(self) -> None:
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=settings.FOLLOW_REDIRECTS,
            verify=settings.VERIFY_TLS,
            transport=self._transport,
            headers={"User-Agent": settings.USER_AGENT},
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def probe(self, item: Endpoint, context: HttpScanConfig) -> HttpOutcome:
        if self._client is None:
            raise RuntimeError("HttpProbe used outside 'async with'")

        target_url = resolve_target_url(item.url, context.target_override)
        method = item.method.value
        request_kwargs = build_body(item.method, item.body)
        headers = parse_headers(item.headers)

        start = time.perf_counter()
        try:
            response = await self._client.request(
                method, target_url, headers=headers, **request_kwargs
            )
        except (httpx.HTTPError, httpx.InvalidURL, ValueError, TypeError) as e:
            # ValueError and TypeError are raised while httpx builds the request
            elapsed_ms = _elapsed_ms(start)
            message = str(e) or type(e).__name__
            logs.debug(
                "Probe failed",
                "http_probe",
                {"url": target_url, "error": message, "elapsed_ms": elapsed_ms},
            )
            return HttpOutcome(
                kind="connection_error",
                requested_url=target_url,
                elapsed_ms=elapsed_ms,
                error=message,
            )

        elapsed_ms = _elapsed_ms(start)
        return HttpOutcome(
            kind="response",
            requested_url=target_url,
            elapsed_ms=elapsed_ms,
            status_code=response.status_code,
            headers={k.lower(): v for k, v in response.headers.items()},
            body=response.text,
        )


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)
