# ============================================================================
# DIAGD REVERSE PROXY
# ============================================================================
# EPOCH: 1 - HEALTH SIDECAR
# STATUS: Gateway - Catch-all HTTP proxy
# PURPOSE: Forward every non-probe request to diagd unchanged
# CREATED: 12 OCT 2026
# ============================================================================
"""
Diagd Reverse Proxy

Everything that is not a health probe goes to diagd:
- * /{path} - forwarded with the same method, path, query and body

Only the scheme and host of the target URL change. Request headers are
passed through (including Host) minus hop-by-hop headers. Requests from a
loopback client carry X-Ambassador-Diag-IP: 127.0.0.1 so diagd can treat
local callers differently; the header is stripped from everyone else.

diagd's answer, error statuses included, is streamed back untouched. If
diagd cannot be reached the caller gets a 502.
"""

import ipaddress
from typing import List, Optional, Tuple

import httpx
from fastapi import APIRouter, Request
from fastapi.responses import Response, StreamingResponse
from starlette.background import BackgroundTask

from core.config import DEFAULT_DIAG_URL, DEFAULT_PROXY_TIMEOUT
from core.logging import get_logger, log_context, ComponentType

logger = get_logger(__name__, ComponentType.PROXY)

DIAG_IP_HEADER = "X-Ambassador-Diag-IP"
LOCAL_DIAG_IP = "127.0.0.1"

# RFC 7230 section 6.1, plus the de facto Proxy-Connection
HOP_BY_HOP_HEADERS = frozenset({
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "proxy-connection",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
})

PROXY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE"]


def host_is_local(host: Optional[str]) -> bool:
    """True if a client host (IP literal or name) is a loopback address."""
    if not host:
        return False
    host = host.strip("[]").split("%", 1)[0]
    if host.lower() == "localhost":
        return True
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


def _strip_hop_by_hop(raw_headers: List[Tuple[bytes, bytes]]) -> List[Tuple[bytes, bytes]]:
    """Drop hop-by-hop headers, including any named in Connection."""
    dropped = set(HOP_BY_HOP_HEADERS)
    for key, value in raw_headers:
        if key.lower() == b"connection":
            dropped.update(
                token.strip().lower()
                for token in value.decode("latin-1").split(",")
                if token.strip()
            )
    return [
        (key, value)
        for key, value in raw_headers
        if key.decode("latin-1").lower() not in dropped
    ]


class DiagProxy:
    """
    Reverse proxy to diagd.

    Owns an httpx.AsyncClient unless one is supplied; call aclose() on
    shutdown either way.
    """

    def __init__(
        self,
        origin: str = DEFAULT_DIAG_URL,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_PROXY_TIMEOUT,
    ):
        self.origin = httpx.URL(origin)
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def target_url(self, request: Request) -> httpx.URL:
        """Swap scheme and host for diagd's; keep path and query verbatim."""
        raw_path = request.scope.get("raw_path") or request.url.path.encode("utf-8")
        raw_path = raw_path.split(b"?", 1)[0]
        query = request.scope.get("query_string", b"")
        if query:
            raw_path = raw_path + b"?" + query
        return self.origin.copy_with(raw_path=raw_path)

    def upstream_headers(self, request: Request) -> List[Tuple[bytes, bytes]]:
        """Inbound headers as they should reach diagd."""
        client_host = request.client.host if request.client else None

        headers = [
            (key, value)
            for key, value in _strip_hop_by_hop(request.headers.raw)
            if key.lower() not in (b"x-ambassador-diag-ip", b"content-length")
        ]

        if client_host:
            prior = request.headers.get("x-forwarded-for")
            forwarded = f"{prior}, {client_host}" if prior else client_host
            headers = [(k, v) for k, v in headers if k.lower() != b"x-forwarded-for"]
            headers.append((b"x-forwarded-for", forwarded.encode("latin-1")))

        # If this request is coming from localhost, tell diagd about that.
        if host_is_local(client_host):
            headers.append((DIAG_IP_HEADER.encode("latin-1"), LOCAL_DIAG_IP.encode("latin-1")))

        return headers

    async def forward(self, request: Request) -> Response:
        """Send the request to diagd and stream its response back."""
        client_host = request.client.host if request.client else None

        with log_context(
            operation="proxy",
            client=client_host,
            method=request.method,
            path=request.url.path,
        ):
            body = await request.body()
            upstream = self._client.build_request(
                request.method,
                self.target_url(request),
                headers=self.upstream_headers(request),
                content=body or None,
            )

            try:
                response = await self._client.send(upstream, stream=True)
            except httpx.HTTPError as e:
                logger.error(f"proxy error: {type(e).__name__}: {e}")
                return Response(status_code=502)

            logger.debug(f"diagd answered {response.status_code}")

        proxied = StreamingResponse(
            response.aiter_raw(),
            status_code=response.status_code,
            background=BackgroundTask(response.aclose),
        )
        # Keep repeated headers (Set-Cookie) as separate lines
        proxied.raw_headers = [
            (key.lower(), value) for key, value in _strip_hop_by_hop(response.headers.raw)
        ]
        return proxied

    async def aclose(self) -> None:
        await self._client.aclose()


proxy_router = APIRouter(include_in_schema=False)


@proxy_router.api_route("/{path:path}", methods=PROXY_METHODS)
async def proxy_to_diagd(request: Request):
    """Catch-all: everything not claimed by another route goes to diagd."""
    return await request.app.state.diag_proxy.forward(request)


__all__ = [
    "DiagProxy",
    "proxy_router",
    "host_is_local",
    "DIAG_IP_HEADER",
    "HOP_BY_HOP_HEADERS",
]
