# ============================================================================
# HEALTH FRONT DOOR TESTS
# ============================================================================
# EPOCH: 1 - HEALTH SIDECAR
# STATUS: Tests - Probe endpoints and diagd proxy
# PURPOSE: Verify routing, probe responses, and pass-through proxying
# CREATED: 14 OCT 2026
# ============================================================================
"""
Health Front Door Tests

Drives the FastAPI app in-process through httpx.ASGITransport, which lets
each test choose the client address (loopback or remote). diagd is an
httpx.MockTransport stub that records what it receives.

Run with:
    pytest tests/test_front_door.py -v
"""

import asyncio
import gzip
from typing import List, Optional

import httpx
import pytest

from core.errors import FetchError
from gateway.app import create_app
from gateway.proxy import DiagProxy, host_is_local, DIAG_IP_HEADER
from health.core import ProbeResult, StatsFetcher
from health.watcher import EnvoyWatcher

LOOPBACK_CLIENT = ("127.0.0.1", 40123)
REMOTE_CLIENT = ("10.42.0.17", 40123)


# ============================================================================
# HELPERS
# ============================================================================

class StubFetcher(StatsFetcher):
    """Envoy stand-in: fixed status, or an error."""

    def __init__(self, status_code: int = 200, error: Optional[Exception] = None):
        self.status_code = status_code
        self.error = error
        self.calls = 0

    async def fetch(self, timeout: float) -> ProbeResult:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return ProbeResult(status_code=self.status_code)


class DiagStub:
    """diagd stand-in: records requests and streams the body back."""

    def __init__(self, status_code: int = 200, headers=None, error: Optional[Exception] = None):
        self.status_code = status_code
        self.headers = headers or [("content-type", "text/plain")]
        self.error = error
        self.requests: List[httpx.Request] = []
        self.bodies: List[bytes] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        body = await request.aread()
        self.requests.append(request)
        self.bodies.append(body)
        if self.error is not None:
            raise self.error
        return httpx.Response(
            self.status_code,
            headers=self.headers,
            stream=httpx.ByteStream(body or b"diagd"),
        )

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


def _make_app(fetcher=None, diag=None):
    """Front door with a stubbed Envoy and diagd."""
    watcher = EnvoyWatcher(fetcher=fetcher or StubFetcher(200))
    diag_client = httpx.AsyncClient(transport=httpx.MockTransport(diag or DiagStub()))
    return create_app(watcher, diag_proxy=DiagProxy(client=diag_client))


def _request(app, method, path, client=LOOPBACK_CLIENT, **kwargs) -> httpx.Response:
    """Issue one request against the app from the given client address."""

    async def go():
        transport = httpx.ASGITransport(app=app, client=client)
        async with httpx.AsyncClient(transport=transport, base_url="http://ambassador:8877") as c:
            return await c.request(method, path, **kwargs)

    return asyncio.run(go())


# ============================================================================
# LIVENESS / READINESS
# ============================================================================

class TestProbeEndpoints:
    """Tests for /ambassador/v0/check_alive and /ambassador/v0/check_ready."""

    def test_check_alive_ok(self):
        resp = _request(_make_app(StubFetcher(200)), "GET", "/ambassador/v0/check_alive")

        assert resp.status_code == 200
        assert resp.text == "Ambassador is alive and well\n"
        assert resp.headers["content-type"].startswith("text/plain")

    def test_check_alive_fetch_error(self):
        app = _make_app(StubFetcher(error=FetchError("error fetching stats")))

        resp = _request(app, "GET", "/ambassador/v0/check_alive")

        assert resp.status_code == 503
        assert resp.text == "Ambassador is not alive\n"

    def test_check_alive_non_200(self):
        resp = _request(_make_app(StubFetcher(500)), "GET", "/ambassador/v0/check_alive")

        assert resp.status_code == 503

    def test_check_ready_ok(self):
        resp = _request(_make_app(StubFetcher(200)), "GET", "/ambassador/v0/check_ready")

        assert resp.status_code == 200
        assert resp.text == "Ambassador is ready and waiting\n"

    def test_check_ready_fetch_error(self):
        app = _make_app(StubFetcher(error=FetchError("error fetching stats")))

        resp = _request(app, "GET", "/ambassador/v0/check_ready")

        assert resp.status_code == 503
        assert resp.text == "Ambassador is not ready\n"

    @pytest.mark.parametrize("status_code,expected", [(200, 200), (503, 503), (404, 503)])
    def test_ready_mirrors_alive(self, status_code, expected):
        app = _make_app(StubFetcher(status_code))

        alive = _request(app, "GET", "/ambassador/v0/check_alive")
        ready = _request(app, "GET", "/ambassador/v0/check_ready")

        assert alive.status_code == expected
        assert ready.status_code == expected

    def test_every_probe_fetches_stats(self):
        fetcher = StubFetcher(200)
        app = _make_app(fetcher)

        _request(app, "GET", "/ambassador/v0/check_alive")
        _request(app, "GET", "/ambassador/v0/check_ready")
        _request(app, "GET", "/ambassador/v0/check_ready")

        assert fetcher.calls == 3

    def test_probe_reflects_envoy_recovery(self):
        fetcher = StubFetcher(error=FetchError("connection refused"))
        app = _make_app(fetcher)

        assert _request(app, "GET", "/ambassador/v0/check_ready").status_code == 503

        fetcher.error = None
        assert _request(app, "GET", "/ambassador/v0/check_ready").status_code == 200

    def test_probe_paths_never_reach_diagd(self):
        diag = DiagStub()
        app = _make_app(StubFetcher(200), diag)

        _request(app, "GET", "/ambassador/v0/check_alive")
        _request(app, "HEAD", "/ambassador/v0/check_ready")
        _request(app, "POST", "/ambassador/v0/check_alive")

        assert diag.requests == []

    def test_apps_do_not_share_state(self):
        healthy = _make_app(StubFetcher(200))
        broken = _make_app(StubFetcher(error=FetchError("down")))

        assert _request(healthy, "GET", "/ambassador/v0/check_alive").status_code == 200
        assert _request(broken, "GET", "/ambassador/v0/check_alive").status_code == 503
        assert healthy.state.watcher.is_alive() is True


# ============================================================================
# REVERSE PROXY
# ============================================================================

class TestDiagProxy:
    """Everything else is forwarded to diagd unchanged."""

    def test_get_forwarded_with_path_and_query(self):
        diag = DiagStub()
        app = _make_app(diag=diag)

        resp = _request(app, "GET", "/anything/else?json=true&filter=a%2Fb")

        assert resp.status_code == 200
        assert len(diag.requests) == 1
        assert diag.last.method == "GET"
        assert diag.last.url.scheme == "http"
        assert diag.last.url.host == "127.0.0.1"
        assert diag.last.url.port == 8004
        assert diag.last.url.raw_path == b"/anything/else?json=true&filter=a%2Fb"

    def test_post_body_echoed(self):
        diag = DiagStub()
        app = _make_app(diag=diag)
        payload = b'{"loglevel": "debug"}'

        resp = _request(
            app, "POST", "/ambassador/v0/diag/",
            content=payload, headers={"content-type": "application/json"},
        )

        assert diag.last.method == "POST"
        assert diag.last.url.path == "/ambassador/v0/diag/"
        assert diag.bodies[-1] == payload
        assert diag.last.headers["content-type"] == "application/json"
        assert resp.content == payload

    @pytest.mark.parametrize("method", ["PUT", "PATCH", "DELETE", "OPTIONS"])
    def test_other_methods_forwarded(self, method):
        diag = DiagStub()
        app = _make_app(diag=diag)

        _request(app, method, "/ambassador/v0/diag/overview")

        assert diag.last.method == method

    def test_root_forwarded(self):
        diag = DiagStub()
        app = _make_app(diag=diag)

        _request(app, "GET", "/")

        assert diag.last.url.path == "/"

    def test_docs_paths_belong_to_diagd(self):
        diag = DiagStub()
        app = _make_app(diag=diag)

        for path in ("/docs", "/openapi.json", "/redoc"):
            _request(app, "GET", path)

        assert [r.url.path for r in diag.requests] == ["/docs", "/openapi.json", "/redoc"]

    def test_diagd_error_status_relayed(self):
        diag = DiagStub(status_code=404)
        app = _make_app(diag=diag)

        resp = _request(app, "GET", "/ambassador/v0/diag/missing")

        assert resp.status_code == 404
        assert resp.text == "diagd"

    def test_repeated_response_headers_preserved(self):
        diag = DiagStub(headers=[
            ("content-type", "text/html"),
            ("set-cookie", "a=1"),
            ("set-cookie", "b=2"),
            ("connection", "close"),
        ])
        app = _make_app(diag=diag)

        resp = _request(app, "GET", "/ambassador/v0/diag/")

        assert resp.headers.get_list("set-cookie") == ["a=1", "b=2"]
        assert resp.headers["content-type"] == "text/html"

    def test_encoded_chunked_body_relayed_as_is(self):
        page = b"<html>" + b"diagd overview " * 200 + b"</html>"
        encoded = gzip.compress(page)
        chunks = [encoded[:100], encoded[100:]]

        class ChunkedStream(httpx.AsyncByteStream):
            async def __aiter__(self):
                for chunk in chunks:
                    yield chunk

        def handler(request):
            return httpx.Response(
                200,
                headers=[("content-type", "text/html"), ("content-encoding", "gzip")],
                stream=ChunkedStream(),
            )

        watcher = EnvoyWatcher(fetcher=StubFetcher(200))
        diag_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        app = create_app(watcher, diag_proxy=DiagProxy(client=diag_client))

        resp = _request(app, "GET", "/ambassador/v0/diag/")

        assert resp.status_code == 200
        assert resp.headers["content-encoding"] == "gzip"
        assert resp.content == page

    def test_host_header_preserved(self):
        diag = DiagStub()
        app = _make_app(diag=diag)

        _request(app, "GET", "/ambassador/v0/diag/")

        assert diag.last.headers["host"] == "ambassador:8877"

    def test_hop_by_hop_headers_dropped(self):
        diag = DiagStub()
        app = _make_app(diag=diag)

        _request(
            app, "GET", "/ambassador/v0/diag/",
            headers={"connection": "x-trace, keep-alive", "x-trace": "1", "x-keep": "yes"},
        )

        assert "x-trace" not in diag.last.headers
        assert "keep-alive" not in diag.last.headers
        assert diag.last.headers["x-keep"] == "yes"

    def test_x_forwarded_for_appended(self):
        diag = DiagStub()
        app = _make_app(diag=diag)

        _request(
            app, "GET", "/ambassador/v0/diag/",
            client=REMOTE_CLIENT, headers={"x-forwarded-for": "203.0.113.9"},
        )

        assert diag.last.headers["x-forwarded-for"] == "203.0.113.9, 10.42.0.17"

    def test_diagd_unreachable_is_502(self):
        diag = DiagStub(error=httpx.ConnectError("connection refused"))
        app = _make_app(diag=diag)

        resp = _request(app, "GET", "/ambassador/v0/diag/")

        assert resp.status_code == 502


# ============================================================================
# LOCAL MARKER HEADER
# ============================================================================

class TestDiagLocalMarker:
    """X-Ambassador-Diag-IP is only sent for loopback clients."""

    def test_loopback_client_marked(self):
        diag = DiagStub()
        app = _make_app(diag=diag)

        _request(app, "GET", "/ambassador/v0/diag/", client=LOOPBACK_CLIENT)

        assert diag.last.headers[DIAG_IP_HEADER] == "127.0.0.1"

    def test_ipv6_loopback_client_marked(self):
        diag = DiagStub()
        app = _make_app(diag=diag)

        _request(app, "GET", "/ambassador/v0/diag/", client=("::1", 40123))

        assert diag.last.headers[DIAG_IP_HEADER] == "127.0.0.1"

    def test_remote_client_not_marked(self):
        diag = DiagStub()
        app = _make_app(diag=diag)

        _request(app, "GET", "/ambassador/v0/diag/", client=REMOTE_CLIENT)

        assert DIAG_IP_HEADER not in diag.last.headers

    def test_remote_client_cannot_spoof_marker(self):
        diag = DiagStub()
        app = _make_app(diag=diag)

        _request(
            app, "GET", "/ambassador/v0/diag/",
            client=REMOTE_CLIENT, headers={DIAG_IP_HEADER: "127.0.0.1"},
        )

        assert DIAG_IP_HEADER not in diag.last.headers

    @pytest.mark.parametrize("host,expected", [
        ("127.0.0.1", True),
        ("127.8.9.10", True),
        ("::1", True),
        ("[::1]", True),
        ("localhost", True),
        ("10.0.0.1", False),
        ("192.168.1.20", False),
        ("2001:db8::1", False),
        ("testclient", False),
        ("", False),
        (None, False),
    ])
    def test_host_is_local(self, host, expected):
        assert host_is_local(host) is expected
