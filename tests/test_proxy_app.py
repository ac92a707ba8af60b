from __future__ import annotations

from typing import Callable

import httpx
import pytest

from core.exceptions import (
    MalformedTokenResponse,
    ResponseTransformError,
    TokenVerificationFailed,
    UpstreamConnectionError,
    UpstreamTimeoutError,
)
from tests.esi_test_utils import (
    BASE_URL,
    CHARACTER_ID,
    RecordingLogger,
    build_test_client,
    esi_json,
    make_config,
    sso_handler,
    token_json,
    upstream_response,
)


class _Recorder:
    """MockTransport handler that answers SSO calls and records ESI calls."""

    def __init__(self, esi: Callable[[], httpx.Response] | None = None, **sso: object) -> None:
        self.esi_requests: list[httpx.Request] = []
        self.sso_paths: list[str] = []
        self._esi = esi or (lambda: esi_json(200, {"ok": True}))
        self._sso = sso

    def __call__(self, request: httpx.Request) -> httpx.Response:
        sso = sso_handler(request, **self._sso)
        if sso is not None:
            self.sso_paths.append(request.url.path)
            return sso
        self.esi_requests.append(request)
        return self._esi()


def test_legacy_online_scenario() -> None:
    recorder = _Recorder(esi=lambda: esi_json(200, {"online": False}))
    logger = RecordingLogger()
    with build_test_client(recorder, logger) as client:
        response = client.get("/v1/characters/12345/online")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/json"
    assert response.content == b"false"
    assert response.headers["content-length"] == "5"

    (esi,) = recorder.esi_requests
    assert esi.method == "GET"
    assert str(esi.url) == f"{BASE_URL}/v3/characters/12345/online/"
    assert "authorization" not in esi.headers
    assert recorder.sso_paths == []
    assert logger.requests == [("GET", "v1/characters/12345/online", "online", 200)]


def test_search_scenario_attaches_verified_token() -> None:
    recorder = _Recorder(
        esi=lambda: esi_json(200, {"character": [2112625428]}),
        access_token="fresh-token",
    )
    with build_test_client(recorder) as client:
        response = client.get(
            "/latest/search",
            params={"search": "Foo", "categories": "character"},
            headers={"X-Proxy-Auth": "let-me-in", "Authorization": "Bearer caller"},
        )

    assert response.status_code == 200
    assert response.json() == {"character": [2112625428]}
    assert recorder.sso_paths == ["/oauth/token", "/oauth/verify"]

    (esi,) = recorder.esi_requests
    assert esi.method == "GET"
    assert str(esi.url) == (
        f"{BASE_URL}/v3/characters/{CHARACTER_ID}/search/?search=Foo&categories=character"
    )
    assert esi.headers.get_list("authorization") == ["Bearer fresh-token"]
    assert "x-proxy-auth" not in esi.headers


def test_search_token_is_reused_between_requests() -> None:
    recorder = _Recorder()
    with build_test_client(recorder) as client:
        client.get("/v1/search/?search=a")
        client.get("/dev/search/?search=b")

    assert recorder.sso_paths == ["/oauth/token", "/oauth/verify"]
    assert len(recorder.esi_requests) == 2


def test_search_without_token_cache_exchanges_every_time() -> None:
    recorder = _Recorder()
    with build_test_client(recorder, config=make_config(cache_tokens=False)) as client:
        client.get("/v1/search/?search=a")
        client.get("/v1/search/?search=b")

    assert recorder.sso_paths == ["/oauth/token", "/oauth/verify"] * 2


def test_generic_request_is_forwarded_verbatim() -> None:
    upstream = httpx.Response(
        201,
        headers=[
            ("Content-Type", "application/json"),
            ("Strict-Transport-Security", "max-age=31536000"),
            ("X-Esi-Error-Limit-Remain", "100"),
        ],
        stream=httpx.ByteStream(b'{"fleet_id": 1}'),
    )
    recorder = _Recorder(esi=lambda: upstream)
    logger = RecordingLogger()
    with build_test_client(recorder, logger) as client:
        response = client.post(
            "/v1/fleets/1/wings/?datasource=tranquility",
            content=b'{"name": "Alpha"}',
            headers={
                "Content-Type": "application/json",
                "X-Entity-ID": "7",
                "x-token-type": "character",
            },
        )

    assert response.status_code == 201
    assert response.content == b'{"fleet_id": 1}'
    assert response.headers["x-esi-error-limit-remain"] == "100"
    assert "strict-transport-security" not in response.headers

    (esi,) = recorder.esi_requests
    assert esi.method == "POST"
    assert str(esi.url) == f"{BASE_URL}/v1/fleets/1/wings/?datasource=tranquility"
    assert esi.content == b'{"name": "Alpha"}'
    assert esi.headers["content-type"] == "application/json"
    assert esi.headers["host"] == "esi.example"
    assert "x-entity-id" not in esi.headers
    assert "x-token-type" not in esi.headers
    assert logger.requests == [("POST", "v1/fleets/1/wings/", "generic", 201)]


def test_non_legacy_online_is_passthrough() -> None:
    recorder = _Recorder(esi=lambda: esi_json(200, {"online": True, "logins": 4}))
    with build_test_client(recorder) as client:
        response = client.get("/v3/characters/12345/online/")

    assert response.json() == {"online": True, "logins": 4}
    assert str(recorder.esi_requests[0].url) == f"{BASE_URL}/v3/characters/12345/online/"


def test_delete_is_forwarded_without_body() -> None:
    recorder = _Recorder(esi=lambda: upstream_response(204))
    with build_test_client(recorder) as client:
        response = client.delete("/v1/characters/1/contacts/?contact_ids=2")

    assert response.status_code == 204
    assert recorder.esi_requests[0].method == "DELETE"
    assert recorder.esi_requests[0].content == b""


@pytest.mark.parametrize(
    "path",
    [
        "/v1/universe/names/%3Fx%23y",
        "/v1/universe/names/a%2Fb",
        "/v1/universe/names/New%20Eden",
    ],
)
def test_encoded_path_segments_are_forwarded_encoded(path: str) -> None:
    recorder = _Recorder()
    logger = RecordingLogger()
    with build_test_client(recorder, logger) as client:
        response = client.get(f"{path}?datasource=tq")

    assert response.status_code == 200
    (esi,) = recorder.esi_requests
    assert str(esi.url) == f"{BASE_URL}{path}?datasource=tq"
    assert esi.url.query == b"datasource=tq"
    assert logger.requests == [("GET", path.lstrip("/"), "generic", 200)]


def test_search_sent_as_post_is_forwarded_as_bare_get() -> None:
    recorder = _Recorder(esi=lambda: esi_json(200, {"character": []}))
    with build_test_client(recorder) as client:
        response = client.post(
            "/latest/search?search=Foo",
            content=b"0123456789",
            headers={"Content-Type": "application/json"},
        )

    assert response.status_code == 200
    (esi,) = recorder.esi_requests
    assert esi.method == "GET"
    assert esi.content == b""
    assert "content-length" not in esi.headers
    assert "content-type" not in esi.headers
    assert "transfer-encoding" not in esi.headers
    assert esi.headers["authorization"] == "Bearer access-1"


def _failing_sso(response: httpx.Response):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "sso.example":
            return response
        return esi_json(200, {})

    return handler


def _verify_rejected(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/oauth/token":
        return httpx.Response(200, json=token_json())
    return httpx.Response(403)


def _esi_times_out(request: httpx.Request) -> httpx.Response:
    raise httpx.ReadTimeout("timed out", request=request)


def _esi_unreachable(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


@pytest.mark.parametrize(
    ("handler", "path", "stage", "error_type"),
    [
        (_failing_sso(httpx.Response(200, text="{")), "/v1/search/", "acquiring_token", MalformedTokenResponse),
        (_verify_rejected, "/v1/search/", "acquiring_token", TokenVerificationFailed),
        (_esi_times_out, "/v1/status/", "dispatching", UpstreamTimeoutError),
        (_esi_unreachable, "/v1/characters/5/online", "dispatching", UpstreamConnectionError),
        (
            lambda request: httpx.Response(200, text="<html>maintenance</html>"),
            "/legacy/characters/5/online",
            "processing_response",
            ResponseTransformError,
        ),
        (
            lambda request: httpx.Response(200, json={"online": "yes"}),
            "/v1/characters/5/online",
            "processing_response",
            ResponseTransformError,
        ),
    ],
)
def test_failures_become_bare_503_with_one_log_record(handler, path, stage, error_type) -> None:
    logger = RecordingLogger()
    with build_test_client(handler, logger) as client:
        response = client.get(path)

    assert response.status_code == 503
    assert response.content == b""
    assert logger.records == 1
    method, route, logged_stage, error = logger.errors[0]
    assert (method, route, logged_stage) == ("GET", path.lstrip("/"), stage)
    assert isinstance(error, error_type)


def test_hello_and_favicon_are_not_proxied() -> None:
    recorder = _Recorder()
    with build_test_client(recorder) as client:
        hello = client.get("/hello")
        favicon = client.get("/favicon.ico")

    assert hello.text == "Hello There"
    assert favicon.status_code == 200
    assert favicon.content == b""
    assert recorder.esi_requests == []


def test_unsupported_method_is_rejected_before_proxying() -> None:
    recorder = _Recorder()
    with build_test_client(recorder) as client:
        response = client.request("OPTIONS", "/v1/status/")

    assert response.status_code == 405
    assert recorder.esi_requests == []
