from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict, List

import httpx
import pytest

from turbot_aws.config import ConnectionSettings
from turbot_aws.errors import SignedRequestError
from turbot_aws.models import AwsCredentials, SignedRequestSpec
from turbot_aws.proxy import ProxyAgent
from turbot_aws.signing import fetch_signed, infer_region, signed_request

STS_CREDENTIALS = {
    "AccessKeyId": "ASIAEXAMPLE",
    "SecretAccessKey": "secret",
    "SessionToken": "session-token",
    "Expiration": "2030-01-01T00:00:00Z",
}


class Recorder:
    def __init__(self) -> None:
        self.calls: List[tuple] = []

    def __call__(self, *args: Any) -> None:
        self.calls.append(args)


def test_signed_request_success_passes_body_to_callback() -> None:
    seen: Dict[str, httpx.Request] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, json={"hits": {"total": 1}})

    callback = Recorder()
    signed_request(
        {
            "uri": "https://search-logs.eu-west-1.es.amazonaws.com/index/_search?size=1",
            "method": "post",
            "headers": {"Content-Type": "application/json"},
            "body": {"query": {"match_all": {}}},
        },
        "es",
        STS_CREDENTIALS,
        callback,
        settings=ConnectionSettings(),
        transport=httpx.MockTransport(handler),
    )

    assert callback.calls == [(None, {"hits": {"total": 1}})]
    request = seen["request"]
    assert request.method == "POST"
    assert request.url.path == "/index/_search"
    assert request.url.query == b"size=1"
    assert request.headers["host"] == "search-logs.eu-west-1.es.amazonaws.com"
    assert request.headers["x-amz-security-token"] == "session-token"
    authorization = request.headers["authorization"]
    assert authorization.startswith("AWS4-HMAC-SHA256 Credential=ASIAEXAMPLE/")
    assert "/eu-west-1/es/aws4_request" in authorization
    assert "host" in authorization.split("SignedHeaders=")[1]
    assert json.loads(request.content) == {"query": {"match_all": {}}}


def test_region_falls_back_to_settings_then_us_east_1() -> None:
    authorizations: List[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        authorizations.append(request.headers["authorization"])
        return httpx.Response(200, json={})

    spec = SignedRequestSpec(uri="https://api.example.com/items")
    credentials = AwsCredentials(access_key_id="AKIDEXAMPLE", secret_access_key="secret")
    transport = httpx.MockTransport(handler)

    fetch_signed(spec, "execute-api", credentials, settings=ConnectionSettings(default_region="ap-south-1"), transport=transport)
    fetch_signed(spec, "execute-api", credentials, settings=ConnectionSettings(), transport=transport)
    fetch_signed(spec, "execute-api", credentials, region="ca-central-1", settings=ConnectionSettings(), transport=transport)

    assert "/ap-south-1/execute-api/" in authorizations[0]
    assert "/us-east-1/execute-api/" in authorizations[1]
    assert "/ca-central-1/execute-api/" in authorizations[2]


def test_request_without_body_sends_no_content() -> None:
    seen: Dict[str, httpx.Request] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, json=[1, 2])

    body = fetch_signed(
        {"uri": "https://example.execute-api.us-east-2.amazonaws.com/prod/items"},
        "execute-api",
        {"access_key_id": "AKIDEXAMPLE", "secret_access_key": "secret"},
        settings=ConnectionSettings(),
        transport=httpx.MockTransport(handler),
    )

    assert body == [1, 2]
    assert seen["request"].method == "GET"
    assert seen["request"].content == b""
    assert "x-amz-security-token" not in seen["request"].headers


def test_non_json_body_reports_error_through_callback() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>bad gateway</html>")

    callback = Recorder()
    signed_request(
        {"uri": "https://example.com/"},
        "es",
        STS_CREDENTIALS,
        callback,
        settings=ConnectionSettings(),
        transport=httpx.MockTransport(handler),
    )

    assert len(callback.calls) == 1
    (error,) = callback.calls[0]
    assert isinstance(error, SignedRequestError)
    assert isinstance(error.__cause__, ValueError)


def test_network_failure_is_not_retried() -> None:
    attempts = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        attempts["count"] += 1
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(SignedRequestError) as excinfo:
        fetch_signed(
            {"uri": "https://example.com/"},
            "es",
            STS_CREDENTIALS,
            settings=ConnectionSettings(),
            transport=httpx.MockTransport(handler),
        )

    assert attempts["count"] == 1
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)
    assert excinfo.value.context["service"] == "es"


def test_missing_credentials_reported_as_error() -> None:
    callback = Recorder()
    signed_request({"uri": "https://example.com/"}, "es", {"AccessKeyId": "AKID"}, callback, settings=ConnectionSettings())
    (error,) = callback.calls[0]
    assert isinstance(error, SignedRequestError)


@pytest.mark.parametrize(
    "host, region",
    [
        ("search-logs.eu-west-1.es.amazonaws.com", "eu-west-1"),
        ("abc123.execute-api.us-gov-west-1.amazonaws.com", "us-gov-west-1"),
        ("sts.amazonaws.com", None),
        ("proxy.eu-west-1.example.com", None),
    ],
)
def test_infer_region(host: str, region: str) -> None:
    assert infer_region(host) == region


def test_unserializable_body_reports_error_through_callback() -> None:
    requests: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={})

    callback = Recorder()
    signed_request(
        {"uri": "https://example.com/", "method": "POST", "body": {"at": datetime(2024, 1, 1)}},
        "es",
        STS_CREDENTIALS,
        callback,
        settings=ConnectionSettings(),
        transport=httpx.MockTransport(handler),
    )

    assert requests == []
    assert len(callback.calls) == 1
    (error,) = callback.calls[0]
    assert isinstance(error, SignedRequestError)
    assert isinstance(error.__cause__, TypeError)


def test_proxy_transport_failure_reports_error_through_callback(monkeypatch: pytest.MonkeyPatch) -> None:
    def missing_socks_support(*args: Any, **kwargs: Any) -> None:
        raise ImportError("Using SOCKS proxy, but the 'socksio' package is not installed.")

    monkeypatch.setattr("turbot_aws.proxy.httpx.HTTPTransport", missing_socks_support)

    callback = Recorder()
    signed_request(
        {"uri": "https://example.com/"},
        "es",
        STS_CREDENTIALS,
        callback,
        settings=ConnectionSettings(https_proxy="socks5://proxy.example.com:1080"),
    )

    assert len(callback.calls) == 1
    (error,) = callback.calls[0]
    assert isinstance(error, SignedRequestError)
    assert isinstance(error.__cause__, ImportError)


def test_request_is_routed_through_configured_proxy(monkeypatch: pytest.MonkeyPatch) -> None:
    proxies: List[str] = []
    requests: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"ok": True})

    def proxied_transport(agent: ProxyAgent) -> httpx.BaseTransport:
        proxies.append(agent.url)
        return httpx.MockTransport(handler)

    monkeypatch.setattr(ProxyAgent, "transport", proxied_transport)

    body = fetch_signed(
        {"uri": "https://example.com/items"},
        "execute-api",
        STS_CREDENTIALS,
        settings=ConnectionSettings(https_proxy="http://proxy.example.com:8080"),
    )

    assert body == {"ok": True}
    assert len(proxies) == 1
    assert proxies[0].startswith("http://proxy.example.com:8080")
    assert len(requests) == 1


def test_invalid_proxy_still_sends_one_request(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    transports: List[Any] = []
    requests: List[httpx.Request] = []
    real_client = httpx.Client

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"ok": True})

    def make_client(*, transport: Any = None, **kwargs: Any) -> httpx.Client:
        transports.append(transport)
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr("turbot_aws.signing.httpx.Client", make_client)

    with caplog.at_level(logging.ERROR, logger="turbot_aws.proxy"):
        body = fetch_signed(
            {"uri": "https://example.com/items"},
            "execute-api",
            STS_CREDENTIALS,
            settings=ConnectionSettings(https_proxy="not a url"),
        )

    assert body == {"ok": True}
    assert transports == [None]
    assert len(requests) == 1
    assert len([r for r in caplog.records if r.name == "turbot_aws.proxy"]) == 1
