from __future__ import annotations

import pytest
import requests

from nsw_sales.common.http import HttpClient, HttpNotFoundError, HttpRequestError, RetryConfig, RetryableHttpError


class FakeResponse:
    def __init__(self, status_code: int, payload=None, raises_json: bool = False):
        self.status_code = status_code
        self._payload = payload
        self._raises_json = raises_json

    def json(self):
        if self._raises_json:
            raise ValueError("bad json")
        return self._payload


def test_http_get_json_success(monkeypatch):
    client = HttpClient(retry=RetryConfig(max_attempts=1))

    monkeypatch.setattr(client.session, "request", lambda **_kwargs: FakeResponse(200, {"ok": True}))
    payload = client.get_json("https://raw.githubusercontent.com/u/r/main/master-address-index.json")

    assert payload == {"ok": True}


def test_http_not_found_raises_not_found(monkeypatch):
    client = HttpClient(retry=RetryConfig(max_attempts=1))
    monkeypatch.setattr(client.session, "request", lambda **_kwargs: FakeResponse(404))

    with pytest.raises(HttpNotFoundError):
        client.get_json("https://example.com/missing.json")


def test_http_retryable_status_raises_retryable_error(monkeypatch):
    client = HttpClient(retry=RetryConfig(max_attempts=1))
    monkeypatch.setattr(client.session, "request", lambda **_kwargs: FakeResponse(503, {"x": 1}))

    with pytest.raises(RetryableHttpError):
        client.get_json("https://example.com")


def test_http_retries_until_success(monkeypatch):
    client = HttpClient(retry=RetryConfig(max_attempts=3, multiplier=0.0, max_wait=0.0))
    responses = [FakeResponse(502), FakeResponse(200, [1, 2])]
    monkeypatch.setattr(client.session, "request", lambda **_kwargs: responses.pop(0))
    monkeypatch.setattr("time.sleep", lambda _seconds: None)

    assert client.get_json("https://example.com/chunk.json") == [1, 2]
    assert responses == []


def test_http_transport_failure_is_retryable(monkeypatch):
    client = HttpClient(retry=RetryConfig(max_attempts=1))

    def _boom(**_kwargs):
        raise requests.ConnectionError("down")

    monkeypatch.setattr(client.session, "request", _boom)

    with pytest.raises(RetryableHttpError):
        client.get_json("https://example.com")


def test_http_invalid_json_raises(monkeypatch):
    client = HttpClient(retry=RetryConfig(max_attempts=1))
    monkeypatch.setattr(client.session, "request", lambda **_kwargs: FakeResponse(200, raises_json=True))

    with pytest.raises(HttpRequestError):
        client.get_json("https://example.com")
