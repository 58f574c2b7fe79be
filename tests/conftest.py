"""Shared pytest fixtures for the forwarder test suite."""

import json
import os

import httpx
import pytest

from hec_forwarder.config import ForwarderConfig

HOST = "splunk.example.com"
PROTOCOL = "https"
PORT = 8443
TOKEN = "BAB747F3-744E-41BA"
SOURCE = "fluentd"
INDEX = "main"
EVENT_HOST = "some_host"
SPLUNK_URL = f"{PROTOCOL}://{HOST}:{PORT}/services/collector/event"


class CollectorStub:
    """Records every request and answers with a canned status and JSON body."""

    def __init__(self, status: int = 200, body=None):
        self.status = status
        self.body = body if body is not None else {"text": "Success", "code": 0}
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, json=self.body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def bodies(self) -> list[str]:
        return [r.content.decode("utf-8") for r in self.requests]

    def envelopes(self) -> list[dict]:
        return [json.loads(line) for body in self.bodies() for line in body.split("\n")]


@pytest.fixture()
def collector() -> CollectorStub:
    return CollectorStub()


@pytest.fixture()
def make_config():
    """Return a factory building a ForwarderConfig with test defaults."""

    def _make(**overrides) -> ForwarderConfig:
        settings = {
            "host": HOST,
            "protocol": PROTOCOL,
            "port": PORT,
            "token": TOKEN,
            "source": SOURCE,
            "index": INDEX,
            "event_host": EVENT_HOST,
        }
        settings.update(overrides)
        return ForwarderConfig(**settings)

    return _make


@pytest.fixture(autouse=True)
def _clean_hec_env(monkeypatch):
    """Keep HEC_* variables from the developer's shell out of the tests."""
    for name in list(os.environ):
        if name.startswith("HEC_"):
            monkeypatch.delenv(name)
