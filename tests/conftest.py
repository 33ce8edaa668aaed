"""
Global test configuration and shared fixtures.
"""

from collections.abc import Callable
import json
import os

import httpx
import pytest

from content_understanding.config import FrozenConfig, resolve_config
from content_understanding.constants import OPERATION_LOCATION_HEADER

TEST_ENDPOINT = "https://svc.example.com"
TEST_KEY = "test_subscription_key_12345"


# --- Environment Isolation (Autouse) ---
@pytest.fixture(autouse=True)
def isolate_content_understanding_env(request, monkeypatch):
    """Ensure a clean AZURE_CONTENT_UNDERSTANDING_* environment for each test.

    Escape hatch: mark a test with @pytest.mark.allow_env_pollution to keep
    the current environment unchanged.
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return

    for key in list(os.environ.keys()):
        if key.startswith("AZURE_CONTENT_UNDERSTANDING_"):
            monkeypatch.delenv(key, raising=False)
    # Avoid DEBUG toggles affecting telemetry/config debug paths
    monkeypatch.delenv("DEBUG", raising=False)
    monkeypatch.delenv("CONTENT_UNDERSTANDING_TELEMETRY", raising=False)


# --- Test Environment Markers ---
def pytest_configure(config):
    """Configure custom markers for test organization."""
    markers = [
        "unit: Fast, isolated unit tests",
        "integration: Component integration tests with mocked HTTP",
        "allow_env_pollution: Skip environment isolation for this test",
    ]
    for marker in markers:
        config.addinivalue_line("markers", marker)


# --- Core Fixtures ---


@pytest.fixture
def make_config() -> Callable[..., FrozenConfig]:
    """Factory for configs with a test endpoint and key; overrides win."""

    def _make(**overrides) -> FrozenConfig:
        values = {"endpoint": TEST_ENDPOINT, "subscription_key": TEST_KEY}
        values.update(overrides)
        return resolve_config(values)

    return _make


@pytest.fixture
def config(make_config) -> FrozenConfig:
    return make_config()


class RecordingSleep:
    """Async sleep stand-in that records delays and advances a fake clock."""

    def __init__(self) -> None:
        self.now = 0.0
        self.delays: list[float] = []

    def clock(self) -> float:
        return self.now

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        self.now += delay


@pytest.fixture
def fake_sleep() -> RecordingSleep:
    return RecordingSleep()


class ScriptedService:
    """httpx.MockTransport handler answering from a per-route script.

    Routes are matched on ``(method, path)``; each route holds a list of
    responses consumed in order (the last one repeats).
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, *responses: httpx.Response) -> None:
        self.routes.setdefault((method, path), []).extend(responses)

    def add_json(self, method: str, path: str, *bodies: dict, status_code: int = 200) -> None:
        self.add(method, path, *(httpx.Response(status_code, json=b) for b in bodies))

    def accept(self, method: str, path: str, handle: str, status_code: int = 202) -> None:
        self.add(
            method,
            path,
            httpx.Response(status_code, headers={OPERATION_LOCATION_HEADER: handle}, json={}),
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        script = self.routes.get((request.method, request.url.path))
        if not script:
            return httpx.Response(404, json={"error": {"code": "NotFound", "message": request.url.path}})
        template = script.pop(0) if len(script) > 1 else script[0]
        return httpx.Response(
            template.status_code, headers=template.headers, content=template.content
        )

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def json_body(self, index: int = 0) -> dict:
        return json.loads(self.requests[index].content)


@pytest.fixture
def service() -> ScriptedService:
    return ScriptedService()


@pytest.fixture
def http_client(service) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(service))
