import asyncio
import json
from typing import Any, Awaitable, Callable, List

import httpx
import pytest
from fastapi.testclient import TestClient

from app.config import Settings, get_settings
from app.main import app, get_http_client, limiter

SLACK_URL = "https://hooks.slack.test/services/T000/B000/XXXX"
GHL_BASE_URL = "https://ghl.test/v1"


class FakeDownstream:
    """Scripted Slack webhook and GHL contacts API behind an httpx.MockTransport."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.slack_status = 200
        self.search_status = 200
        self.search_contacts: Any = []
        self.write_status = 200
        # Any of "slack", "search", "write" to raise a transport error instead.
        self.unreachable: set[str] = set()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "hooks.slack.test":
            return self._respond("slack", request, self.slack_status, text="ok" if self.slack_status < 400 else "invalid_payload")
        if request.url.path.endswith("/contacts/search"):
            return self._respond("search", request, self.search_status, json={"contacts": self.search_contacts})
        return self._respond("write", request, self.write_status, json={"contact": {"id": "new-contact"}})

    def _respond(self, name: str, request: httpx.Request, status: int, **kwargs: Any) -> httpx.Response:
        if name in self.unreachable:
            raise httpx.ConnectError(f"{name} unreachable", request=request)
        return httpx.Response(status, **kwargs)

    @property
    def slack_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.host == "hooks.slack.test"]

    @property
    def search_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith("/contacts/search")]

    @property
    def write_requests(self) -> List[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.url.host == "ghl.test" and not r.url.path.endswith("/contacts/search")
        ]

    def slack_text(self) -> str:
        return json.loads(self.slack_requests[0].content)["text"]

    def write_body(self) -> dict:
        return json.loads(self.write_requests[0].content)


def make_settings(**overrides: Any) -> Settings:
    values = {
        "slack_webhook_url": SLACK_URL,
        "ghl_api_key": "ghl-secret",
        "ghl_location_id": "loc-123",
        "ghl_custom_field_transcript": "cf-transcript",
        "ghl_base_url": GHL_BASE_URL,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def downstream() -> FakeDownstream:
    return FakeDownstream()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def run_with_client(downstream: FakeDownstream) -> Callable[[Callable[[httpx.AsyncClient], Awaitable[Any]]], Any]:
    """Run a coroutine factory against an AsyncClient wired to the fake downstream."""

    def _run(factory: Callable[[httpx.AsyncClient], Awaitable[Any]]) -> Any:
        async def _main() -> Any:
            async with httpx.AsyncClient(transport=httpx.MockTransport(downstream)) as client:
                return await factory(client)

        return asyncio.run(_main())

    return _run


@pytest.fixture
def api_client(downstream: FakeDownstream, settings: Settings):
    async def _http_client():
        async with httpx.AsyncClient(transport=httpx.MockTransport(downstream)) as client:
            yield client

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_http_client] = _http_client
    limiter.enabled = False
    try:
        yield TestClient(app)
    finally:
        limiter.enabled = True
        app.dependency_overrides.clear()


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    return make_settings
