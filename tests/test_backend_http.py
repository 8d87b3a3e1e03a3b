"""
Tests for the HTTP backend client, driven through httpx.MockTransport.
"""

import json

import httpx
import pytest

from shadowbubble.backend import (
    BackendClient,
    BackendError,
    BackendResponseError,
    BackendUnavailableError,
    HttpBackendClient,
)
from shadowbubble.config import Settings
from shadowbubble.models import ActivityCategory, SnoozeDuration

BASE_URL = "http://test/api/v1"


class Recorder:
    """Routes requests to canned responses and remembers what was sent."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], httpx.Response] = {}

    def route(self, method: str, path: str, response: httpx.Response) -> None:
        self.routes[(method, path)] = response

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.routes.get((request.method, request.url.path), httpx.Response(200, json={}))

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
async def client(recorder):
    http = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(recorder))
    backend = HttpBackendClient(Settings(backend_url=BASE_URL), client=http)
    yield backend
    await backend.close()


def test_satisfies_protocol():
    assert isinstance(HttpBackendClient(Settings(backend_url=BASE_URL)), BackendClient)


class TestWrites:
    async def test_reset_user_activity(self, client, recorder):
        await client.reset_user_activity(ActivityCategory.POINTER)

        assert recorder.last.method == "POST"
        assert recorder.last.url.path == "/api/v1/activity/reset"
        assert json.loads(recorder.last.content) == {"activity_type": "pointer"}

    async def test_set_bubble_visible(self, client, recorder):
        await client.set_bubble_visible(False)

        assert recorder.last.url.path == "/api/v1/bubble/visible"
        assert json.loads(recorder.last.content) == {"visible": False}

    async def test_dispositions(self, client, recorder):
        await client.record_bubble_dismissed()
        await client.record_user_interaction()

        paths = [r.url.path for r in recorder.requests]
        assert paths == ["/api/v1/triggers/dismissed", "/api/v1/triggers/interaction"]

    async def test_snooze(self, client, recorder):
        await client.snooze_triggers(SnoozeDuration.TWO_HOURS, 1_700_007_200)

        assert recorder.last.url.path == "/api/v1/snooze"
        assert json.loads(recorder.last.content) == {"duration": "2h", "until": 1_700_007_200}

    async def test_unsnooze(self, client, recorder):
        await client.unsnooze_triggers()

        assert recorder.last.method == "DELETE"
        assert recorder.last.url.path == "/api/v1/snooze"

    async def test_allowlist_name_is_escaped(self, client, recorder):
        await client.add_to_allowlist("Visual Studio/Code")

        assert recorder.last.method == "POST"
        assert recorder.last.url.raw_path == b"/api/v1/triggers/allowlist/Visual%20Studio%2FCode"

        await client.remove_from_allowlist("Figma")
        assert recorder.last.method == "DELETE"


class TestReads:
    async def test_snooze_status(self, client, recorder):
        recorder.route("GET", "/api/v1/snooze", httpx.Response(200, json={"snoozed_until": 1700001800}))

        assert await client.get_snooze_status() == 1700001800.0

    async def test_snooze_status_none(self, client, recorder):
        recorder.route("GET", "/api/v1/snooze", httpx.Response(200, json={"snoozed_until": None}))

        assert await client.get_snooze_status() is None

    async def test_snooze_status_invalid(self, client, recorder):
        recorder.route("GET", "/api/v1/snooze", httpx.Response(200, json={"snoozed_until": "soon"}))

        with pytest.raises(BackendError):
            await client.get_snooze_status()

    async def test_trigger_stats(self, client, recorder):
        recorder.route(
            "GET",
            "/api/v1/triggers/stats",
            httpx.Response(
                200,
                json={
                    "total_triggers": 12,
                    "triggers_per_app": {"Cursor": 9, "Figma": 3},
                    "current_cooldown_ms": 30000,
                    "allowlist": ["Cursor"],
                    "cooldown_base_ms": 30000,
                    "cooldown_dismiss_ms": 120000,
                },
            ),
        )

        stats = await client.get_trigger_stats()

        assert stats.total_triggers == 12
        assert stats.triggers_per_app["Cursor"] == 9
        assert stats.allowlist == ["Cursor"]

    async def test_trigger_stats_invalid(self, client, recorder):
        recorder.route(
            "GET", "/api/v1/triggers/stats", httpx.Response(200, json={"total_triggers": "many"})
        )

        with pytest.raises(BackendError):
            await client.get_trigger_stats()


class TestErrors:
    async def test_http_error_status(self, client, recorder):
        recorder.route("POST", "/api/v1/triggers/start", httpx.Response(503))

        with pytest.raises(BackendResponseError) as exc_info:
            await client.start_trigger_loop()

        assert exc_info.value.status_code == 503

    async def test_connection_error(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        http = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(refuse))
        backend = HttpBackendClient(Settings(backend_url=BASE_URL), client=http)

        with pytest.raises(BackendUnavailableError):
            await backend.start_trigger_loop()
        await backend.close()


class TestEventStream:
    async def test_yields_well_formed_events(self, client, recorder, caplog):
        body = "\n".join(
            [
                json.dumps({"event": "trigger-fired", "payload": {"id": "ctx-1"}}),
                "",
                "not json",
                json.dumps({"payload": {}}),
                json.dumps({"event": "trigger-fired", "payload": {"id": "ctx-2"}}),
            ]
        )
        recorder.route("GET", "/api/v1/events", httpx.Response(200, text=body))

        events = [event async for event in client.stream_events()]

        assert [e["payload"]["id"] for e in events] == ["ctx-1", "ctx-2"]
        assert "Skipping malformed event line" in caplog.text
        assert "Skipping event without a name" in caplog.text

    async def test_stream_error_status(self, client, recorder):
        recorder.route("GET", "/api/v1/events", httpx.Response(401))

        with pytest.raises(BackendResponseError):
            async for _ in client.stream_events():
                pass
