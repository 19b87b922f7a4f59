import httpx
import pytest
from fastapi.testclient import TestClient

from relay.config import RelaySettings, get_settings
from relay.constants import DEFAULT_MODEL, MAX_ATTEMPTS
from relay.relay import ResilientRelay
from web.app import app, get_relay

API_BASE = "https://upstream.test/v1beta/models/"
TEST_KEY = "test-key"


def gemini_body(text):
    """Minimal successful generateContent response carrying text."""
    return {
        "candidates": [
            {"content": {"role": "model", "parts": [{"text": text}]}, "finishReason": "STOP"}
        ],
        "modelVersion": "gemini-test",
    }


def ok(text):
    return httpx.Response(200, json=gemini_body(text))


class FakeUpstream:
    """Scripted stand-in for the Gemini API.

    Each call consumes the next scripted entry: an httpx.Response to return
    or an exception to raise. Once one entry is left it is repeated for
    every further call.
    """

    def __init__(self, *script):
        self.script = list(script)
        self.requests = []

    def handler(self, request):
        self.requests.append(request)
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, Exception):
            raise item
        # Fresh copy so a repeated entry is never read twice.
        return httpx.Response(item.status_code, content=item.content, headers=item.headers)

    @property
    def calls(self):
        return len(self.requests)


@pytest.fixture(autouse=True)
def reset_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings():
    return RelaySettings(
        api_key=TEST_KEY,
        api_base=API_BASE,
        default_model=DEFAULT_MODEL,
        max_attempts=MAX_ATTEMPTS,
        _env_file=None,
    )


@pytest.fixture
def sleeps():
    """Seconds passed to the relay's sleep, in call order."""
    return []


@pytest.fixture
def make_relay(settings, sleeps):
    """Build a ResilientRelay wired to a FakeUpstream, with instant sleeps and fixed jitter."""

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    def factory(upstream, **overrides):
        client = httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler))
        return ResilientRelay(
            settings.model_copy(update=overrides), client, sleep=fake_sleep, rand=lambda: 0.5
        )

    return factory


@pytest.fixture
def client_for(make_relay):
    """TestClient whose relay talks to the given FakeUpstream."""

    def factory(upstream, **overrides):
        relay = make_relay(upstream, **overrides)
        app.dependency_overrides[get_relay] = lambda: relay
        return TestClient(app)

    yield factory
    app.dependency_overrides.clear()
