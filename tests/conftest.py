import json
import random

import pytest
from fastapi.testclient import TestClient

from somaai.config import OpenRouterConfig, ServerConfig, Settings
from somaai.errors import MissingCredential
from somaai.main import create_app

ORIGIN = "http://localhost:5173"


class FakeClient:
    """Scripted stand-in for OpenRouterClient; records every call."""

    def __init__(self, responses=(), configured=True):
        self.responses = list(responses)
        self.calls = []
        self.configured = configured

    async def complete(self, messages, *, model=None, temperature=0.3, max_tokens=800):
        if not self.configured:
            raise MissingCredential("no key")
        self.calls.append(
            {"messages": list(messages), "temperature": temperature, "max_tokens": max_tokens}
        )
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


def structured_json(**overrides):
    data = {
        "summary": "Likely a tension headache.",
        "possible_causes": [{"title": "Tension", "brief": "Stress and posture."}],
        "next_steps": [{"action": "Drink water", "why": "Dehydration worsens headaches."}],
        "urgency": "low",
        "grounding": [],
        "cosmic": False,
    }
    data.update(overrides)
    return json.dumps(data)


@pytest.fixture
def fake_client():
    return FakeClient


@pytest.fixture
def make_api():
    def _make(client=None, rng=None, **server):
        settings = Settings(
            openrouter=OpenRouterConfig(api_key=""),
            server=ServerConfig(frontend_url=ORIGIN, **server),
        )
        app = create_app(
            settings,
            client=client if client is not None else FakeClient(configured=False),
            rng=rng or random.Random(0),
        )
        return TestClient(app)

    return _make


def guarded_headers(api: TestClient) -> dict[str, str]:
    token = api.get("/api/csrf-token").json()["csrfToken"]
    return {"Origin": ORIGIN, "X-CSRF-Token": token}
