"""Shared fixtures for ICP Builder tests."""

import json
from typing import Any, Callable, List, Optional, Union

import httpx
import pytest
from fastapi.testclient import TestClient

from icp_builder.api.endpoints import create_app
from icp_builder.cache import TTLCache
from icp_builder.engine import ICPEngine
from icp_builder.storage.auth import InMemoryAuthenticator
from icp_builder.storage.repository import InMemoryRepository

TEST_TOKEN = "test-token"
TEST_USER = "user-1"

Reply = Union[str, None, Exception, dict]


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeCompletionClient:
    """
    Stand-in for CompletionClient.

    Replies are either a fixed list consumed in order or produced by a
    responder(system_prompt, user_prompt) callable. Dicts are sent as JSON,
    exceptions are raised.
    """

    configured = True

    def __init__(
        self,
        replies: Optional[List[Reply]] = None,
        responder: Optional[Callable[[str, str], Reply]] = None,
    ):
        self.replies = list(replies or [])
        self.responder = responder
        self.calls: List[dict] = []

    async def complete(self, system_prompt: str, user_prompt: str, json_mode: bool = False):
        self.calls.append(
            {"system": system_prompt, "user": user_prompt, "json_mode": json_mode}
        )
        if self.responder is not None:
            reply = self.responder(system_prompt, user_prompt)
        elif self.replies:
            reply = self.replies.pop(0)
        else:
            reply = None

        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, dict):
            return json.dumps(reply)
        return reply


def html_transport(html: str, status_code: int = 200, counter: Optional[list] = None):
    """MockTransport serving the same page for every request."""

    def handler(request: httpx.Request) -> httpx.Response:
        if counter is not None:
            counter.append(request)
        return httpx.Response(status_code, text=html, headers={"content-type": "text/html"})

    return httpx.MockTransport(handler)


def failing_transport(counter: Optional[list] = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if counter is not None:
            counter.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    return httpx.MockTransport(handler)


SAMPLE_HTML = """
<html>
  <head>
    <title>Acme Analytics - Insights for revenue teams</title>
    <meta name="description" content="Acme builds analytics for B2B revenue teams.">
  </head>
  <body>
    <h1>Revenue analytics that sales teams love</h1>
    <p>Short.</p>
    <p>Acme helps revenue leaders forecast pipeline with confidence.</p>
    <p>Trusted by more than 500 B2B software companies worldwide.</p>
  </body>
</html>
"""

ICP_REPLY = {
    "title": "Mid-Market SaaS Revenue Teams",
    "description": "B2B software companies with dedicated revenue operations.",
    "companySizeMin": 100,
    "companySizeMax": 1000,
    "revenueMin": 10_000_000,
    "revenueMax": 200_000_000,
    "industries": ["SaaS", "FinTech"],
    "geographicRegions": ["North America", "Europe"],
    "fundingStages": ["Series B", "Series C"],
    "personas": [
        {
            "title": "Revenue Operations Leader",
            "role": "VP Revenue Operations",
            "department": "Revenue Operations",
            "seniorityLevel": "VP",
            "painPoints": ["Unreliable forecasts"],
            "goals": ["Predictable pipeline"],
        },
        {
            "title": "Sales Executive",
            "role": "CRO",
            "department": "Sales",
            "seniorityLevel": "C-Level",
            "painPoints": ["Missed targets"],
            "goals": ["Hit quota"],
        },
    ],
}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TTLCache(ttl_seconds=300, clock=clock)


@pytest.fixture
def completion():
    return FakeCompletionClient()


@pytest.fixture
def repository():
    return InMemoryRepository()


@pytest.fixture
def authenticator():
    return InMemoryAuthenticator({TEST_TOKEN: TEST_USER})


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {TEST_TOKEN}"}


def make_engine(completion, cache, transport: Optional[httpx.MockTransport] = None) -> ICPEngine:
    http_client = httpx.AsyncClient(transport=transport or html_transport(SAMPLE_HTML))
    return ICPEngine(completion_client=completion, cache=cache, http_client=http_client)


def make_client(engine: ICPEngine, repository, authenticator) -> TestClient:
    app = create_app(engine=engine, repository=repository, authenticator=authenticator)
    return TestClient(app)


def company_reply(name: str, industry: str = "SaaS") -> dict:
    return {
        "name": name,
        "description": f"{name} sells software.",
        "industry": industry,
        "additionalContext": "Sells to mid-market companies",
    }


def qualification_reply(score: Any, fit_level: str = "poor") -> dict:
    return {
        "score": score,
        "fitLevel": fit_level,
        "reasoning": "Strong industry alignment.",
        "strengths": ["Industry match"],
        "weaknesses": ["Unknown revenue"],
        "recommendation": "Schedule discovery call",
        "metadata": {"industryMatch": True},
    }
