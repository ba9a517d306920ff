"""
Shared fixtures: a fake Istio control plane served by aiohttp's test server,
and a recording stand-in for the Istio client.
"""
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from istio_webhook.config import WebhookConfig
from istio_webhook.errors import ControlPlaneStatusError
from istio_webhook.models import RouteRule, Topology


REVIEWS_RULES_PATH = "/api/v1/scopes/global/subjects/reviews.default.svc.cluster.local/rules"
REVIEWS_ROUTE_PATH = "/v1alpha1/config/route-rule/default/reviews-default"
GRAPH_PATH = "/graph"

REVIEWS_ROUTE_RULE = {
    "type": "route-rule",
    "name": "reviews-default",
    "spec": {
        "destination": "reviews.default.svc.cluster.local",
        "precedence": 1,
        "route": [
            {"tags": {"version": "v1"}, "weight": 80},
            {"tags": {"version": "v2"}, "weight": 20},
        ],
        "httpReqTimeout": {"simpleTimeout": {"timeout": "10s"}},
        "httpReqRetries": {"simpleRetry": {"attempts": 3, "perTryTimeout": "2s"}},
    },
}


@dataclass
class RecordedRequest:
    method: str
    path: str
    headers: Dict[str, str]
    body: bytes


class FakeControlPlane:
    """Serves canned responses on one port for Mixer, Pilot and Servicegraph paths."""

    def __init__(self):
        self.requests: List[RecordedRequest] = []
        self._responses: Dict[Tuple[str, str], Tuple[int, bytes]] = {}
        self.address = ""

    def respond(self, method: str, path: str, status: int = 200, body: bytes = b"") -> None:
        self._responses[(method, path)] = (status, body)

    def config(self, **overrides) -> WebhookConfig:
        values = {
            "config_api_service": self.address,
            "mixer_api_service": self.address,
            "service_graph_service": self.address,
            "username": "admin",
            "password": "s3cret",
        }
        values.update(overrides)
        return WebhookConfig(**values)

    async def _handle(self, request: web.Request) -> web.Response:
        body = await request.read()
        self.requests.append(
            RecordedRequest(request.method, request.path, dict(request.headers), body)
        )
        status, payload = self._responses.get((request.method, request.path), (404, b"not found"))
        return web.Response(status=status, body=payload)

    @asynccontextmanager
    async def serve(self):
        app = web.Application()
        app.router.add_route("*", "/{tail:.*}", self._handle)
        async with TestServer(app) as server:
            self.address = f"{server.host}:{server.port}"
            yield self


@pytest_asyncio.fixture
async def control_plane():
    """A running fake control plane."""
    fake = FakeControlPlane()
    async with fake.serve():
        yield fake


@dataclass
class RecordingIstioClient:
    """Stand-in for IstioClient that records calls instead of making them."""

    route_rule: RouteRule = field(default_factory=lambda: RouteRule.model_validate(REVIEWS_ROUTE_RULE))
    fail_with_status: int = 0
    calls: List[Tuple] = field(default_factory=list)

    def _maybe_fail(self, operation: str) -> None:
        if self.fail_with_status:
            raise ControlPlaneStatusError(operation, self.fail_with_status)

    async def grant_access(self, to, from_):
        self.calls.append(("grant_access", to, from_))
        self._maybe_fail("AllowAccess")

    async def deny_access(self, to, from_):
        self.calls.append(("deny_access", to, from_))
        self._maybe_fail("DenyAccess")

    async def get_route_rule(self, name):
        self.calls.append(("get_route_rule", name))
        self._maybe_fail("GetRouteRule")
        return self.route_rule

    async def get_topology(self):
        self.calls.append(("get_topology",))
        self._maybe_fail("GetTopology")
        return Topology()


@pytest.fixture
def recording_client():
    return RecordingIstioClient()
