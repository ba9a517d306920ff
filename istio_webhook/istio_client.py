"""
Istio control plane client.

Talks to three services:
- Mixer: access-control rules for a subject in the global scope
- Pilot: route rules
- Servicegraph: the service topology snapshot

Each call opens its own aiohttp session and performs exactly one request.
There is no retry and no cache; the transport's default timeout applies.
"""

from __future__ import annotations

import asyncio
import json
import time
from typing import Any, Type, TypeVar

import aiohttp
from pydantic import BaseModel, ValidationError

from logging_setup import get_logger, Component

from .config import WebhookConfig
from .errors import (
    ControlPlaneDecodeError,
    ControlPlaneStatusError,
    ControlPlaneTransportError,
)
from .models import AccessRule, RouteRule, Topology


logger = get_logger(Component.ISTIO_CLIENT)

ModelT = TypeVar("ModelT", bound=BaseModel)


class IstioClient:
    """Stateless client for the Istio control plane. Safe to share between requests."""

    def __init__(self, config: WebhookConfig):
        self._config = config

    @property
    def config(self) -> WebhookConfig:
        return self._config

    def _subject_rules_url(self, to: str) -> str:
        return (
            f"http://{self._config.mixer_api_service}"
            f"/api/v1/scopes/global/subjects/{to}.default.svc.cluster.local/rules"
        )

    def _route_rule_url(self, name: str) -> str:
        return (
            f"http://{self._config.config_api_service}"
            f"/v1alpha1/config/route-rule/default/{name}-default"
        )

    def _graph_url(self) -> str:
        return f"http://{self._config.service_graph_service}/graph"

    async def grant_access(self, to: str, from_: str) -> None:
        """
        Lift access restrictions on `to` by deleting its rule set.

        The whole rule set for the subject is removed, not just the rule
        mentioning `from_`.
        """
        await self._request("AllowAccess", "DELETE", self._subject_rules_url(to))

    async def deny_access(self, to: str, from_: str) -> None:
        """
        Deny traffic from `from_` to `to`.

        Replaces the subject's rule set with a single denial rule; any rules
        previously attached to `to` are lost.
        """
        rule = AccessRule.deny_from(from_)
        await self._request(
            "DenyAccess",
            "PUT",
            self._subject_rules_url(to),
            data=rule.model_dump_json(by_alias=True),
            headers={"Content-Type": "application/json"},
        )

    async def get_route_rule(self, name: str) -> RouteRule:
        """Fetch the default route rule for service `name`."""
        body = await self._request(
            "GetRouteRule",
            "GET",
            self._route_rule_url(name),
            headers={
                "Authorization": aiohttp.encode_basic_auth(
                    self._config.username, self._config.password
                ),
            },
        )
        return self._decode("GetRouteRule", body, RouteRule)

    async def get_topology(self) -> Topology:
        """Fetch the full service graph snapshot."""
        body = await self._request("GetTopology", "GET", self._graph_url())
        return self._decode("GetTopology", body, Topology)

    async def _request(
        self,
        operation: str,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> bytes:
        start_ts = time.time()
        logger.debug("Control plane request", operation=operation, method=method, url=url)
        try:
            async with aiohttp.ClientSession() as s:
                async with s.request(method, url, **kwargs) as resp:
                    if resp.status != 200:
                        logger.error(
                            f"{operation} error: non-200 status code: {resp.status}",
                            operation=operation,
                            url=url,
                            status=resp.status,
                            latency_ms=int((time.time() - start_ts) * 1000),
                        )
                        raise ControlPlaneStatusError(operation, resp.status)
                    body = await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(
                "Control plane request failed",
                operation=operation,
                url=url,
                error=str(e),
                error_type=type(e).__name__,
                latency_ms=int((time.time() - start_ts) * 1000),
            )
            raise ControlPlaneTransportError(f"{operation} error: {e}", operation=operation) from e

        logger.debug(
            "Control plane response",
            operation=operation,
            url=url,
            status=200,
            body_size=len(body),
            latency_ms=int((time.time() - start_ts) * 1000),
        )
        return body

    @staticmethod
    def _decode(operation: str, body: bytes, model: Type[ModelT]) -> ModelT:
        try:
            return model.model_validate(json.loads(body))
        except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as e:
            logger.warning(
                "Control plane response did not decode",
                operation=operation,
                error_type=type(e).__name__,
                body_size=len(body),
            )
            raise ControlPlaneDecodeError(f"{operation} error: {e}", operation=operation) from e

