"""
Wire models for the assistant webhook and the Istio control plane APIs.

Everything here lives for a single request: decoded from a body, used,
and dropped. Control plane documents are frozen once decoded.
"""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, StrictInt, model_validator
from pydantic.alias_generators import to_camel


ACTION_SOURCE = "Istio Action"


class _CaseInsensitiveModel(BaseModel):
    """
    Matches keys case-insensitively (`HttpReqRetries` and `httpReqRetries`
    both decode) and lets null values fall back to the field default, so
    partially filled documents decode to zero values.
    """

    @model_validator(mode="before")
    @classmethod
    def _normalize_keys(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        known = {}
        for name, field in cls.model_fields.items():
            alias = field.alias or name
            known[alias.lower()] = alias
            known[name.lower()] = alias

        normalized: Dict[str, Any] = {}
        for key, value in data.items():
            if value is None:
                continue
            target = known.get(key.lower(), key) if isinstance(key, str) else key
            normalized.setdefault(target, value)
        return normalized


class _IstioDocument(_CaseInsensitiveModel):
    """Base for documents served by the Istio APIs; frozen once decoded."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# --- Mixer (policy) ---


class Aspect(_IstioDocument):
    kind: str


class Rule(_IstioDocument):
    selector: str
    aspects: List[Aspect] = Field(default_factory=list)


class AccessRule(_IstioDocument):
    """Rule set attached to one subject in the global scope."""

    rules: List[Rule] = Field(default_factory=list)

    @classmethod
    def deny_from(cls, source_app: str) -> "AccessRule":
        """Rule set denying all traffic whose source carries app=<source_app>."""
        return cls(
            rules=[
                Rule(
                    selector=f'source.labels["app"]=="{source_app}"',
                    aspects=[Aspect(kind="denials")],
                )
            ]
        )


# --- Pilot (config) ---


class SimpleRetry(_IstioDocument):
    attempts: StrictInt = 0
    per_try_timeout: str = ""


class HttpReqRetries(_IstioDocument):
    simple_retry: SimpleRetry = Field(default_factory=SimpleRetry)


class SimpleTimeout(_IstioDocument):
    timeout: str = ""


class HttpReqTimeout(_IstioDocument):
    simple_timeout: SimpleTimeout = Field(default_factory=SimpleTimeout)


class Route(_IstioDocument):
    tags: Dict[str, str] = Field(default_factory=dict)
    weight: StrictInt = 0


class RouteSpec(_IstioDocument):
    destination: str = ""
    http_req_retries: HttpReqRetries = Field(default_factory=HttpReqRetries)
    http_req_timeout: HttpReqTimeout = Field(default_factory=HttpReqTimeout)
    precedence: StrictInt = 0
    route: List[Route] = Field(default_factory=list)


class RouteRule(_IstioDocument):
    type: str = ""
    name: str = ""
    spec: RouteSpec = Field(default_factory=RouteSpec)

    @property
    def retry_attempts(self) -> int:
        return self.spec.http_req_retries.simple_retry.attempts


# --- Servicegraph ---


class Edge(_IstioDocument):
    source: str = ""
    target: str = ""
    labels: Dict[str, str] = Field(default_factory=dict)


class Topology(_IstioDocument):
    nodes: Dict[str, Dict[str, str]] = Field(default_factory=dict)
    edges: List[Edge] = Field(default_factory=list)


# --- Assistant webhook ---


class IntentResult(_CaseInsensitiveModel):
    action: str = ""
    parameters: Dict[str, str] = Field(default_factory=dict)


class AssistantRequest(_CaseInsensitiveModel):
    """Fulfillment request posted by the assistant platform."""

    result: IntentResult = Field(default_factory=IntentResult)


class AssistantResponse(BaseModel):
    """Fulfillment response; the same text is spoken and displayed."""

    model_config = ConfigDict(populate_by_name=True)

    speech: str
    display_text: str = Field(alias="displayText")
    source: str = ACTION_SOURCE

    @classmethod
    def say(cls, message: str) -> "AssistantResponse":
        return cls(speech=message, display_text=message)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)
