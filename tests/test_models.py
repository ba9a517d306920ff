"""
Tests for wire models.

Verifies:
- RouteRule decoding keeps nested retry/timeout/route values
- Capitalised keys and nulls decode like the Istio API's Go decoder
- AccessRule denial shape
- Assistant request/response envelopes
"""
import json

import pytest
from pydantic import ValidationError

from istio_webhook.models import (
    AccessRule,
    AssistantRequest,
    AssistantResponse,
    RouteRule,
    Topology,
)

from conftest import REVIEWS_ROUTE_RULE


def test_route_rule_attempts_match_source_document():
    document = json.dumps(REVIEWS_ROUTE_RULE)

    rule = RouteRule.model_validate_json(document)

    assert rule.retry_attempts == REVIEWS_ROUTE_RULE["spec"]["httpReqRetries"]["simpleRetry"]["attempts"]
    assert rule.spec.destination == "reviews.default.svc.cluster.local"
    assert rule.spec.precedence == 1
    assert rule.spec.route[0].tags == {"version": "v1"}


def test_route_rule_accepts_capitalised_keys():
    document = {
        "Type": "route-rule",
        "Name": "reviews-default",
        "Spec": {
            "Destination": "reviews",
            "HttpReqRetries": {"SimpleRetry": {"Attempts": 5, "PerTryTimeout": "1s"}},
        },
    }

    rule = RouteRule.model_validate(document)

    assert rule.name == "reviews-default"
    assert rule.retry_attempts == 5
    assert rule.spec.http_req_retries.simple_retry.per_try_timeout == "1s"


def test_route_rule_missing_sections_decode_to_zero_values():
    rule = RouteRule.model_validate({"name": "ratings-default", "spec": {"httpReqRetries": None}})

    assert rule.retry_attempts == 0
    assert rule.spec.http_req_timeout.simple_timeout.timeout == ""
    assert rule.spec.route == []


def test_route_rule_is_immutable():
    rule = RouteRule.model_validate(REVIEWS_ROUTE_RULE)

    with pytest.raises(ValidationError):
        rule.name = "other"


def test_topology_defaults_to_empty_graph():
    topology = Topology.model_validate({})

    assert topology.nodes == {}
    assert topology.edges == []


def test_access_rule_deny_from():
    rule = AccessRule.deny_from("ratings")

    assert rule.model_dump(by_alias=True) == {
        "rules": [
            {
                "selector": 'source.labels["app"]=="ratings"',
                "aspects": [{"kind": "denials"}],
            }
        ]
    }


def test_assistant_request_extracts_action_and_parameters():
    body = json.dumps({
        "id": "a1b2",
        "result": {
            "source": "agent",
            "action": "getRoute",
            "parameters": {"serviceName": "reviews"},
        },
    })

    request = AssistantRequest.model_validate_json(body)

    assert request.result.action == "getRoute"
    assert request.result.parameters == {"serviceName": "reviews"}


def test_assistant_request_accepts_capitalised_keys():
    request = AssistantRequest.model_validate_json(
        '{"Result": {"Action": "getRoute", "Parameters": {"serviceName": "reviews"}}}'
    )

    assert request.result.action == "getRoute"
    assert request.result.parameters == {"serviceName": "reviews"}


def test_assistant_request_null_parameters_become_empty():
    request = AssistantRequest.model_validate({"result": {"action": "setRoute", "parameters": None}})

    assert request.result.parameters == {}


@pytest.mark.parametrize("body", ["{not json", "[]", '"text"', '{"result": "denyAccess"}'])
def test_assistant_request_rejects_malformed_bodies(body):
    with pytest.raises(ValidationError):
        AssistantRequest.model_validate_json(body)


def test_assistant_response_serializes_with_wire_names():
    response = AssistantResponse.say("hello")

    out = response.to_json()

    assert json.loads(out) == {
        "speech": "hello",
        "displayText": "hello",
        "source": "Istio Action",
    }
    # indented output
    assert "\n  " in out
