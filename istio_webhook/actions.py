"""
Assistant action handlers.

Each handler takes the intent parameters and the Istio client and returns
the sentence to speak. Actions are selected by exact name; both the names
the agent emits (`denyAccess`) and their hyphenated form (`deny-access`)
are registered.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Dict, Mapping

from logging_setup import get_logger, Component

from .errors import UnsupportedActionError
from .istio_client import IstioClient
from .models import AssistantRequest, AssistantResponse


logger = get_logger(Component.DISPATCHER)

Handler = Callable[[Mapping[str, str], IstioClient], Awaitable[AssistantResponse]]


def _not_implemented(action: str) -> AssistantResponse:
    return AssistantResponse.say(f"The {action} action is not implemented yet.")


async def allow_access(params: Mapping[str, str], istio_client: IstioClient) -> AssistantResponse:
    return _not_implemented("allowAccess")


async def deny_access(params: Mapping[str, str], istio_client: IstioClient) -> AssistantResponse:
    to = params.get("to", "")
    from_ = params.get("from", "")
    await istio_client.deny_access(to, from_)

    return AssistantResponse.say(
        f"Access to the {to} service is prohibited from the {from_} service."
    )


async def get_topology(params: Mapping[str, str], istio_client: IstioClient) -> AssistantResponse:
    return _not_implemented("getTopology")


async def set_route(params: Mapping[str, str], istio_client: IstioClient) -> AssistantResponse:
    return _not_implemented("setRoute")


async def get_route(params: Mapping[str, str], istio_client: IstioClient) -> AssistantResponse:
    name = params.get("serviceName", "")
    route_rule = await istio_client.get_route_rule(name)

    return AssistantResponse.say(
        f"The {name} route has HTTP retries set to {route_rule.retry_attempts}"
    )


ACTIONS: Dict[str, Handler] = {
    "allowAccess": allow_access,
    "denyAccess": deny_access,
    "getTopology": get_topology,
    "setRoute": set_route,
    "getRoute": get_route,
    "allow-access": allow_access,
    "deny-access": deny_access,
    "get-topology": get_topology,
    "set-route": set_route,
    "get-route": get_route,
}


def unsupported_response(action: str) -> AssistantResponse:
    return AssistantResponse.say(f"Sorry, the {action} action is not supported.")


async def dispatch(request: AssistantRequest, istio_client: IstioClient) -> AssistantResponse:
    """
    Run the handler registered for the request's action.

    Raises UnsupportedActionError when no handler matches, and lets
    ControlPlaneError from the handler propagate.
    """
    action = request.result.action
    handler = ACTIONS.get(action)
    if handler is None:
        raise UnsupportedActionError(action)

    logger.info("New request for action", action=action, handler=handler.__name__)
    return await handler(request.result.parameters, istio_client)
