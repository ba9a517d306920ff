"""
Webhook server for assistant fulfillment requests.

POST / takes an assistant request, runs the matching action against the
Istio control plane and answers with the sentence to speak. Failures are
logged with the action name; the caller only gets a generic message.
"""
import uuid
from typing import Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import PlainTextResponse, Response
from pydantic import ValidationError
from pydantic_core import PydanticSerializationError
from starlette.requests import ClientDisconnect

from logging_setup import get_logger, Component

from .actions import dispatch, unsupported_response
from .config import WebhookConfig
from .errors import ControlPlaneError, UnsupportedActionError
from .istio_client import IstioClient
from .models import AssistantRequest


router = APIRouter()
logger = get_logger(Component.WEBHOOK_SERVER)


def _new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


@router.post("/")
async def handle_webhook(request: Request) -> Response:
    """
    Assistant fulfillment endpoint.
    Decodes the intent, dispatches it and renders the response.
    """
    log = logger.with_request(_new_request_id())
    istio_client: IstioClient = request.app.state.istio_client

    try:
        body = await request.body()
    except ClientDisconnect:
        log.warning("Failed to read request body")
        return PlainTextResponse("Failed to read request body", status_code=500)

    try:
        ai_request = AssistantRequest.model_validate_json(body)
    except ValidationError as e:
        log.warning(
            "Failed to decode request body",
            body_size=len(body),
            error_count=e.error_count(),
        )
        return PlainTextResponse("Failed to decode request body", status_code=500)

    action = ai_request.result.action
    log.info("New request", action=action)

    try:
        ai_response = await dispatch(ai_request, istio_client)
    except UnsupportedActionError:
        log.warning("Unsupported action", action=action)
        ai_response = unsupported_response(action)
    except ControlPlaneError as e:
        log.error(
            "Failed to perform action",
            action=action,
            error=str(e),
            error_type=type(e).__name__,
        )
        return PlainTextResponse("Failed to perform action", status_code=500)
    except Exception as e:
        # Don't crash - log and return the same generic error
        log.exception("Action raised unexpectedly", action=action, error_type=type(e).__name__)
        return PlainTextResponse("Failed to perform action", status_code=500)

    try:
        out = ai_response.to_json()
    except PydanticSerializationError as e:
        log.error("Failed to generate response", action=action, error=str(e))
        return PlainTextResponse("unable to marshal response", status_code=500)

    log.info("Action performed", action=action)
    return Response(content=out, media_type="application/json")


@router.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok", "component": "istio_webhook"}


def create_app(
    config: WebhookConfig,
    istio_client: Optional[IstioClient] = None,
) -> FastAPI:
    """
    Build the webhook application.

    The config and client are created once and shared by every request.
    """
    app = FastAPI(title="Istio Action Webhook")
    app.state.config = config
    app.state.istio_client = istio_client or IstioClient(config)
    app.include_router(router)
    return app
