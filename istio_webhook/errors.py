"""
Error types for the Istio action webhook.

Every failure talking to the control plane surfaces as a ControlPlaneError.
The subclasses only tell the logs what went wrong; the webhook answers all
of them the same way and never forwards the underlying cause.
"""
from typing import Optional


class ControlPlaneError(Exception):
    """A call to the Istio control plane failed."""

    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(message)
        self.operation = operation


class ControlPlaneTransportError(ControlPlaneError):
    """The service could not be reached (DNS, connection refused, reset, ...)."""


class ControlPlaneStatusError(ControlPlaneError):
    """The service answered with a non-200 status code."""

    def __init__(self, operation: str, status_code: int):
        super().__init__(
            f"{operation} error: non-200 status code: {status_code}",
            operation=operation,
        )
        self.status_code = status_code


class ControlPlaneDecodeError(ControlPlaneError):
    """The service answered 200 but the body did not decode."""


class UnsupportedActionError(Exception):
    """No handler is registered for the requested action."""

    def __init__(self, action: str):
        super().__init__(f"unsupported action: {action!r}")
        self.action = action
