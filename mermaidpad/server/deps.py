"""FastAPI dependencies resolving services and the caller identity."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from mermaidpad.assistant import Assistant
from mermaidpad.errors import (
    AccessDeniedError,
    AssistantNotConfiguredError,
    NotSignedInError,
    RateLimitedError,
)

from .auth import IDENTITY_HEADER
from .services import ServiceContainer


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


Services = Annotated[ServiceContainer, Depends(get_services)]


def signed_in_identity(request: Request) -> str:
    """Identity of the caller; 401 when the proxy did not attach one."""

    identity = (request.headers.get(IDENTITY_HEADER) or "").strip().lower()
    if not identity:
        raise NotSignedInError("Sign in to view usage.")
    return identity


def allowed_identity(request: Request, services: Services) -> str:
    """Identity of an allow-listed caller; 403 otherwise."""

    identity = (request.headers.get(IDENTITY_HEADER) or "").strip().lower()
    if not services.access.is_allowed(identity):
        raise AccessDeniedError("Access denied. You are not allowed to use this app.")
    return identity


def rate_limited_identity(
    services: Services,
    identity: Annotated[str, Depends(allowed_identity)],
) -> str:
    """Allowed identity that still has requests left in its window."""

    decision = services.rate_limiter.check(identity)
    if not decision.allowed:
        raise RateLimitedError(decision.retry_after_seconds)
    return identity


def configured_assistant(services: Services) -> Assistant:
    if services.assistant is None:
        raise AssistantNotConfiguredError()
    return services.assistant


__all__ = [
    "Services",
    "allowed_identity",
    "configured_assistant",
    "get_services",
    "rate_limited_identity",
    "signed_in_identity",
]
