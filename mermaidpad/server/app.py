"""FastAPI application for the diagram assistant service."""

from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from mermaidpad.assistant import Assistant
from mermaidpad.config import ServerConfig, load_config
from mermaidpad.errors import AssistantError, InputRejectedError, RateLimitedError

from .routes import router
from .services import ServiceContainer

LOG = logging.getLogger(__name__)


def create_app(
    config: ServerConfig | None = None,
    *,
    assistant: Assistant | None = None,
) -> FastAPI:
    """Build the app with a fresh service container."""

    server_config = config or load_config().server.with_env()
    app = FastAPI(title="mermaidpad assistant", version="0.1.0")
    app.state.services = ServiceContainer.from_config(server_config, assistant=assistant)
    app.add_exception_handler(AssistantError, _assistant_error_handler)
    app.add_exception_handler(RequestValidationError, _invalid_body_handler)
    app.include_router(router)
    return app


async def _assistant_error_handler(request: Request, exc: AssistantError) -> JSONResponse:
    headers: dict[str, str] | None = None
    if isinstance(exc, RateLimitedError):
        headers = {"Retry-After": str(exc.retry_after)}
    if exc.status_code >= 500:
        LOG.warning("Assistant request failed", extra={"path": request.url.path, "code": exc.code})
    return JSONResponse(
        {"error": exc.message, "code": exc.code},
        status_code=exc.status_code,
        headers=headers,
    )


async def _invalid_body_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return await _assistant_error_handler(request, InputRejectedError("Invalid request body"))


def main() -> None:
    """Run the assistant service with uvicorn."""

    config = load_config().server.with_env()
    logging.basicConfig(level=config.log_level.upper())
    uvicorn.run(create_app(config), host=config.host, port=config.port, log_level=config.log_level)


if __name__ == "__main__":
    main()
