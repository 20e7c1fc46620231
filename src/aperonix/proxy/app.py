"""Stateless chat proxy for aperonix.

Forwards a browser's message list to Gemini with the server-side API key,
so the key never reaches the client. Nothing is stored between requests.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx
import pydantic
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from aperonix.config import ProxySettings
from aperonix.domain.message import Message
from aperonix.errors import ApiError, AperonixError, NoModelAvailable, ValidationError
from aperonix.infra.gemini.client import GeminiCompletionClient
from aperonix.logging import get_logger
from aperonix.models.message import MessageRole
from aperonix.models.provider import GenerationConfig
from aperonix.models.proxy import ProxyErrorResponse, ProxyMessage, ProxyRequest, ProxyResponse
from aperonix.services.composer import MessageComposer, SystemPromptMode

__all__ = [
    "MISSING_KEY_ERROR",
    "create_app",
]

logger = get_logger(__name__)

MISSING_KEY_ERROR = (
    "GEMINI_API_KEY not set. Add it to the server environment "
    "(or set APERONIX_PROXY_API_KEY) and restart the proxy."
)
INVALID_JSON_ERROR = "Invalid JSON body"
INVALID_REQUEST_ERROR = "Invalid request: messages array required"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        ProxyErrorResponse(error=message).model_dump(),
        status_code=status_code,
    )


def _to_message(item: ProxyMessage) -> Message:
    return Message(
        role=MessageRole(item.normalized_role),
        content=item.content,
        error=item.error,
    )


def create_app(
    settings: ProxySettings | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Create the proxy application.

    Args:
        settings: Proxy settings (loaded from the environment when omitted)
        http_client: Shared HTTP client for upstream calls

    Returns:
        FastAPI app serving ``/api/chat``
    """
    settings = settings or ProxySettings()
    api_key = settings.api_key.get_secret_value() if settings.api_key else None

    client = GeminiCompletionClient(
        api_key,
        settings.models,
        base_url=settings.base_url,
        timeout=settings.timeout_seconds,
        http_client=http_client,
        empty_response_text=settings.empty_response_text,
    )
    composer = MessageComposer(
        GenerationConfig(max_output_tokens=settings.max_output_tokens),
        mode=SystemPromptMode.INSTRUCTION,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("proxy_started", models=settings.models, key_configured=bool(api_key))
        yield
        await client.close()
        logger.info("proxy_stopped")

    app = FastAPI(
        title="Aperonix Proxy",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
    )
    app.state.client = client
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allow_origins,
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
        return _error(exc.status_code, str(exc.detail))

    @app.options("/api/chat")
    async def chat_options() -> Response:
        return Response(status_code=200)

    @app.post("/api/chat", response_model=ProxyResponse)
    async def chat(request: Request) -> Any:
        if not api_key:
            logger.error("proxy_key_missing")
            return _error(500, MISSING_KEY_ERROR)

        try:
            payload = await request.json()
        except ValueError:
            return _error(400, INVALID_JSON_ERROR)

        try:
            body = ProxyRequest.model_validate(payload)
        except pydantic.ValidationError:
            return _error(400, INVALID_REQUEST_ERROR)

        *prior, last = body.messages
        if last.normalized_role != "user":
            return _error(400, INVALID_REQUEST_ERROR)

        try:
            llm_request = composer.compose(
                settings.system_prompt,
                [_to_message(m) for m in prior],
                last.content,
            )
        except ValidationError:
            return _error(400, INVALID_REQUEST_ERROR)

        try:
            content = await client.complete(llm_request)
        except ApiError as e:
            return _error(e.status_code, e.message)
        except NoModelAvailable as e:
            return _error(404, e.upstream_message or e.message)
        except AperonixError as e:
            logger.error("proxy_upstream_failed", error=e.message)
            reason = getattr(e, "reason", e.message)
            return _error(500, f"Failed to reach Gemini API: {reason}")
        except Exception as e:
            logger.exception("proxy_failed")
            return _error(500, f"Failed to reach Gemini API: {e}")

        return ProxyResponse(content=content)

    return app
