"""Gemini completion client for aperonix.

This module provides the Gemini implementation of the completion
interface, with tiered model fallback: candidates are tried from the
most capable down to a widely available baseline, because model
availability varies by account and region and cannot be queried up front.
"""

from collections.abc import Sequence
from typing import Any, Self

import httpx

from aperonix.config import ProviderSettings
from aperonix.errors import ApiError, ConfigurationError, NetworkError, NoModelAvailable
from aperonix.interfaces.completion import CompletionInterface
from aperonix.logging import get_logger
from aperonix.models.provider import ProviderRequest

__all__ = [
    "SAFETY_DECLINED_MESSAGE",
    "GeminiCompletionClient",
]

logger = get_logger(__name__)

SAFETY_DECLINED_MESSAGE = (
    "I apologize, but I cannot provide a response to that request due to safety guidelines."
)

MISSING_KEY_MESSAGE = (
    "API connection failed. Please add your Gemini API key in settings "
    "to enable chat functionality."
)


class GeminiCompletionClient(CompletionInterface):
    """Gemini ``generateContent`` client with model fallback.

    For each candidate model, in order:
    - transport failure: NetworkError, stop immediately
    - HTTP 404: model unavailable, try the next candidate
    - other non-2xx: ApiError with the upstream status, stop immediately
    - 2xx with text: return it
    - 2xx with a safety block: return the fixed decline message
    - 2xx with nothing usable: try the next candidate (or return
      ``empty_response_text`` when one is configured)
    Exhausting every candidate raises NoModelAvailable.

    Example:
        async with GeminiCompletionClient(api_key, ["gemini-2.0-flash"]) as client:
            text = await client.complete(request)
    """

    config_class = ProviderSettings

    def __init__(
        self,
        api_key: str | None,
        models: Sequence[str],
        *,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta/models",
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
        empty_response_text: str | None = None,
    ) -> None:
        """Initialize Gemini client.

        Args:
            api_key: Gemini API key, sent as the ``key`` query parameter
            models: Fallback candidates, most capable first
            base_url: Models endpoint base
            timeout: Request timeout in seconds
            http_client: Shared HTTP client (not closed by this client)
            empty_response_text: Answer to return instead of falling back
                when a model replies with no content
        """
        if not models:
            raise ValueError("at least one candidate model is required")
        self._api_key = api_key.strip() if api_key else None
        self._models = tuple(models)
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._http = http_client
        self._owns_http = http_client is None
        self._empty_response_text = empty_response_text

    @classmethod
    async def from_config(cls, config: ProviderSettings) -> Self:
        """Factory method for Aperonix instantiation."""
        api_key = config.api_key.get_secret_value() if config.api_key else None
        return cls(
            api_key,
            config.models,
            base_url=config.base_url,
            timeout=config.timeout_seconds,
        )

    @classmethod
    async def from_dict(cls, config: dict[str, Any]) -> Self:
        """Factory method for custom config dict."""
        return await cls.from_config(ProviderSettings(**config))

    @property
    def models(self) -> tuple[str, ...]:
        return self._models

    def endpoint(self, model: str) -> str:
        """URL of ``generateContent`` for one model (without the key)."""
        return f"{self._base_url}/{model}:generateContent"

    async def complete(self, request: ProviderRequest) -> str:
        """Send ``request`` to each candidate model until one answers.

        Args:
            request: Composed provider request

        Returns:
            Completion text, or the fixed decline message on a safety block

        Raises:
            ConfigurationError: No API key configured
            NetworkError: The provider could not be reached
            ApiError: The provider rejected the request
            NoModelAvailable: No candidate produced an answer
        """
        if not self._api_key:
            raise ConfigurationError("Gemini API key is not configured", MISSING_KEY_MESSAGE)

        payload = request.to_payload()
        http = self._client()
        not_found_message: str | None = None

        for model in self._models:
            try:
                response = await http.post(
                    self.endpoint(model),
                    params={"key": self._api_key},
                    json=payload,
                    timeout=self._timeout,
                )
            except httpx.TimeoutException as e:
                logger.warning("provider_timeout", model=model, timeout=self._timeout)
                raise NetworkError(f"request timed out after {self._timeout:g}s") from e
            except httpx.TransportError as e:
                logger.warning("provider_unreachable", model=model, error=type(e).__name__)
                raise NetworkError(str(e) or type(e).__name__) from e

            if response.status_code == 404:
                logger.warning("model_not_found", model=model)
                not_found_message = _upstream_error(response) or not_found_message
                continue

            if not response.is_success:
                message = _error_message(response)
                logger.warning(
                    "provider_error",
                    model=model,
                    status_code=response.status_code,
                    error=message,
                )
                raise ApiError(response.status_code, message)

            data = _json_or_none(response)
            if isinstance(data, dict) and isinstance(data.get("error"), dict):
                message = data["error"].get("message") or "Unknown error"
                raise ApiError(response.status_code, message)

            text = _extract_text(data)
            if text:
                logger.info("completion_succeeded", model=model, chars=len(text))
                return text

            if _is_safety_block(data):
                logger.info("completion_blocked", model=model)
                return SAFETY_DECLINED_MESSAGE

            if self._empty_response_text is not None:
                logger.info("completion_empty", model=model)
                return self._empty_response_text

            logger.warning("completion_empty", model=model, action="trying next model")

        raise NoModelAvailable(list(self._models), upstream_message=not_found_message)

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> "GeminiCompletionClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                headers={"Content-Type": "application/json"},
            )
        return self._http


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _upstream_error(response: httpx.Response) -> str | None:
    """Upstream ``error.message``, if the body carries one."""
    data = _json_or_none(response)
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
    return None


def _error_message(response: httpx.Response) -> str:
    return _upstream_error(response) or "Unknown error"


def _first_candidate(data: Any) -> dict[str, Any] | None:
    if not isinstance(data, dict):
        return None
    candidates = data.get("candidates")
    if isinstance(candidates, list) and candidates and isinstance(candidates[0], dict):
        return candidates[0]
    return None


def _extract_text(data: Any) -> str | None:
    """Joined text of ``candidates[0].content.parts``."""
    candidate = _first_candidate(data)
    if candidate is None:
        return None
    content = candidate.get("content")
    if not isinstance(content, dict):
        return None
    parts = content.get("parts")
    if not isinstance(parts, list):
        return None
    texts = [p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)]
    return "".join(texts) or None


def _is_safety_block(data: Any) -> bool:
    candidate = _first_candidate(data)
    if candidate is not None and candidate.get("finishReason") == "SAFETY":
        return True
    if isinstance(data, dict):
        feedback = data.get("promptFeedback")
        if isinstance(feedback, dict) and feedback.get("blockReason"):
            return True
    return False
