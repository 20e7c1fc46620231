"""Proxy endpoint request/response models for aperonix."""

from typing import Literal

from pydantic import BaseModel, Field

__all__ = [
    "ProxyErrorResponse",
    "ProxyMessage",
    "ProxyRequest",
    "ProxyResponse",
]


class ProxyMessage(BaseModel, frozen=True):
    """One message as posted by the browser.

    Any role other than ``user`` is treated as an assistant turn.
    """

    role: str
    content: str
    error: str | None = None

    @property
    def normalized_role(self) -> Literal["user", "assistant"]:
        return "user" if self.role == "user" else "assistant"


class ProxyRequest(BaseModel, frozen=True):
    """Body accepted by ``POST /api/chat``."""

    messages: list[ProxyMessage] = Field(min_length=1)


class ProxyResponse(BaseModel, frozen=True):
    """Successful proxy answer."""

    content: str


class ProxyErrorResponse(BaseModel, frozen=True):
    """Error body returned with a matching HTTP status."""

    error: str
