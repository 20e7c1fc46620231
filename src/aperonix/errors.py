"""Error taxonomy for aperonix.

Every error carries a ``user_message``: the text the session controller
writes into a failed assistant turn, and the text the proxy relays in its
JSON error body.
"""

__all__ = [
    "ApiError",
    "AperonixError",
    "ConfigurationError",
    "NetworkError",
    "NoModelAvailable",
    "NotFound",
    "StorageUnavailable",
    "ValidationError",
]

API_KEY_HELP_URL = "https://aistudio.google.com/apikey"


class AperonixError(Exception):
    """Base class for all classified aperonix failures."""

    def __init__(self, message: str, user_message: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.user_message = user_message or message


class ConfigurationError(AperonixError):
    """A required credential or setting is missing. Never retried."""


class ValidationError(AperonixError):
    """Caller input is malformed (missing or empty message list, wrong shape)."""


class NetworkError(AperonixError):
    """The provider host could not be reached (includes timeouts)."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            f"Network error: {reason}",
            user_message=(
                "Network error: Could not reach the Gemini API. "
                "Check your internet connection."
            ),
        )
        self.reason = reason


class ApiError(AperonixError):
    """The provider answered with a non-success status other than 404."""

    def __init__(self, status_code: int, message: str) -> None:
        if status_code == 429:
            user_message = (
                f"API quota exceeded (HTTP 429): {message}. Please try again later."
            )
        else:
            user_message = f"API connection failed (HTTP {status_code}): {message}"
        super().__init__(message, user_message=user_message)
        self.status_code = status_code


class NoModelAvailable(AperonixError):
    """Every fallback candidate was exhausted without a usable answer."""

    def __init__(self, tried: list[str], upstream_message: str | None = None) -> None:
        message = (
            "No available Gemini model found. "
            f"Please verify your API key is valid at {API_KEY_HELP_URL}"
        )
        super().__init__(message, user_message=f"API connection failed (HTTP 404): {message}")
        self.tried = list(tried)
        # Provider text from the last 404, relayed by the proxy
        self.upstream_message = upstream_message


class NotFound(AperonixError):
    """A store operation referenced a session id that does not exist."""

    def __init__(self, session_id: str, what: str = "Chat session") -> None:
        super().__init__(f"{what} not found: {session_id}")
        self.session_id = session_id


class StorageUnavailable(AperonixError):
    """Persisted state exists but could not be read.

    Distinct from an empty store: nothing may be written back until a
    later load succeeds.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(
            f"Storage unavailable: {reason}",
            user_message="Saved chats could not be loaded. New messages will not be saved.",
        )
        self.reason = reason
