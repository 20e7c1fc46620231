"""Identity short-circuit for aperonix.

Questions about who the assistant is or who made it are answered
locally from a fixed table, without calling the provider.
"""

import re

from aperonix.config import IdentitySettings

__all__ = [
    "IDENTITY_PATTERNS",
    "IdentityResponder",
]

IDENTITY_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"who\s+(made|created|built|developed|owns?|is\s+your\s+(owner|creator))",
        r"who('s|’s|\s+is)\s+your\s+(owner|creator|developer|maker)",
        r"your\s+(owner|creator|developer|maker)",
        r"who\s+are\s+you",
        r"what('s|’s|\s+is)\s+your\s+name",
        r"tell\s+me\s+about\s+(yourself|you)",
        r"what\s+are\s+you",
        r"who\s+do\s+you\s+belong\s+to",
    )
)

_NAME_PATTERN = re.compile(r"what('s|’s|\s+is)\s+your\s+name", re.IGNORECASE)


class IdentityResponder:
    """Matches identity questions and produces the fixed answer.

    Example:
        responder = IdentityResponder()
        if responder.matches(text):
            answer = responder.respond(text)
    """

    def __init__(self, settings: IdentitySettings | None = None) -> None:
        self._settings = settings or IdentitySettings()

    @property
    def delay_seconds(self) -> float:
        """Simulated thinking time before the answer is shown."""
        return self._settings.delay_seconds

    @property
    def ownership_answer(self) -> str:
        s = self._settings
        return f"I am {s.assistant_name}, created and owned by {s.owner}."

    @property
    def name_answer(self) -> str:
        s = self._settings
        return (
            f"My name is {s.assistant_name}. "
            f"I am an AI assistant created and owned by {s.owner}."
        )

    def matches(self, text: str) -> bool:
        return any(p.search(text) for p in IDENTITY_PATTERNS)

    def respond(self, text: str) -> str | None:
        """Fixed answer for an identity question, or None for any other text."""
        if not self.matches(text):
            return None
        if _NAME_PATTERN.search(text):
            return self.name_answer
        return self.ownership_answer
