"""Gemini provider client for aperonix."""

from aperonix.infra.gemini.client import SAFETY_DECLINED_MESSAGE, GeminiCompletionClient

__all__ = ["SAFETY_DECLINED_MESSAGE", "GeminiCompletionClient"]
