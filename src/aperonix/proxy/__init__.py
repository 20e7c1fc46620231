"""Serverless-style chat proxy for aperonix."""

from aperonix.proxy.app import create_app

__all__ = ["create_app"]
