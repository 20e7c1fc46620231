"""Deferred imports for optional backends (redis)."""

from collections.abc import Callable
from importlib import import_module

__all__ = ["lazy_import"]


def lazy_import(
    module_name: str,
    name: str | None = None,
) -> Callable[[], object]:
    """Return a loader that imports a module, or one attribute of it, on first call.

    The optional dependency is only required once the backend that needs it
    is actually connected.
    """

    def _load() -> object:
        module = import_module(module_name)
        return getattr(module, name) if name else module

    return _load
