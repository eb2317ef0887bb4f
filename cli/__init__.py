"""CLI package for interacting with the IoT device monitor service."""

from importlib import import_module
from types import ModuleType


def __getattr__(name: str) -> ModuleType:
    if name == "app":
        return import_module("cli.app")
    raise AttributeError(name)

# ``cli.app`` must stay the module so tests can patch ``cli.app.ApiClient``
# and ``cli.app.seed_store``; the Typer instance lives at ``cli.app.app``.

__all__ = []
