"""Jumble: structured codebase context for AI coding assistants."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("jumble")
except PackageNotFoundError:
    __version__ = "dev"
