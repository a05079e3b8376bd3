"""Core module - settings and the OAuth2 engine internals."""

from .settings import settings

__all__ = ["settings"]
