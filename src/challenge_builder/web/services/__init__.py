"""Services backing the web API."""

from .builder_service import BuilderService

__all__ = ["BuilderService"]
