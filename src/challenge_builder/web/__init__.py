"""
Web API for the challenge builder.

Provides:
- REST endpoint to run the builder for a project
- REST endpoints to read and store the last report
"""

from .server import create_app

__all__ = ["create_app"]
