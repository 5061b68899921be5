"""
HTTP API for federated resource search.

Provides the ``/api/search`` and ``/health`` REST endpoints.
"""

from .server import create_app, run_api_server

__all__ = ["create_app", "run_api_server"]
