"""
Protocol Layer

RESPONSIBILITY: Translate HTTP requests into orchestrator calls and
results/errors into responses.

This is the only layer aware of the transport protocol.
"""

from .server import create_app, build_orchestrator, app_from_env

__all__ = ["create_app", "build_orchestrator", "app_from_env"]
