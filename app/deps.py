"""Shared dependencies for FastAPI routes.

The store and pipeline are owned by the application (created in the
lifespan) and looked up per request, so tests can override either.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Request

if TYPE_CHECKING:
    from app.store.memory import SessionStore
    from pipeline.orchestrator import ContractPipeline


def get_store(request: Request) -> "SessionStore":
    """Session store created at startup."""
    return request.app.state.store


def get_pipeline(request: Request) -> "ContractPipeline":
    """Analysis pipeline bound to the session store."""
    return request.app.state.pipeline


__all__ = ["get_pipeline", "get_store"]
