"""Shared dependencies and error translation for the API routers."""

from __future__ import annotations

import logging

from fastapi import HTTPException

from ..config import Settings, get_settings
from ..orchestrator import ModpackOrchestrator, WorkflowBusy, WorkflowError, get_orchestrator

logger = logging.getLogger(__name__)


def settings_dep() -> Settings:
    return get_settings()


def orchestrator_dep() -> ModpackOrchestrator:
    return get_orchestrator()


def workflow_http_error(exc: Exception) -> HTTPException:
    """Map a workflow failure to the HTTP error the panel shows."""
    if isinstance(exc, WorkflowBusy):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, WorkflowError):
        return HTTPException(status_code=500, detail=exc.as_dict())
    logger.exception("Unexpected workflow failure", exc_info=exc)
    return HTTPException(status_code=500, detail=str(exc))
