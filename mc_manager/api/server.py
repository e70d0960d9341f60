from __future__ import annotations

import logging
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, Query

from ..orchestrator import (
    ModpackOrchestrator,
    ProcessControlError,
    ServerAction,
    WorkflowBusy,
    activity_lines,
)
from ..schemas import ActionResponse, LinesResponse
from .deps import orchestrator_dep

router = APIRouter(
    prefix="/server",  # final path: /api/server/...
    tags=["server"],
)

logger = logging.getLogger(__name__)

_MESSAGES: Dict[ServerAction, tuple] = {
    ServerAction.START: ("Server start requested.", "Failed to start server."),
    ServerAction.STOP: ("Server stop requested.", "Failed to stop server."),
    ServerAction.RESTART: ("Server restart requested.", "Failed to restart server."),
}


def _control(orch: ModpackOrchestrator, action: ServerAction) -> ActionResponse:
    ok_message, fail_message = _MESSAGES[action]
    try:
        ok = orch.set_server_state(action)
    except WorkflowBusy as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Failed to %s server", action.value)
        raise HTTPException(status_code=500, detail=fail_message) from exc
    if not ok:
        raise HTTPException(status_code=500, detail=fail_message)
    return ActionResponse(ok=True, message=ok_message)


@router.post("/start", response_model=ActionResponse)
def api_start(orch: ModpackOrchestrator = Depends(orchestrator_dep)) -> ActionResponse:
    """
    POST /api/server/start
    """
    return _control(orch, ServerAction.START)


@router.post("/stop", response_model=ActionResponse)
def api_stop(orch: ModpackOrchestrator = Depends(orchestrator_dep)) -> ActionResponse:
    """
    POST /api/server/stop
    """
    return _control(orch, ServerAction.STOP)


@router.post("/restart", response_model=ActionResponse)
def api_restart(orch: ModpackOrchestrator = Depends(orchestrator_dep)) -> ActionResponse:
    """
    POST /api/server/restart
    """
    return _control(orch, ServerAction.RESTART)


@router.get("/log_tail", response_model=LinesResponse)
def api_log_tail(
    lines: int = Query(1000, ge=1, le=10000),
    orch: ModpackOrchestrator = Depends(orchestrator_dep),
) -> LinesResponse:
    """
    GET /api/server/log_tail?lines=1000
    Last N lines of the service journal.
    """
    try:
        return LinesResponse(lines=orch.tail_journal(lines).splitlines())
    except ProcessControlError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Failed to read the service journal")
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@router.get("/activity", response_model=LinesResponse)
def api_activity(lines: int = Query(200, ge=1, le=2000)) -> LinesResponse:
    """
    GET /api/server/activity?lines=200
    Step-by-step log of the backup/restore/update workflows.
    """
    return LinesResponse(lines=activity_lines(lines))
