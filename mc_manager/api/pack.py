"""API endpoints for the modpack lifecycle workflows."""

from __future__ import annotations

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from ..orchestrator import (
    ArtifactLookupError,
    ConfigFieldMissing,
    FilesystemError,
    ModpackOrchestrator,
    OrchestratorError,
)
from ..schemas import (
    BackupResponse,
    ReconcileResponse,
    RestoreResponse,
    UpdateCheckResponse,
    UpdateResponse,
)
from .deps import orchestrator_dep, workflow_http_error

router = APIRouter(
    prefix="/pack",  # final path: /api/pack/...
    tags=["pack"],
)

logger = logging.getLogger(__name__)


@router.post("/update_extras", response_model=ReconcileResponse)
def api_update_extras(orch: ModpackOrchestrator = Depends(orchestrator_dep)) -> ReconcileResponse:
    """
    POST /api/pack/update_extras
    Stop, prune mods not in mods.list, install staged extras, start.
    """
    try:
        result = orch.reconcile_mods()
    except OrchestratorError as exc:
        raise workflow_http_error(exc) from exc
    except Exception as exc:
        logger.exception("Failed to update extra mods")
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return ReconcileResponse(**asdict(result))


@router.post("/backup", response_model=BackupResponse)
def api_backup(orch: ModpackOrchestrator = Depends(orchestrator_dep)) -> BackupResponse:
    """
    POST /api/pack/backup
    """
    try:
        result = orch.backup_server()
    except OrchestratorError as exc:
        raise workflow_http_error(exc) from exc
    except Exception as exc:
        logger.exception("Failed to back up server")
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return BackupResponse(**asdict(result))


@router.post("/restore", response_model=RestoreResponse)
def api_restore(orch: ModpackOrchestrator = Depends(orchestrator_dep)) -> RestoreResponse:
    """
    POST /api/pack/restore
    """
    try:
        result = orch.restore_server()
    except OrchestratorError as exc:
        raise workflow_http_error(exc) from exc
    except Exception as exc:
        logger.exception("Failed to restore server")
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return RestoreResponse(**asdict(result))


@router.get("/check_update", response_model=UpdateCheckResponse)
def api_check_update(orch: ModpackOrchestrator = Depends(orchestrator_dep)) -> UpdateCheckResponse:
    """
    GET /api/pack/check_update
    Compare the installed modpackVersion with the latest CurseForge server pack.
    """
    try:
        check = orch.check_update()
    except ConfigFieldMissing as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except FilesystemError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except ArtifactLookupError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Failed to check for modpack updates")
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return UpdateCheckResponse(**asdict(check))


@router.post("/update", response_model=UpdateResponse)
def api_update_pack(orch: ModpackOrchestrator = Depends(orchestrator_dep)) -> UpdateResponse:
    """
    POST /api/pack/update
    Full upgrade to the latest server pack. On failure the detail names the
    step; restore manually from the backup directory.
    """
    try:
        result = orch.update_pack()
    except OrchestratorError as exc:
        raise workflow_http_error(exc) from exc
    except Exception as exc:
        logger.exception("Failed to update modpack")
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return UpdateResponse(**asdict(result))
