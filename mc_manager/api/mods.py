"""API endpoints for the extra mods staging area."""

from __future__ import annotations

import logging
from typing import Dict

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile

from ..config import Settings
from ..orchestrator import FilesystemError, ValidationError
from ..schemas import ExtraModsResponse
from ..services.extra_mods import (
    build_mods_zip,
    delete_extra_mod,
    list_extra_mods,
    save_extra_mod,
)
from .deps import settings_dep

router = APIRouter(tags=["extra_mods"])

logger = logging.getLogger(__name__)


@router.get("/extra_mods", response_model=ExtraModsResponse)
def api_list_extra_mods(settings: Settings = Depends(settings_dep)) -> ExtraModsResponse:
    """
    GET /api/extra_mods
    """
    items = list_extra_mods(settings.extra_mods_dir)
    return ExtraModsResponse(items=items, count=len(items))


@router.post("/extra_mods")
def api_upload_extra_mod(
    mod: UploadFile = File(...),
    settings: Settings = Depends(settings_dep),
) -> Dict[str, str]:
    """
    POST /api/extra_mods  (multipart form, field "mod")
    Stores a .jar in the staging area. Anything else is a 400.
    """
    try:
        dest = save_extra_mod(
            settings.extra_mods_dir,
            mod.filename,
            mod.file,
            max_bytes=settings.max_upload_mb * 1024 * 1024,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except FilesystemError as exc:
        logger.exception("Failed to store upload %s", mod.filename)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return {"ok": "saved", "filename": dest.name}


@router.delete("/extra_mods/{modname}")
def api_delete_extra_mod(modname: str, settings: Settings = Depends(settings_dep)) -> Dict[str, str]:
    """
    DELETE /api/extra_mods/{modname}
    """
    try:
        deleted = delete_extra_mod(settings.extra_mods_dir, modname)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except FilesystemError as exc:
        logger.exception("Failed to delete %s", modname)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    if not deleted:
        raise HTTPException(status_code=404, detail=f"{modname} is not staged")
    return {"ok": "deleted"}


@router.get("/extra_mods.zip")
def api_download_extra_mods(settings: Settings = Depends(settings_dep)) -> Response:
    """
    GET /api/extra_mods.zip
    All staged mods in one archive, for players to drop into their client.
    """
    return Response(
        content=build_mods_zip(settings.extra_mods_dir),
        media_type="application/zip",
        headers={"Content-Disposition": 'attachment; filename="mods.zip"'},
    )
