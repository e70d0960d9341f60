from typing import List, Optional

from pydantic import BaseModel, Field


class ActionResponse(BaseModel):
    ok: bool
    message: str


class LinesResponse(BaseModel):
    lines: List[str] = Field(default_factory=list)


class ExtraModsResponse(BaseModel):
    items: List[str] = Field(default_factory=list)
    count: int = 0


class ReconcileResponse(BaseModel):
    status: str = "Extra mods updated"
    removed: List[str] = Field(default_factory=list)
    added: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)


class BackupResponse(BaseModel):
    status: str = "Backup complete"
    backup_dir: str
    copied: List[str] = Field(default_factory=list)
    mods: Optional[List[str]] = None


class RestoreResponse(BaseModel):
    status: str = "Restore complete"
    restored: List[str] = Field(default_factory=list)
    version: Optional[str] = None
    manifest_regenerated: bool = False


class UpdateCheckResponse(BaseModel):
    local_version: str
    latest_version: str
    up_to_date: bool


class UpdateResponse(BaseModel):
    status: str = "Update complete"
    version: str
    file_id: int
    display_name: str
    previous_version: Optional[str] = None
    restored: List[str] = Field(default_factory=list)
    extras_installed: List[str] = Field(default_factory=list)
