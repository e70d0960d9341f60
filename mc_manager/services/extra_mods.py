"""Staging area for user-uploaded extra mods."""

from __future__ import annotations

import io
import logging
import os
import zipfile
from pathlib import Path
from typing import BinaryIO, List, Optional

from ..orchestrator import FilesystemError, ValidationError

log = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


def validate_mod_filename(filename: Optional[str]) -> str:
    """Accept a bare `<name>.jar` filename; reject anything else."""
    name = (filename or "").strip()
    if not name:
        raise ValidationError("Uploaded file is missing a filename.")
    if "/" in name or "\\" in name or name in {".", ".."} or name.startswith("."):
        raise ValidationError(f"Invalid filename: {name!r}")
    if not name.endswith(".jar"):
        raise ValidationError(f"Invalid file type or filename: {name!r}. Must be a .jar file.")
    return name


def list_extra_mods(staging_dir: Path) -> List[str]:
    if not staging_dir.is_dir():
        return []
    return sorted(
        p.name for p in staging_dir.iterdir() if p.is_file() and not p.name.startswith(".")
    )


def save_extra_mod(
    staging_dir: Path, filename: Optional[str], source: BinaryIO, max_bytes: Optional[int] = None
) -> Path:
    """
    Stream an upload into the staging directory. The file is written under a
    temporary name and renamed into place once complete.
    """
    name = validate_mod_filename(filename)
    try:
        staging_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemError(f"Failed to create mods directory {staging_dir}: {exc}") from exc

    dest = staging_dir / name
    partial = staging_dir / f".{name}.part"
    written = 0
    try:
        with open(partial, "wb") as fh:
            while True:
                chunk = source.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if max_bytes is not None and written > max_bytes:
                    raise ValidationError(f"{name} exceeds the {max_bytes // (1024 * 1024)} MB upload limit")
                fh.write(chunk)
        os.replace(partial, dest)
    except ValidationError:
        partial.unlink(missing_ok=True)
        raise
    except OSError as exc:
        partial.unlink(missing_ok=True)
        raise FilesystemError(f"Failed to save {name} to {dest}: {exc}") from exc

    log.info("Saved extra mod %s (%d bytes)", dest, written)
    return dest


def delete_extra_mod(staging_dir: Path, filename: str) -> bool:
    """Remove a staged mod. Returns False if it was not there."""
    name = validate_mod_filename(filename)
    path = staging_dir / name
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as exc:
        raise FilesystemError(f"Failed to delete {name}: {exc}") from exc
    log.info("Deleted extra mod %s", path)
    return True


def build_mods_zip(staging_dir: Path) -> bytes:
    """Zip every staged file (flat, by filename) into an in-memory archive."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name in list_extra_mods(staging_dir):
            try:
                zf.write(staging_dir / name, arcname=name)
            except OSError as exc:
                log.warning("Skipping %s in mods.zip: %s", name, exc)
    return buffer.getvalue()
