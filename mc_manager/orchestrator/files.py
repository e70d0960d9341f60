"""Filesystem primitives shared by the orchestrator workflows."""

from __future__ import annotations

import logging
import re
import shutil
import stat
import zipfile
import zlib
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .state import FailurePolicy, FilesystemError

log = logging.getLogger(__name__)

MOTD_RE = re.compile(r"^motd\s*=.*$", re.MULTILINE)


class FileSyncEngine:
    """
    Recursive copy/remove of named paths between the live server directory and
    the backup directory. Nothing here is atomic: a crash mid-copy can leave a
    partially written subtree at the destination.
    """

    def copy_path(self, src: Path, dst: Path) -> bool:
        """
        Copy a file or a whole directory tree from src to dst, merging into an
        existing dst directory. Returns False (and does nothing) if src is missing.
        """
        if not src.exists():
            return False
        try:
            if src.is_dir():
                shutil.copytree(src, dst, dirs_exist_ok=True)
            else:
                dst.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(src, dst)
        except (OSError, shutil.Error) as exc:
            raise FilesystemError(f"Failed to copy {src} to {dst}: {exc}") from exc
        return True

    def wipe_and_recreate(self, directory: Path) -> None:
        """Remove directory and everything under it if present, then create it empty."""
        try:
            if directory.is_dir() and not directory.is_symlink():
                shutil.rmtree(directory)
            elif directory.exists() or directory.is_symlink():
                directory.unlink()
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError(f"Failed to recreate {directory}: {exc}") from exc

    def copy_manifest(
        self,
        src_root: Path,
        dst_root: Path,
        paths: Sequence[str],
        policy: FailurePolicy = FailurePolicy.STRICT_SEQUENTIAL,
    ) -> List[str]:
        """
        Copy every manifest entry from src_root to dst_root, in order.
        Entries missing under src_root are skipped. Returns the copied entries.
        """
        copied: List[str] = []
        for item in paths:
            try:
                if self.copy_path(src_root / item, dst_root / item):
                    copied.append(item)
                else:
                    log.info("Skipping %s: not present in %s", item, src_root)
            except FilesystemError:
                if policy is FailurePolicy.STRICT_SEQUENTIAL:
                    raise
                log.warning("Failed to copy %s, continuing", item, exc_info=True)
        return copied


def list_jars(directory: Path) -> List[str]:
    """Sorted names of the .jar files directly inside directory."""
    try:
        return sorted(
            entry.name
            for entry in directory.iterdir()
            if entry.is_file() and entry.name.endswith(".jar")
        )
    except OSError as exc:
        raise FilesystemError(f"Failed to list {directory}: {exc}") from exc


def parse_mods_manifest(content: str) -> List[str]:
    return [line.strip() for line in content.splitlines() if line.strip()]


def read_mods_manifest(path: Path) -> List[str]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise FilesystemError(f"Failed to read {path}: {exc}") from exc
    return parse_mods_manifest(content)


def write_mods_manifest(path: Path, names: Iterable[str]) -> None:
    try:
        path.write_text("\n".join(names), encoding="utf-8")
    except OSError as exc:
        raise FilesystemError(f"Failed to write {path}: {exc}") from exc


def regenerate_mods_manifest(mods_dir: Path, manifest_path: Path) -> Optional[List[str]]:
    """Write manifest_path from the jars in mods_dir. Returns None if mods_dir is absent."""
    if not mods_dir.is_dir():
        log.info("No mods directory at %s, leaving %s untouched", mods_dir, manifest_path)
        return None
    names = list_jars(mods_dir)
    write_mods_manifest(manifest_path, names)
    return names


def _single_top_level_dir(names: Sequence[str]) -> Optional[str]:
    tops = set()
    for name in names:
        head, sep, _ = name.partition("/")
        if not sep:
            # a file at the archive root
            return None
        tops.add(head)
    if len(tops) == 1:
        return tops.pop()
    return None


def extract_archive(archive_path: Path, dest_dir: Path) -> List[str]:
    """
    Extract a zip archive into dest_dir, preserving relative paths. Server packs
    are often wrapped in one top-level folder; its contents are moved up so the
    pack lands directly in dest_dir. Returns the top-level names in dest_dir.
    """
    dest_dir.mkdir(parents=True, exist_ok=True)
    try:
        with zipfile.ZipFile(archive_path, "r") as zf:
            names = [n for n in zf.namelist() if n.strip("/")]
            zf.extractall(dest_dir)
    except (OSError, zipfile.BadZipFile) as exc:
        raise FilesystemError(f"Failed to extract {archive_path.name}: {exc}") from exc
    except (zlib.error, RuntimeError, NotImplementedError, ValueError) as exc:
        # damaged deflate stream, encrypted or unsupported member
        raise FilesystemError(f"Failed to extract {archive_path.name}: {exc}") from exc

    top = _single_top_level_dir(names)
    if top:
        try:
            inner = dest_dir / top
            staging = dest_dir / f".{top}.extracting"
            inner.rename(staging)
            for child in staging.iterdir():
                child.rename(dest_dir / child.name)
            staging.rmdir()
            log.info("Hoisted contents of %s/ into %s", top, dest_dir)
        except OSError as exc:
            raise FilesystemError(f"Failed to flatten {top}/ in {dest_dir}: {exc}") from exc
    return sorted(p.name for p in dest_dir.iterdir())


def make_executable(path: Path) -> bool:
    """chmod +x; returns False if path does not exist."""
    if not path.is_file():
        return False
    try:
        mode = path.stat().st_mode
        path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    except OSError as exc:
        raise FilesystemError(f"Failed to make {path} executable: {exc}") from exc
    return True


def patch_motd(properties_path: Path, motd: str) -> bool:
    """
    Set motd=<motd> in server.properties, replacing the first motd line or
    appending one. Returns False if the file does not exist.
    """
    if not properties_path.is_file():
        return False
    try:
        contents = properties_path.read_text(encoding="utf-8", errors="replace")
        line = f"motd={motd}"
        if MOTD_RE.search(contents):
            updated = MOTD_RE.sub(lambda _m: line, contents, count=1)
        else:
            updated = f"{contents.rstrip()}\n{line}" if contents.strip() else line
        properties_path.write_text(updated, encoding="utf-8")
    except OSError as exc:
        raise FilesystemError(f"Failed to patch {properties_path}: {exc}") from exc
    return True
