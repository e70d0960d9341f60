from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List

from .files import list_jars
from .state import FailurePolicy, FilesystemError, _log_line

log = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    removed: List[str] = field(default_factory=list)
    added: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


class ModReconciler:
    """
    Bring the installed mods in line with the allow list, then layer the staged
    extra mods on top. Deletions always run before additions.
    """

    def __init__(self, policy: FailurePolicy = FailurePolicy.BEST_EFFORT):
        self.policy = policy

    def _file_failed(self, result: ReconcileResult, name: str, action: str, exc: OSError) -> None:
        if self.policy is FailurePolicy.STRICT_SEQUENTIAL:
            raise FilesystemError(f"Failed to {action} {name}: {exc}") from exc
        log.warning("Failed to %s %s: %s", action, name, exc)
        _log_line(f"[MODS] Failed to {action} {name}: {exc}")
        result.failed.append(name)

    def reconcile(
        self, installed_dir: Path, staging_dir: Path, allow_list: Iterable[str]
    ) -> ReconcileResult:
        allowed = set(allow_list)
        result = ReconcileResult()

        for name in list_jars(installed_dir):
            if name in allowed:
                continue
            try:
                (installed_dir / name).unlink()
            except FileNotFoundError:
                # vanished mid-scan; nothing left to remove
                log.info("Mod %s disappeared before removal", name)
                continue
            except OSError as exc:
                self._file_failed(result, name, "remove", exc)
                continue
            log.info("Removed disallowed mod %s", name)
            _log_line(f"[MODS] Removed disallowed mod {name}")
            result.removed.append(name)

        if not staging_dir.is_dir():
            log.info("No staging directory at %s, nothing to add", staging_dir)
            return result

        for name in list_jars(staging_dir):
            try:
                shutil.copy2(staging_dir / name, installed_dir / name)
            except OSError as exc:
                self._file_failed(result, name, "install", exc)
                continue
            log.info("Installed extra mod %s", name)
            _log_line(f"[MODS] Installed extra mod {name}")
            result.added.append(name)

        return result
