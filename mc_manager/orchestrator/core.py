"""
Modpack lifecycle workflows.

Every workflow is a strict sequence of named steps. The first failing step
aborts the workflow with a WorkflowError naming that step; effects of earlier
steps are left in place. After a failed update_pack the backup directory is
the recovery path.
"""

from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Optional

from ..config import FILES_TO_BACKUP, Settings, get_settings
from .files import (
    FileSyncEngine,
    extract_archive,
    list_jars,
    make_executable,
    patch_motd,
    read_mods_manifest,
    regenerate_mods_manifest,
)
from .mods import ModReconciler, ReconcileResult
from .process import ProcessController, ServerAction
from .providers import CurseForgeProvider, ModpackProvider, ServerPackInfo
from .state import (
    ArtifactLookupError,
    ConfigFieldMissing,
    FailurePolicy,
    FilesystemError,
    OrchestratorError,
    ProcessControlError,
    ValidationError,
    WorkflowBusy,
    WorkflowError,
    _log_line,
    activity_lines,
    clear_activity,
    workflow_guard,
)
from .versions import read_modpack_version, versions_equal

log = logging.getLogger(__name__)

Step = Callable[..., Any]

WORKFLOW_RECONCILE = "update_extras"
WORKFLOW_BACKUP = "backup"
WORKFLOW_RESTORE = "restore"
WORKFLOW_UPDATE = "update_pack"


def motd_for(version: str) -> str:
    return f"V{version} + extras"


@dataclass
class BackupResult:
    backup_dir: str
    copied: List[str] = field(default_factory=list)
    mods: Optional[List[str]] = None


@dataclass
class RestoreResult:
    restored: List[str] = field(default_factory=list)
    version: Optional[str] = None
    manifest_regenerated: bool = False


@dataclass
class UpdateCheck:
    local_version: str
    latest_version: str
    up_to_date: bool


@dataclass
class UpdateResult:
    version: str
    file_id: int
    display_name: str
    previous_version: Optional[str] = None
    restored: List[str] = field(default_factory=list)
    extras_installed: List[str] = field(default_factory=list)


class ModpackOrchestrator:
    def __init__(
        self,
        settings: Settings,
        process: Optional[ProcessController] = None,
        provider: Optional[ModpackProvider] = None,
        sync: Optional[FileSyncEngine] = None,
        reconciler: Optional[ModReconciler] = None,
    ):
        self.settings = settings
        self.process = process or ProcessController(
            settings.systemd_service, user=settings.systemctl_user
        )
        self.provider = provider or CurseForgeProvider(
            project_id=settings.curseforge_project_id,
            base_url=settings.curseforge_base_url,
            api_key=settings.curseforge_api_key,
            timeout=settings.curseforge_timeout,
            download_timeout=settings.download_timeout,
            version_strategy=settings.version_extraction,
        )
        self.sync = sync or FileSyncEngine()
        self.reconciler = reconciler or ModReconciler(FailurePolicy.BEST_EFFORT)

    @property
    def server_root(self) -> Path:
        return self.settings.server_location

    @property
    def backup_root(self) -> Path:
        return self.settings.backup_location

    # --- step plumbing ---

    def _step(self, workflow: str, name: str, fn: Step, *args: Any, **kwargs: Any) -> Any:
        _log_line(f"[{workflow.upper()}] {name}")
        try:
            return fn(*args, **kwargs)
        except OrchestratorError as exc:
            log.warning("%s: step '%s' failed: %s", workflow, name, exc)
            _log_line(f"[{workflow.upper()}] FAILED at {name}: {exc}")
            raise WorkflowError(workflow, name, exc) from exc
        except OSError as exc:
            log.warning("%s: step '%s' failed: %s", workflow, name, exc)
            _log_line(f"[{workflow.upper()}] FAILED at {name}: {exc}")
            raise WorkflowError(workflow, name, FilesystemError(str(exc))) from exc
        except Exception as exc:
            log.exception("%s: step '%s' failed unexpectedly", workflow, name)
            _log_line(f"[{workflow.upper()}] FAILED at {name}: {exc}")
            raise WorkflowError(workflow, name, exc) from exc

    def _nested(self, workflow: str, prefix: str) -> Step:
        def step(name: str, fn: Step, *args: Any, **kwargs: Any) -> Any:
            return self._step(workflow, f"{prefix}: {name}", fn, *args, **kwargs)

        return step

    def _flat(self, workflow: str) -> Step:
        def step(name: str, fn: Step, *args: Any, **kwargs: Any) -> Any:
            return self._step(workflow, name, fn, *args, **kwargs)

        return step

    def _transition(self, action: ServerAction) -> None:
        if not self.process.set_state(action):
            raise ProcessControlError(
                f"systemctl {action.value} {self.process.unit} did not succeed"
            )

    # --- manual process control ---

    def set_server_state(self, action: ServerAction) -> bool:
        """Start/stop/restart outside a workflow; refused while one is running."""
        with workflow_guard(self.server_root, action.value):
            return self.process.set_state(action)

    def tail_journal(self, lines: int = 1000) -> str:
        return self.process.tail_journal(lines)

    # --- A. reconcile mods ---

    def reconcile_mods(self) -> ReconcileResult:
        """Stop the server, drop mods not in mods.list, add staged extras, start again."""
        wf = WORKFLOW_RECONCILE
        s = self.settings
        with workflow_guard(self.server_root, wf):
            allow_list = self._step(wf, "read allow list", read_mods_manifest, s.mods_list_path)
            log.info("Allowed mods from %s: %d entries", s.mods_list_path, len(allow_list))
            self._step(wf, "stop", self._transition, ServerAction.STOP)
            result = self._step(
                wf, "reconcile", self.reconciler.reconcile, s.mods_dir, s.extra_mods_dir, allow_list
            )
            self._step(wf, "start", self._transition, ServerAction.START)
            _log_line(
                f"[{wf.upper()}] Done: removed {len(result.removed)}, added {len(result.added)}"
            )
            return result

    # --- B. backup ---

    def _run_backup(self, step: Step) -> BackupResult:
        s = self.settings
        step("wipe backup", self.sync.wipe_and_recreate, self.backup_root)
        mods = step("write mods manifest", regenerate_mods_manifest, s.mods_dir, s.mods_list_path)
        copied = step(
            "copy manifest",
            self.sync.copy_manifest,
            self.server_root,
            self.backup_root,
            FILES_TO_BACKUP,
            FailurePolicy.STRICT_SEQUENTIAL,
        )
        return BackupResult(backup_dir=str(self.backup_root), copied=copied, mods=mods)

    def backup_server(self) -> BackupResult:
        with workflow_guard(self.server_root, WORKFLOW_BACKUP):
            result = self._run_backup(self._flat(WORKFLOW_BACKUP))
            _log_line(f"[BACKUP] Done: {', '.join(result.copied) or 'nothing to copy'}")
            return result

    # --- C. restore ---

    def _patch_motd_from_config(self) -> Optional[str]:
        s = self.settings
        try:
            version = read_modpack_version(s.modpack_config_path)
        except (FilesystemError, ConfigFieldMissing) as exc:
            log.info("Not patching motd: %s", exc)
            return None
        patch_motd(s.server_location / "server.properties", motd_for(version))
        return version

    def _chmod_start_script(self) -> bool:
        script = self.server_root / self.settings.start_script
        if not make_executable(script):
            log.warning("Start script %s not found", script)
            return False
        return True

    def _ensure_mods_manifest(self) -> bool:
        s = self.settings
        if s.mods_list_path.exists():
            return False
        return regenerate_mods_manifest(s.mods_dir, s.mods_list_path) is not None

    def _run_restore(self, step: Step, with_motd: bool) -> RestoreResult:
        result = RestoreResult()
        result.restored = step(
            "copy manifest",
            self.sync.copy_manifest,
            self.backup_root,
            self.server_root,
            FILES_TO_BACKUP,
            FailurePolicy.STRICT_SEQUENTIAL,
        )
        if with_motd:
            result.version = step("patch motd", self._patch_motd_from_config)
        step("chmod start script", self._chmod_start_script)
        result.manifest_regenerated = step("regenerate mods manifest", self._ensure_mods_manifest)
        return result

    def restore_server(self) -> RestoreResult:
        with workflow_guard(self.server_root, WORKFLOW_RESTORE):
            result = self._run_restore(self._flat(WORKFLOW_RESTORE), with_motd=True)
            _log_line(f"[RESTORE] Done: {', '.join(result.restored) or 'nothing to restore'}")
            return result

    # --- version check ---

    def local_version(self) -> str:
        return read_modpack_version(self.settings.modpack_config_path)

    def check_update(self) -> UpdateCheck:
        local = self.local_version()
        latest = self.provider.latest_server_pack()
        return UpdateCheck(
            local_version=local,
            latest_version=latest.version,
            up_to_date=versions_equal(local, latest.version),
        )

    # --- D. full pack update ---

    def _install_extras(self) -> List[str]:
        s = self.settings
        if not s.extra_mods_dir.is_dir():
            return []
        s.mods_dir.mkdir(parents=True, exist_ok=True)
        installed = []
        for name in list_jars(s.extra_mods_dir):
            self.sync.copy_path(s.extra_mods_dir / name, s.mods_dir / name)
            installed.append(name)
        return installed

    def _read_pack_config(self) -> Optional[bytes]:
        path = self.settings.modpack_config_path
        if not path.is_file():
            return None
        return path.read_bytes()

    def _write_pack_config(self, contents: Optional[bytes]) -> None:
        # the restored config/ carries the previous modpackVersion
        if contents is None:
            return
        path = self.settings.modpack_config_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(contents)

    def _download_and_extract(self, step: Step, pack: ServerPackInfo) -> None:
        with tempfile.TemporaryDirectory(prefix="mc-manager-") as tmp:
            archive = Path(tmp) / f"serverpack-{pack.file_id}.zip"
            step("download", self.provider.download, pack.download_url, archive)
            step("extract", extract_archive, archive, self.server_root)

    def update_pack(self) -> UpdateResult:
        wf = WORKFLOW_UPDATE
        step = self._flat(wf)
        with workflow_guard(self.server_root, wf):
            try:
                previous = self.local_version()
            except (FilesystemError, ConfigFieldMissing) as exc:
                log.info("Current modpack version unknown: %s", exc)
                previous = None

            step("stop", self._transition, ServerAction.STOP)
            self._run_backup(self._nested(wf, "backup"))
            step("wipe server", self.sync.wipe_and_recreate, self.server_root)
            pack = step("resolve latest", self.provider.latest_server_pack)
            _log_line(f"[{wf.upper()}] Installing {pack.display_name} ({pack.version})")
            self._download_and_extract(step, pack)
            step("chmod start script", self._chmod_start_script)
            pack_config = step("read pack config", self._read_pack_config)
            restored = self._run_restore(self._nested(wf, "restore"), with_motd=False)
            step("keep pack config", self._write_pack_config, pack_config)
            extras = step("install extra mods", self._install_extras)
            step("start", self._transition, ServerAction.START)
            step(
                "patch motd",
                patch_motd,
                self.server_root / "server.properties",
                motd_for(pack.version),
            )
            _log_line(f"[{wf.upper()}] Done: now on {pack.version}")
            return UpdateResult(
                version=pack.version,
                file_id=pack.file_id,
                display_name=pack.display_name,
                previous_version=previous,
                restored=restored.restored,
                extras_installed=extras,
            )


def get_orchestrator(settings: Optional[Settings] = None) -> ModpackOrchestrator:
    return ModpackOrchestrator(settings or get_settings())


__all__ = [
    "ArtifactLookupError",
    "BackupResult",
    "ConfigFieldMissing",
    "FailurePolicy",
    "FilesystemError",
    "ModpackOrchestrator",
    "OrchestratorError",
    "ProcessControlError",
    "ReconcileResult",
    "RestoreResult",
    "ServerAction",
    "UpdateCheck",
    "UpdateResult",
    "ValidationError",
    "WorkflowBusy",
    "WorkflowError",
    "activity_lines",
    "clear_activity",
    "get_orchestrator",
    "motd_for",
]
