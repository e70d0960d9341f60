import enum
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional

log = logging.getLogger(__name__)

_log_buffer: List[str] = []
_log_lock = threading.Lock()
_LOG_LIMIT = 2000

_guards: Dict[str, threading.Lock] = {}
_guards_lock = threading.Lock()


class OrchestratorError(Exception):
    """Base error for orchestrator failures."""


class ProcessControlError(OrchestratorError):
    """The service supervisor could not be invoked or reported failure."""


class FilesystemError(OrchestratorError):
    """Copy, remove or create failed for a reason other than a missing path."""


class ArtifactLookupError(OrchestratorError, LookupError):
    """Remote metadata could not be fetched or parsed, or no artifact qualified."""


class ConfigFieldMissing(OrchestratorError):
    """An expected field is absent from a parsed configuration document."""


class ValidationError(OrchestratorError):
    """User input was rejected (e.g. a non-jar upload)."""


class WorkflowBusy(OrchestratorError):
    """Another workflow already holds the server directory."""


class WorkflowError(OrchestratorError):
    """A workflow step failed; later steps were not run."""

    def __init__(self, workflow: str, step: str, cause: Exception):
        self.workflow = workflow
        self.step = step
        self.cause = cause
        super().__init__(f"{workflow}: {step} failed: {cause}")

    @property
    def kind(self) -> str:
        return type(self.cause).__name__

    def as_dict(self) -> Dict[str, str]:
        return {
            "workflow": self.workflow,
            "step": self.step,
            "kind": self.kind,
            "error": str(self.cause),
        }


class FailurePolicy(enum.Enum):
    """
    How a loop over many independent items reacts to one item failing.

    BEST_EFFORT logs the failure and moves on (mod file churn).
    STRICT_SEQUENTIAL stops at the first failure (backup/restore).
    """

    BEST_EFFORT = "best-effort"
    STRICT_SEQUENTIAL = "strict-sequential"


def _log_line(message: str) -> None:
    with _log_lock:
        _log_buffer.append(message)
        del _log_buffer[:-_LOG_LIMIT]


def activity_lines(tail: int = 200) -> List[str]:
    with _log_lock:
        return list(_log_buffer[-tail:])


def clear_activity() -> None:
    with _log_lock:
        _log_buffer.clear()


def _guard_for(server_root: Path) -> threading.Lock:
    key = str(server_root.resolve())
    with _guards_lock:
        lock = _guards.get(key)
        if lock is None:
            lock = threading.Lock()
            _guards[key] = lock
        return lock


@contextmanager
def workflow_guard(server_root: Path, workflow: Optional[str] = None) -> Iterator[None]:
    """
    Hold the single-writer lock for server_root for the duration of a workflow.
    Fails fast with WorkflowBusy instead of queueing behind a running workflow.
    """
    lock = _guard_for(server_root)
    if not lock.acquire(blocking=False):
        raise WorkflowBusy(
            f"Another workflow is already running on {server_root}"
            + (f" (requested: {workflow})" if workflow else "")
        )
    try:
        yield
    finally:
        lock.release()
