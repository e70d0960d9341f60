"""systemd control of the managed game server unit."""

from __future__ import annotations

import enum
import logging
import subprocess
from typing import List

from .state import ProcessControlError

log = logging.getLogger(__name__)

SYSTEMCTL_TIMEOUT = 120
JOURNALCTL_TIMEOUT = 30


class ServerAction(enum.Enum):
    START = "start"
    STOP = "stop"
    RESTART = "restart"


def _scope_args(user: bool) -> List[str]:
    return ["--user"] if user else []


def systemctl_server(unit: str, action: ServerAction, user: bool = True) -> bool:
    """
    Run `systemctl [--user] <action> <unit>` and report whether it succeeded.
    Any failure to run the supervisor counts as a failed transition.
    """
    cmd = ["systemctl", *_scope_args(user), action.value, unit]
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=SYSTEMCTL_TIMEOUT)
    except (OSError, subprocess.SubprocessError) as exc:
        log.warning("Could not run %s: %s", " ".join(cmd), exc)
        return False
    if result.returncode != 0:
        log.warning(
            "%s exited with %s: %s",
            " ".join(cmd),
            result.returncode,
            (result.stderr or "").strip(),
        )
        return False
    return True


class ProcessController:
    """Starts, stops and restarts one named service unit."""

    def __init__(self, unit: str, user: bool = True):
        self.unit = unit
        self.user = user

    def set_state(self, action: ServerAction) -> bool:
        log.info("Requesting %s of %s", action.value, self.unit)
        return systemctl_server(self.unit, action, user=self.user)

    def tail_journal(self, lines: int = 1000) -> str:
        cmd = [
            "journalctl",
            *_scope_args(self.user),
            "-u",
            self.unit,
            "-n",
            str(lines),
            "--no-pager",
            "--output=cat",
        ]
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=JOURNALCTL_TIMEOUT)
        except (OSError, subprocess.SubprocessError) as exc:
            raise ProcessControlError(f"Could not run journalctl: {exc}") from exc
        if result.returncode != 0:
            raise ProcessControlError(
                f"journalctl exited with {result.returncode}: {(result.stderr or '').strip()}"
            )
        return result.stdout
