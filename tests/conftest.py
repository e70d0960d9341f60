from __future__ import annotations

import io
import zipfile
from pathlib import Path
from typing import Dict, List, Optional, Set

import pytest

from mc_manager.config import Settings, get_settings
from mc_manager.orchestrator import ModpackOrchestrator, ServerAction, clear_activity
from mc_manager.orchestrator.providers import ModpackProvider, ServerPackInfo
from mc_manager.orchestrator.state import ArtifactLookupError


class FakeProcess:
    """Stands in for ProcessController; records every requested transition."""

    unit = "atm10.service"

    def __init__(self, fail_on: Optional[Set[ServerAction]] = None):
        self.fail_on = set(fail_on or ())
        self.calls: List[ServerAction] = []

    def set_state(self, action: ServerAction) -> bool:
        self.calls.append(action)
        return action not in self.fail_on

    def tail_journal(self, lines: int = 1000) -> str:
        return "line one\nline two\n"


class FakeProvider(ModpackProvider):
    def __init__(
        self,
        archive: bytes = b"",
        version: str = "1.2.0",
        lookup_error: bool = False,
        download_error: bool = False,
    ):
        self.archive = archive
        self.version = version
        self.lookup_error = lookup_error
        self.download_error = download_error
        self.downloads: List[str] = []

    def latest_server_pack(self) -> ServerPackInfo:
        if self.lookup_error:
            raise ArtifactLookupError("No server pack found")
        return ServerPackInfo(
            version=self.version,
            file_id=9,
            display_name=f"Pack-Server-{self.version}",
            download_url="https://example.invalid/files/9/download",
        )

    def download(self, url: str, dest: Path) -> Path:
        self.downloads.append(url)
        if self.download_error:
            raise ArtifactLookupError("Failed to download server pack: boom")
        dest.write_bytes(self.archive)
        return dest


def make_zip(files: Dict[str, str]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return buffer.getvalue()


def make_corrupt_zip(name: str = "mods/big.jar") -> bytes:
    """A deflated single-member archive whose compressed stream is damaged."""
    payload = b"".join(b"line %d of a compressible member\n" % i for i in range(5000))
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(name, payload)
    data = bytearray(buffer.getvalue())
    start = 30 + len(name.encode())
    for i in range(start + 16, start + 64):
        data[i] ^= 0xFF
    return bytes(data)


def populate_server(root: Path, version: str = "1.0.0") -> None:
    (root / "config").mkdir(parents=True, exist_ok=True)
    (root / "world" / "region").mkdir(parents=True, exist_ok=True)
    (root / "mods").mkdir(parents=True, exist_ok=True)
    (root / "eula.txt").write_text("eula=true\n")
    (root / "ops.json").write_text('[{"name": "steve"}]')
    (root / "server.properties").write_text("level-name=world\nmotd=Old motd\nmax-players=20\n")
    (root / "config" / "bcc-common.toml").write_text(
        f'[general]\nmodpackProjectID = 925200\nmodpackVersion = "{version}"\n'
    )
    (root / "world" / "level.dat").write_bytes(b"\x00\x01level")
    (root / "world" / "region" / "r.0.0.mca").write_bytes(b"region-bytes")
    (root / "mods" / "pack-core.jar").write_bytes(b"core")
    (root / "mods" / "pack-extra.jar").write_bytes(b"extra")
    (root / "startserver.sh").write_text("#!/bin/sh\njava -jar server.jar\n")


def snapshot(root: Path) -> Dict[str, bytes]:
    return {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


@pytest.fixture(autouse=True)
def _fresh_activity():
    clear_activity()
    yield
    clear_activity()


@pytest.fixture
def settings(tmp_path, monkeypatch) -> Settings:
    server = tmp_path / "atm10"
    server.mkdir()
    monkeypatch.setenv("SERVER_LOCATION", str(server))
    monkeypatch.setenv("EXTRA_MODS_DIR", str(tmp_path / "extra_mods"))
    monkeypatch.delenv("VERSION_EXTRACTION", raising=False)
    monkeypatch.delenv("CURSEFORGE_API_KEY", raising=False)
    return get_settings()


@pytest.fixture
def process() -> FakeProcess:
    return FakeProcess()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def orchestrator(settings, process, provider) -> ModpackOrchestrator:
    return ModpackOrchestrator(settings, process=process, provider=provider)
