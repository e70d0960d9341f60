from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

import semver

from .state import ConfigFieldMissing, FilesystemError

MODPACK_VERSION_RE = re.compile(r'modpackVersion\s*=\s*"([^"]+)"')
VERSION_SCAN_RE = re.compile(r"\d+(?:\.\d+)+")

UNKNOWN_VERSION = "unknown"


def parse_semver(value: str) -> Optional[semver.Version]:
    try:
        return semver.Version.parse(value)
    except (ValueError, TypeError):
        return None


def canonical_version(token: str) -> str:
    """Canonical SemVer string when token parses, else the token verbatim."""
    parsed = parse_semver(token)
    return str(parsed) if parsed is not None else token


def versions_equal(a: str, b: str) -> bool:
    """
    SemVer equality when both sides parse as semantic versions, exact string
    equality otherwise. No normalisation: "v10.1.3" does not equal "10.1.3".
    """
    left, right = parse_semver(a), parse_semver(b)
    if left is not None and right is not None:
        return left == right
    return a == b


def version_from_last_hyphen(display_name: str) -> str:
    """
    "All the Mods 10-Server-1.2.0" -> "1.2.0". Uses whatever follows the last
    '-', so "ATM10-Server-1.0.1-hotfix-2" yields "2".
    """
    _, sep, tail = display_name.rpartition("-")
    if not sep:
        return UNKNOWN_VERSION
    return canonical_version(tail.strip())


def version_from_scan(display_name: str) -> str:
    """
    First dotted digit run in the name, so "ATM10-Server-1.0.1-hotfix-2"
    yields "1.0.1". Names without one fall back to the last-hyphen rule.
    """
    match = VERSION_SCAN_RE.search(display_name)
    if not match:
        return version_from_last_hyphen(display_name)
    return canonical_version(match.group(0))


EXTRACTION_STRATEGIES = {
    "last-hyphen": version_from_last_hyphen,
    "scan": version_from_scan,
}


def extract_version(display_name: str, strategy: str = "last-hyphen") -> str:
    try:
        extractor = EXTRACTION_STRATEGIES[strategy]
    except KeyError:
        raise ValueError(f"Unknown version extraction strategy: {strategy}") from None
    return extractor(display_name)


def parse_modpack_version(contents: str) -> Optional[str]:
    match = MODPACK_VERSION_RE.search(contents)
    return match.group(1) if match else None


def read_modpack_version(config_path: Path) -> str:
    """
    Read modpackVersion from the pack's bcc-common.toml. An unreadable file is a
    FilesystemError; a readable file without the field is ConfigFieldMissing.
    """
    try:
        contents = config_path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise FilesystemError(f"Could not read {config_path.name}: {exc}") from exc
    version = parse_modpack_version(contents)
    if version is None:
        raise ConfigFieldMissing(f"Could not find modpackVersion in {config_path.name}")
    return version
