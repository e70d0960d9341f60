import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


def load_local_env() -> None:
    """
    Load environment variables from a local .env file if present without
    overriding variables that are already set.
    """
    env_path = Path(__file__).resolve().parent / ".env"
    if not env_path.exists():
        return

    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        if key and key not in os.environ:
            os.environ[key.strip()] = value.strip().strip("'").strip('"')


# Load .env immediately on import so other modules see values in os.environ
load_local_env()

DEFAULT_SERVER_LOCATION = "atm10"
DEFAULT_EXTRA_MODS_DIR = "extra_mods"
DEFAULT_SYSTEMD_SERVICE = "atm10.service"
DEFAULT_CURSEFORGE_BASE_URL = "https://www.curseforge.com/api/v1"
DEFAULT_CURSEFORGE_PROJECT_ID = "925200"
USER_AGENT = "mc-manager/1.0"

# Top-level paths copied by backup and restore, in order.
FILES_TO_BACKUP = (
    "eula.txt",
    "ops.json",
    "server.properties",
    "config",
    "world",
)

MODS_LIST_NAME = "mods.list"
MODPACK_CONFIG_PATH = "config/bcc-common.toml"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    server_location: Path
    extra_mods_dir: Path
    systemd_service: str
    systemctl_user: bool
    curseforge_base_url: str
    curseforge_project_id: str
    curseforge_api_key: Optional[str]
    curseforge_timeout: int
    download_timeout: int
    version_extraction: str
    start_script: str
    max_upload_mb: int

    @property
    def backup_location(self) -> Path:
        # "<server-location>_backup", a sibling of the server directory
        return self.server_location.with_name(f"{self.server_location.name}_backup")

    @property
    def mods_dir(self) -> Path:
        return self.server_location / "mods"

    @property
    def mods_list_path(self) -> Path:
        return self.server_location / MODS_LIST_NAME

    @property
    def modpack_config_path(self) -> Path:
        return self.server_location / MODPACK_CONFIG_PATH


def get_settings() -> Settings:
    """
    Build settings from the current environment. Cheap enough to call per
    request, which keeps tests free to monkeypatch os.environ.
    """
    extraction = os.environ.get("VERSION_EXTRACTION", "last-hyphen").strip().lower()
    if extraction not in {"last-hyphen", "scan"}:
        raise RuntimeError(
            "VERSION_EXTRACTION must be 'last-hyphen' or 'scan', "
            f"got {extraction!r}"
        )
    return Settings(
        server_location=Path(os.environ.get("SERVER_LOCATION", DEFAULT_SERVER_LOCATION)),
        extra_mods_dir=Path(os.environ.get("EXTRA_MODS_DIR", DEFAULT_EXTRA_MODS_DIR)),
        systemd_service=os.environ.get("SYSTEMD_SERVICE", DEFAULT_SYSTEMD_SERVICE),
        systemctl_user=_env_bool("SYSTEMCTL_USER", True),
        curseforge_base_url=os.environ.get(
            "CURSEFORGE_BASE_URL", DEFAULT_CURSEFORGE_BASE_URL
        ).rstrip("/"),
        curseforge_project_id=os.environ.get(
            "CURSEFORGE_PROJECT_ID", DEFAULT_CURSEFORGE_PROJECT_ID
        ),
        curseforge_api_key=os.environ.get("CURSEFORGE_API_KEY") or None,
        curseforge_timeout=_env_int("CURSEFORGE_TIMEOUT", 30),
        download_timeout=_env_int("DOWNLOAD_TIMEOUT", 300),
        version_extraction=extraction,
        start_script=os.environ.get("START_SCRIPT", "startserver.sh"),
        max_upload_mb=_env_int("MAX_UPLOAD_MB", 1024),
    )
