import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from ...config import USER_AGENT
from ..state import ArtifactLookupError, FilesystemError, _log_line
from ..versions import extract_version
from .base import ModpackProvider, ServerPackInfo

log = logging.getLogger(__name__)


class CurseForgeProvider(ModpackProvider):
    """
    Latest server pack lookup against the CurseForge files listing of one project.
    """

    def __init__(
        self,
        project_id: str,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: int = 30,
        download_timeout: int = 300,
        version_strategy: str = "last-hyphen",
    ):
        self.project_id = project_id
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.download_timeout = download_timeout
        self.version_strategy = version_strategy

    # --- Helpers specific to CurseForge ---

    def _headers(self) -> Dict[str, str]:
        headers = {"User-Agent": USER_AGENT}
        if self.api_key:
            headers["x-api-key"] = self.api_key
        return headers

    def _files_url(self) -> str:
        return f"{self.base_url}/mods/{self.project_id}/files"

    def _file_download_url(self, file_id: int) -> str:
        return f"{self.base_url}/mods/{self.project_id}/files/{file_id}/download"

    def _list_files(self) -> List[Dict[str, Any]]:
        try:
            resp = requests.get(self._files_url(), headers=self._headers(), timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise ArtifactLookupError(f"Failed to fetch CurseForge file listing: {exc}") from exc
        try:
            payload = resp.json()
        except ValueError as exc:
            raise ArtifactLookupError("Failed to parse CurseForge API response") from exc

        files = payload.get("data") if isinstance(payload, dict) else payload
        if not isinstance(files, list):
            raise ArtifactLookupError("Failed to parse CurseForge API response")
        return files

    @staticmethod
    def _file_id(entry: Dict[str, Any], key: str = "id") -> Optional[int]:
        try:
            return int(entry[key])
        except (KeyError, TypeError, ValueError):
            return None

    # --- Implementation ---

    def latest_server_pack(self) -> ServerPackInfo:
        candidates = []
        for entry in self._list_files():
            if not isinstance(entry, dict) or not entry.get("hasServerPack"):
                continue
            file_id = self._file_id(entry)
            if file_id is None:
                log.warning("Ignoring CurseForge file without a numeric id: %r", entry)
                continue
            candidates.append((file_id, entry))

        if not candidates:
            raise ArtifactLookupError("No server pack found")

        # ids grow with publication; the listing itself is not reliably ordered
        file_id, latest = max(candidates, key=lambda item: item[0])
        display_name = str(latest.get("displayName") or latest.get("fileName") or "")
        version = extract_version(display_name, self.version_strategy)

        download_url = latest.get("downloadUrl")
        if not download_url:
            pack_file_id = file_id
            if latest.get("serverPackFileId"):
                pack_file_id = self._file_id(latest, "serverPackFileId")
                if pack_file_id is None:
                    raise ArtifactLookupError(
                        f"Unparseable serverPackFileId for CurseForge file {file_id}: "
                        f"{latest['serverPackFileId']!r}"
                    )
            download_url = self._file_download_url(pack_file_id)

        log.info("Latest CurseForge server pack: %s (id=%s, version=%s)", display_name, file_id, version)
        return ServerPackInfo(
            version=version,
            file_id=file_id,
            display_name=display_name,
            download_url=download_url,
        )

    def download(self, url: str, dest: Path) -> Path:
        dest.parent.mkdir(parents=True, exist_ok=True)
        _log_line(f"[UPDATE] Downloading {url}")
        try:
            with requests.get(
                url, headers=self._headers(), stream=True, timeout=self.download_timeout
            ) as resp:
                resp.raise_for_status()
                with open(dest, "wb") as fh:
                    for chunk in resp.iter_content(chunk_size=8192):
                        if chunk:
                            fh.write(chunk)
        except requests.RequestException as exc:
            raise ArtifactLookupError(f"Failed to download server pack: {exc}") from exc
        except OSError as exc:
            raise FilesystemError(f"Failed to write {dest}: {exc}") from exc
        return dest
