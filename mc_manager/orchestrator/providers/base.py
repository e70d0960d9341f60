from __future__ import annotations

import abc
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class ServerPackInfo:
    version: str
    file_id: int
    display_name: str
    download_url: str


class ModpackProvider(abc.ABC):
    """
    Abstract base class for the remote repository a server pack comes from.
    """

    @abc.abstractmethod
    def latest_server_pack(self) -> ServerPackInfo:
        """
        Return the most recently published server pack.
        Raises ArtifactLookupError when it cannot be determined.
        """

    @abc.abstractmethod
    def download(self, url: str, dest: Path) -> Path:
        """
        Download the archive at url to dest and return dest.
        Raises ArtifactLookupError on transport failure.
        """
