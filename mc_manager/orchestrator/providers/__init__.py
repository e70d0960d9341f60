from .base import ModpackProvider, ServerPackInfo
from .curseforge import CurseForgeProvider

__all__ = ["CurseForgeProvider", "ModpackProvider", "ServerPackInfo"]
