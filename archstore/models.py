from dataclasses import dataclass, asdict
from typing import Dict


SOURCE_OFFICIAL = "official"
SOURCE_AUR = "aur"
SOURCE_FLATPAK = "flatpak"
SOURCES = (SOURCE_OFFICIAL, SOURCE_AUR, SOURCE_FLATPAK)

REMOVE_PLAIN = "plain"
REMOVE_RECURSIVE = "recursive"
REMOVE_MODES = (REMOVE_PLAIN, REMOVE_RECURSIVE)

INSTALL_CHANNEL = "install-progress"
REMOVE_CHANNEL = "remove-progress"
UPDATE_CHANNEL = "update-progress"


@dataclass
class Package:
    """A package as reported by one backend"""
    name: str
    version: str = ""
    description: str = ""
    source: str = SOURCE_OFFICIAL  # 'official', 'aur', 'flatpak'
    installed: bool = False
    category: str = ""
    downloads: int = 0
    rating: float = 0.0
    maintainer: str = ""
    size: str = ""
    last_updated: str = ""

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class ProgressEvent:
    """Point-in-time status of a running operation"""
    percentage: int
    message: str
    completed: bool = False

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class Capabilities:
    """Which optional package sources the system can use"""
    has_aur_helper: bool
    has_flatpak: bool
    multilib_enabled: bool

    def to_dict(self) -> Dict:
        return asdict(self)
