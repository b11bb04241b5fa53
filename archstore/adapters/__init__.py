from typing import Dict, Optional

from archstore.adapters.base import PackageSourceAdapter
from archstore.adapters.pacman_adapter import PacmanAdapter
from archstore.adapters.aur_adapter import AurAdapter
from archstore.adapters.flatpak_adapter import FlatpakAdapter
from archstore.config import Settings
from archstore.models import SOURCE_OFFICIAL, SOURCE_AUR, SOURCE_FLATPAK
from archstore.resolver import BackendResolver


def get_adapters(resolver: Optional[BackendResolver] = None,
                 settings: Optional[Settings] = None) -> Dict[str, PackageSourceAdapter]:
    """One adapter per source tag, sharing a resolver"""
    resolver = resolver or BackendResolver(settings)
    return {
        SOURCE_OFFICIAL: PacmanAdapter(resolver, settings),
        SOURCE_AUR: AurAdapter(resolver, settings),
        SOURCE_FLATPAK: FlatpakAdapter(resolver, settings),
    }
