"""
Backend resolution: which executable implements each package source
"""

import subprocess
from typing import Iterable, Optional

from archstore.config import Settings, get_settings
from archstore.errors import HelperNotFoundError, UnknownSourceError
from archstore.models import SOURCE_OFFICIAL, SOURCE_AUR, SOURCE_FLATPAK


PACMAN = "pacman"
FLATPAK = "flatpak"


def answers_version(executable: str) -> bool:
    """Return True if `executable --version` can be started at all

    The exit code is irrelevant; only a failure to invoke counts as absent.
    """
    try:
        subprocess.run(
            [executable, '--version'],
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True
        )
        return True
    except (OSError, ValueError):
        return False


class BackendResolver:
    """Resolves source tags to executables

    The AUR helper is looked up on every call so that a helper installed while
    the application runs is picked up by the next operation.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    @property
    def helpers(self) -> list:
        return self.settings.aur_helpers()

    def detect_aur_helper(self, helpers: Optional[Iterable[str]] = None) -> Optional[str]:
        """First helper answering `--version`, or None"""
        for helper in (helpers if helpers is not None else self.helpers):
            if answers_version(helper):
                return helper
        return None

    def resolve_aur_helper(self) -> str:
        helper = self.detect_aur_helper()
        if helper is None:
            raise HelperNotFoundError(self.helpers)
        return helper

    def has_flatpak(self) -> bool:
        return answers_version(FLATPAK)

    def resolve(self, source: str) -> str:
        """Executable used for queries against `source`"""
        if source == SOURCE_OFFICIAL:
            return PACMAN
        if source == SOURCE_AUR:
            return self.resolve_aur_helper()
        if source == SOURCE_FLATPAK:
            return FLATPAK
        raise UnknownSourceError(source)
