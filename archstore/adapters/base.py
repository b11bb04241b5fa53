import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from archstore.config import Settings, get_settings
from archstore.logger import get_logger
from archstore.models import Package, REMOVE_MODES, REMOVE_RECURSIVE
from archstore.resolver import BackendResolver


ELEVATE_NONE = "none"
ELEVATE_STDIN = "stdin"    # elevation tool reads the credential on stdin
ELEVATE_SCRIPT = "script"  # credential pre-authorizes sudo inside a helper script


@dataclass
class CommandPlan:
    """How to run one mutating step against a backend"""
    argv: List[str]
    elevation: str = ELEVATE_NONE
    tool: str = ""
    script_name: str = ""


def validate_package_name(package_name: str) -> bool:
    """
    Validate a pacman/AUR package name before it reaches a process or script

    Arch package names are lowercase alphanumerics plus @ . _ + -
    and must not start with a hyphen or a dot.
    """
    if not package_name or len(package_name) > 255:
        return False

    pattern = r'^[a-z0-9@_+][a-z0-9@._+-]*$'
    return bool(re.match(pattern, package_name))


def validate_flatpak_id(flatpak_id: str) -> bool:
    """
    Validate a Flatpak application ID (reverse DNS notation: org.example.AppName)
    """
    if not flatpak_id or len(flatpak_id) > 255:
        return False

    pattern = r'^[a-zA-Z0-9_-]+(\.[a-zA-Z0-9_-]+)+$'
    return bool(re.match(pattern, flatpak_id))


def pacman_remove_argv(package_name: str, mode: str) -> List[str]:
    """`pacman -Rns` for a recursive removal, `pacman -R` otherwise"""
    if mode not in REMOVE_MODES:
        raise ValueError(f"Unknown remove mode: {mode}")
    flag = '-Rns' if mode == REMOVE_RECURSIVE else '-R'
    return ['pacman', flag, '--noconfirm', package_name]


class PackageSourceAdapter(ABC):
    """Abstract base class for package source adapters"""

    source = ""
    label = ""  # shown in progress messages

    def __init__(self, resolver: Optional[BackendResolver] = None, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.resolver = resolver or BackendResolver(self.settings)
        self.logger = get_logger()

    @abstractmethod
    def validate_name(self, package_name: str) -> bool:
        """True if `package_name` is safe to hand to this backend"""

    @abstractmethod
    def install_plan(self, package_name: str) -> CommandPlan:
        pass

    @abstractmethod
    def remove_plan(self, package_name: str, mode: str) -> CommandPlan:
        pass

    @abstractmethod
    def update_plan(self) -> CommandPlan:
        pass

    @abstractmethod
    def search(self, query: str) -> List[Package]:
        """
        Search this source

        Returns:
            Matching packages; an empty list when the tool exits non-zero
        """

    @abstractmethod
    def list_installed(self) -> List[Package]:
        """
        Installed packages from this source

        Returns:
            Installed packages; an empty list when the backend is unavailable
        """

    @abstractmethod
    def list_updates(self) -> List[Package]:
        """Pending updates, each described as `current -> new`"""

    @abstractmethod
    def get_details(self, package_name: str) -> Package:
        """
        Detailed record for one package, with the installed flag filled in

        Raises:
            PackageInfoError: the backend does not know the package
        """

    @abstractmethod
    def is_installed(self, package_name: str) -> bool:
        pass

    @abstractmethod
    def is_available(self) -> bool:
        pass
