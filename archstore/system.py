"""
System-level operations: the multilib repository and capability detection
"""

import subprocess
from typing import List, Optional, Tuple

from archstore.config import Settings, get_settings
from archstore.errors import ArchStoreError, OperationTimedOut
from archstore.logger import get_logger
from archstore.models import Capabilities
from archstore.parsers import parse_multilib_enabled
from archstore.resolver import BackendResolver
from archstore.runner import ProcessRunner
from archstore.streams import StreamMultiplexer


class SystemManager:
    """Repository configuration and capability checks"""

    def __init__(self, settings: Optional[Settings] = None, resolver: Optional[BackendResolver] = None,
                 runner: Optional[ProcessRunner] = None):
        self.settings = settings or get_settings()
        self.resolver = resolver or BackendResolver(self.settings)
        self.runner = runner or ProcessRunner(self.settings)
        self.logger = get_logger()

    @property
    def pacman_conf(self) -> str:
        return self.settings.get('pacman_conf')

    def is_multilib_enabled(self) -> bool:
        try:
            with open(self.pacman_conf, 'r', encoding='utf-8', errors='replace') as f:
                return parse_multilib_enabled(f.read())
        except OSError as e:
            self.logger.log_warning(f"Could not read {self.pacman_conf}: {e}")
            return False

    def enable_multilib(self, password: Optional[str] = None) -> Tuple[bool, str]:
        """Uncomment the [multilib] section and sync the databases

        Returns success without touching anything when it is already enabled.
        """
        if self.is_multilib_enabled():
            self.logger.log_info("Multilib already enabled")
            return True, "Multilib is already enabled"

        steps = [
            (['sed', '-i', r'/^#\[multilib\]/s/^#//', self.pacman_conf],
             "Failed to uncomment [multilib]"),
            (['sed', '-i', r'/^\[multilib\]$/,/^#Include/ s/^#Include/Include/', self.pacman_conf],
             "Failed to uncomment Include line"),
            (['pacman', '-Sy'],
             "Failed to sync databases"),
        ]

        for argv, failure in steps:
            try:
                returncode, errors = self._run_elevated(argv, password or "")
            except ArchStoreError as e:
                self.logger.log_error(f"{failure}: {e}")
                return False, f"{failure}: {e}"
            if returncode != 0:
                self.logger.log_error(f"{failure}: {errors}")
                return False, f"{failure}: {errors}"

        self.logger.log_success("Multilib enabled")
        return True, "Multilib enabled and databases synced successfully"

    def _run_elevated(self, argv: List[str], credential: str) -> Tuple[int, str]:
        process = self.runner.spawn_elevated(argv, credential)
        captured = StreamMultiplexer(None, self.settings.get('password_prompt')).drain(process, 0)
        timeout = self.settings.exit_timeout()
        try:
            returncode = self.runner.wait(process, timeout)
        except subprocess.TimeoutExpired:
            raise OperationTimedOut(timeout)
        return returncode, captured.stderr_text or captured.stdout_text or f"exit status {returncode}"

    def check_system_capabilities(self) -> Capabilities:
        return Capabilities(
            has_aur_helper=self.resolver.detect_aur_helper() is not None,
            has_flatpak=self.resolver.has_flatpak(),
            multilib_enabled=self.is_multilib_enabled()
        )
