from typing import Dict, List

from archstore.adapters.base import PackageSourceAdapter, CommandPlan, ELEVATE_NONE, validate_flatpak_id
from archstore.errors import PackageInfoError, SpawnError
from archstore.models import Package, SOURCE_FLATPAK, REMOVE_MODES
from archstore.parsers import (
    parse_flatpak_search, parse_flatpak_installed, parse_flatpak_updates,
    installed_flatpak_ids, parse_package_info
)
from archstore.resolver import FLATPAK
from archstore.runner import run_query


LIST_COLUMNS = '--columns=name,application,version,branch,installation'


class FlatpakAdapter(PackageSourceAdapter):
    """Adapter for Flatpak applications using the CLI (no elevation)"""

    source = SOURCE_FLATPAK
    label = "Flatpak"

    def validate_name(self, package_name: str) -> bool:
        return validate_flatpak_id(package_name)

    def is_available(self) -> bool:
        return self.resolver.has_flatpak()

    def install_plan(self, package_name: str) -> CommandPlan:
        return CommandPlan(['flatpak', 'install', '-y', package_name], ELEVATE_NONE, tool=FLATPAK)

    def remove_plan(self, package_name: str, mode: str) -> CommandPlan:
        if mode not in REMOVE_MODES:
            raise ValueError(f"Unknown remove mode: {mode}")
        return CommandPlan(['flatpak', 'uninstall', '-y', package_name], ELEVATE_NONE, tool=FLATPAK)

    def update_plan(self) -> CommandPlan:
        return CommandPlan(['flatpak', 'update', '-y'], ELEVATE_NONE, tool=FLATPAK)

    def search(self, query: str) -> List[Package]:
        result = run_query(['flatpak', 'search', query])
        if result.returncode != 0:
            return []

        packages = parse_flatpak_search(result.stdout)
        installed = self.installed_versions()
        for package in packages:
            if package.name in installed:
                package.installed = True
        return packages

    def installed_versions(self) -> Dict[str, str]:
        """Application ID -> installed version; empty when flatpak is unusable"""
        try:
            result = run_query(['flatpak', 'list', '--app', LIST_COLUMNS])
        except SpawnError:
            return {}
        if result.returncode != 0:
            return {}
        return installed_flatpak_ids(result.stdout)

    def list_installed(self) -> List[Package]:
        result = run_query(['flatpak', 'list', '--app', LIST_COLUMNS])
        if result.returncode != 0:
            return []
        return parse_flatpak_installed(result.stdout)

    def list_updates(self) -> List[Package]:
        result = run_query(['flatpak', 'remote-ls', '--updates', '--app', '--columns=name,application,version'])
        if result.returncode != 0:
            return []
        return parse_flatpak_updates(result.stdout, self.installed_versions())

    def get_details(self, package_name: str) -> Package:
        result = run_query(['flatpak', 'info', package_name])
        if result.returncode != 0:
            raise PackageInfoError(f"Failed to get package info: {result.stderr.strip() or package_name}")

        package = parse_package_info(result.stdout, self.source)
        package.name = package.name or package_name
        if not package.description:
            # flatpak info opens with a "Name - Summary" title line
            for line in result.stdout.splitlines():
                if line.strip() and ':' not in line:
                    package.description = line.strip()
                    break
        package.installed = self.is_installed(package_name)
        return package

    def is_installed(self, package_name: str) -> bool:
        return package_name in self.installed_versions()
