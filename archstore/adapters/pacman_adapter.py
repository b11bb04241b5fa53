from typing import List, Set

from archstore.adapters.base import (
    PackageSourceAdapter, CommandPlan, ELEVATE_STDIN, validate_package_name, pacman_remove_argv
)
from archstore.errors import PackageInfoError, SpawnError
from archstore.models import Package, SOURCE_OFFICIAL
from archstore.parsers import (
    parse_pacman_search, parse_installed_list, parse_pending_updates, parse_package_info
)
from archstore.resolver import PACMAN, answers_version
from archstore.runner import run_query


class PacmanAdapter(PackageSourceAdapter):
    """Adapter for the official repositories through pacman"""

    source = SOURCE_OFFICIAL
    label = "official repositories"

    def validate_name(self, package_name: str) -> bool:
        return validate_package_name(package_name)

    def is_available(self) -> bool:
        return answers_version(PACMAN)

    def install_plan(self, package_name: str) -> CommandPlan:
        return CommandPlan(['pacman', '-S', '--noconfirm', package_name], ELEVATE_STDIN, tool=PACMAN)

    def remove_plan(self, package_name: str, mode: str) -> CommandPlan:
        return CommandPlan(pacman_remove_argv(package_name, mode), ELEVATE_STDIN, tool=PACMAN)

    def update_plan(self) -> CommandPlan:
        return CommandPlan(['pacman', '-Syu', '--noconfirm'], ELEVATE_STDIN, tool=PACMAN)

    def search(self, query: str) -> List[Package]:
        """Search the sync databases with `pacman -Ss`, marking installed packages"""
        result = run_query(['pacman', '-Ss', query])
        if result.returncode != 0:
            return []

        packages = parse_pacman_search(result.stdout)
        installed = self.installed_names()
        for package in packages:
            if package.name in installed:
                package.installed = True
        return packages

    def installed_names(self) -> Set[str]:
        try:
            result = run_query(['pacman', '-Q'])
        except SpawnError:
            return set()
        if result.returncode != 0:
            return set()
        return {package.name for package in parse_installed_list(result.stdout, self.source)}

    def list_installed(self) -> List[Package]:
        """Natively installed packages (`pacman -Qn`); foreign ones belong to the AUR list"""
        result = run_query(['pacman', '-Qn'])
        if result.returncode != 0:
            return []
        return parse_installed_list(result.stdout, self.source)

    def list_updates(self) -> List[Package]:
        # checkupdates exits 2 when nothing is pending
        result = run_query(['checkupdates'])
        if result.returncode != 0:
            return []
        return parse_pending_updates(result.stdout, self.source)

    def get_details(self, package_name: str) -> Package:
        result = run_query(['pacman', '-Si', package_name])
        if result.returncode != 0:
            raise PackageInfoError(f"Failed to get package info: {result.stderr.strip() or package_name}")

        package = parse_package_info(result.stdout, self.source)
        package.name = package.name or package_name
        package.installed = self.is_installed(package_name)
        return package

    def is_installed(self, package_name: str) -> bool:
        try:
            result = run_query(['pacman', '-Q', package_name])
        except SpawnError:
            return False
        return result.returncode == 0
