import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

import requests

from archstore.adapters.base import (
    PackageSourceAdapter, CommandPlan, ELEVATE_STDIN, ELEVATE_SCRIPT,
    validate_package_name, pacman_remove_argv
)
from archstore.errors import PackageInfoError, SpawnError
from archstore.models import Package, SOURCE_AUR
from archstore.parsers import (
    AUR_PREFIX, INSTALLED_MARKER, parse_aur_search, parse_installed_list,
    parse_pending_updates, parse_package_info
)
from archstore.resolver import PACMAN
from archstore.runner import run_query


# The AUR RPC accepts a bounded number of arg[] values per request
RPC_BATCH_SIZE = 100


def unique_script_name(operation: str) -> str:
    """Helper script name, unique per operation so concurrent runs never share a file"""
    return f"{operation}_{uuid.uuid4().hex[:8]}"


class AurAdapter(PackageSourceAdapter):
    """Adapter for the AUR through the first available helper (yay, paru)"""

    source = SOURCE_AUR
    label = "AUR"

    def validate_name(self, package_name: str) -> bool:
        return validate_package_name(package_name)

    def is_available(self) -> bool:
        return self.resolver.detect_aur_helper() is not None

    def install_plan(self, package_name: str) -> CommandPlan:
        helper = self.resolver.resolve_aur_helper()
        return CommandPlan(
            [helper, '-S', '--noconfirm', package_name],
            ELEVATE_SCRIPT,
            tool=helper,
            script_name=unique_script_name(f"install_{package_name}")
        )

    def remove_plan(self, package_name: str, mode: str) -> CommandPlan:
        # Installed AUR packages are ordinary foreign packages to pacman
        return CommandPlan(pacman_remove_argv(package_name, mode), ELEVATE_STDIN, tool=PACMAN)

    def update_plan(self, helper: Optional[str] = None) -> CommandPlan:
        helper = helper or self.resolver.resolve_aur_helper()
        return CommandPlan([helper, '-Sua', '--noconfirm'], ELEVATE_SCRIPT, tool=helper,
                           script_name=unique_script_name("update_aur"))

    def search(self, query: str) -> List[Package]:
        """
        Search the AUR with the helper's -Ss

        Raises:
            HelperNotFoundError: neither yay nor paru is installed
        """
        helper = self.resolver.resolve_aur_helper()
        result = run_query([helper, '-Ss', query])
        if result.returncode != 0:
            return []

        packages = parse_aur_search(result.stdout)
        if packages and self.settings.get('aur_rpc_metadata'):
            self.enrich(packages)
        return packages

    def list_installed(self) -> List[Package]:
        helper = self.resolver.detect_aur_helper()
        if helper is None:
            return []
        result = run_query([helper, '-Qm'])
        if result.returncode != 0:
            return []
        return parse_installed_list(result.stdout, self.source)

    def list_updates(self) -> List[Package]:
        helper = self.resolver.detect_aur_helper()
        if helper is None:
            return []
        result = run_query([helper, '-Qua'])
        if result.returncode != 0:
            return []
        return parse_pending_updates(result.stdout, self.source)

    def get_details(self, package_name: str) -> Package:
        helper = self.resolver.resolve_aur_helper()
        result = run_query([helper, '-Si', package_name])
        if result.returncode != 0:
            raise PackageInfoError(f"Failed to get package info: {result.stderr.strip() or package_name}")

        package = parse_package_info(result.stdout, self.source)
        package.name = package.name or package_name
        package.installed = self.is_installed(package_name)
        return package

    def is_installed(self, package_name: str) -> bool:
        """Installed only if the helper lists it as aur/<name> with [installed]"""
        helper = self.resolver.detect_aur_helper()
        if helper is None:
            return False
        try:
            result = run_query([helper, '-Ss', package_name])
        except SpawnError:
            return False
        if result.returncode != 0:
            return False

        header = f"{AUR_PREFIX}{package_name} "
        return any(
            line.startswith(header) and INSTALLED_MARKER in line.lower()
            for line in result.stdout.splitlines()
        )

    def enrich(self, packages: List[Package]) -> List[Package]:
        """Fill votes, popularity, maintainer and last-modified from the AUR RPC

        Network or decoding problems leave the records untouched.
        """
        by_name: Dict[str, Package] = {package.name: package for package in packages}
        names = list(by_name)

        for start in range(0, len(names), RPC_BATCH_SIZE):
            batch = names[start:start + RPC_BATCH_SIZE]
            try:
                response = requests.get(
                    self.settings.get('aur_rpc_url'),
                    params=[('arg[]', name) for name in batch],
                    timeout=self.settings.get('request_timeout', 10)
                )
                response.raise_for_status()
                data = response.json()
            except (requests.RequestException, ValueError) as e:
                self.logger.log_backend_error("AUR RPC", str(e))
                return packages

            for info in data.get('results', []):
                package = by_name.get(info.get('Name'))
                if package is None:
                    continue
                package.downloads = int(info.get('NumVotes') or 0)
                package.rating = float(info.get('Popularity') or 0.0)
                package.maintainer = info.get('Maintainer') or ""
                modified = info.get('LastModified')
                if modified:
                    package.last_updated = datetime.fromtimestamp(int(modified), tz=timezone.utc).strftime('%Y-%m-%d')

        return packages
