"""
Read-only package queries across all sources
"""

from typing import Dict, List, Optional

from archstore.adapters import get_adapters
from archstore.adapters.base import PackageSourceAdapter
from archstore.config import Settings
from archstore.errors import ArchStoreError, UnknownSourceError
from archstore.logger import get_logger
from archstore.models import Package, SOURCE_OFFICIAL, SOURCE_AUR, SOURCE_FLATPAK
from archstore.resolver import BackendResolver


class PackageQueries:
    """Search, list, detail and update-check operations"""

    def __init__(self, settings: Optional[Settings] = None, resolver: Optional[BackendResolver] = None,
                 adapters: Optional[Dict[str, PackageSourceAdapter]] = None):
        self.resolver = resolver or BackendResolver(settings)
        self.adapters = adapters or get_adapters(self.resolver, settings)
        self.logger = get_logger()

    def adapter_for(self, source: str) -> PackageSourceAdapter:
        adapter = self.adapters.get(source)
        if adapter is None:
            raise UnknownSourceError(source)
        return adapter

    def _search(self, source: str, query: str) -> List[Package]:
        self.logger.log_search(query, source)
        results = self.adapter_for(source).search(query)
        self.logger.log_search_results(query, source, len(results))
        return results

    def search_official_packages(self, query: str) -> List[Package]:
        return self._search(SOURCE_OFFICIAL, query)

    def search_aur_packages(self, query: str) -> List[Package]:
        """
        Raises:
            HelperNotFoundError: no AUR helper is installed
        """
        return self._search(SOURCE_AUR, query)

    def search_flatpak_packages(self, query: str) -> List[Package]:
        return self._search(SOURCE_FLATPAK, query)

    def get_installed_packages(self) -> List[Package]:
        """Installed packages from every source; a failing source contributes nothing"""
        packages = []
        for source, adapter in self.adapters.items():
            try:
                packages.extend(adapter.list_installed())
            except ArchStoreError as e:
                self.logger.log_backend_error(source, str(e))
        return packages

    def get_package_info(self, package_name: str, source: str) -> Package:
        """
        Raises:
            UnknownSourceError, HelperNotFoundError, PackageInfoError, SpawnError
        """
        return self.adapter_for(source).get_details(package_name)

    def check_updates(self) -> List[Package]:
        """Pending updates from every source, described as `current -> new`"""
        updates = []
        for source, adapter in self.adapters.items():
            try:
                updates.extend(adapter.list_updates())
            except ArchStoreError as e:
                self.logger.log_backend_error(source, str(e))
        return updates
