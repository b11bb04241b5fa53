"""
Error types raised by the package operation core
"""

from typing import Iterable


class ArchStoreError(Exception):
    """Base class for all archstore errors"""


class UnknownSourceError(ArchStoreError):
    """The requested package source is not one of the known backends"""

    def __init__(self, source: str):
        self.source = source
        super().__init__(f"Unknown package source: {source}")


class InvalidPackageNameError(ArchStoreError):
    """A package name failed validation and was never passed to a process"""

    def __init__(self, name: str, source: str):
        self.name = name
        self.source = source
        super().__init__(f"Invalid package name for {source}: {name!r}")


class HelperNotFoundError(ArchStoreError):
    """None of the known AUR helpers responded to `--version`"""

    def __init__(self, helpers: Iterable[str]):
        self.helpers = tuple(helpers)
        super().__init__(f"No AUR helper found. Please install {_join_names(self.helpers)}.")


class SpawnError(ArchStoreError):
    """An executable could not be started"""

    def __init__(self, executable: str, reason: str):
        self.executable = executable
        self.reason = reason
        super().__init__(f"Failed to spawn {executable}: {reason}")


class CredentialTransferError(ArchStoreError):
    """Writing the credential to the elevation prompt failed"""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Failed to write password: {reason}")


class ProcessFailedError(ArchStoreError):
    """A process ran to completion and exited non-zero"""

    def __init__(self, returncode: int, diagnostic: str):
        self.returncode = returncode
        self.diagnostic = diagnostic
        super().__init__(diagnostic)


class PackageInfoError(ArchStoreError):
    """Package details could not be retrieved"""


class OperationCancelled(ArchStoreError):
    """The caller cancelled a running operation"""

    def __init__(self):
        super().__init__("Operation cancelled")


class OperationTimedOut(ArchStoreError):
    """The process did not exit within the configured deadline"""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Process did not exit within {timeout:g} seconds")


def _join_names(names) -> str:
    if not names:
        return "an AUR helper"
    if len(names) == 1:
        return names[0]
    return f"{', '.join(names[:-1])} or {names[-1]}"
