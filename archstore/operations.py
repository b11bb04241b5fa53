"""
Operation coordinator for archstore
Runs install, remove and update operations against the three package sources,
streaming every output line to a progress sink and classifying the outcome.
"""

import subprocess
import threading
from typing import Dict, Optional, Tuple

from archstore.adapters import get_adapters
from archstore.adapters.base import CommandPlan, PackageSourceAdapter, ELEVATE_SCRIPT, ELEVATE_STDIN
from archstore.config import Settings, get_settings
from archstore.errors import (
    ArchStoreError, InvalidPackageNameError, OperationCancelled, OperationTimedOut,
    ProcessFailedError, UnknownSourceError
)
from archstore.logger import get_logger
from archstore.models import (
    SOURCE_OFFICIAL, SOURCE_AUR, SOURCE_FLATPAK,
    INSTALL_CHANNEL, REMOVE_CHANNEL, UPDATE_CHANNEL
)
from archstore.progress import ProgressReporter, ProgressSink
from archstore.resolver import BackendResolver
from archstore.runner import ProcessRunner
from archstore.streams import CapturedOutput, StreamMultiplexer


REMOVE_STAGES = {
    SOURCE_OFFICIAL: "Removing from official repositories...",
    SOURCE_AUR: "Removing AUR package...",
    SOURCE_FLATPAK: "Removing Flatpak package...",
}


def diagnostic(captured: CapturedOutput, returncode: int) -> str:
    """Most informative text for a failed process: stderr, then stdout, then a generic message"""
    if captured.stderr:
        return captured.stderr_text
    if captured.stdout:
        return captured.stdout_text
    return f"unknown error (exit status {returncode})"


class PackageOperations:
    """Coordinates long-running package operations

    Every public method returns `(success, message)` and, on every path,
    emits exactly one terminal progress event on its channel.
    """

    def __init__(self, sink: Optional[ProgressSink] = None, settings: Optional[Settings] = None,
                 resolver: Optional[BackendResolver] = None, runner: Optional[ProcessRunner] = None,
                 adapters: Optional[Dict[str, PackageSourceAdapter]] = None,
                 cancel_event: Optional[threading.Event] = None):
        self.sink = sink
        self.settings = settings or get_settings()
        self.resolver = resolver or BackendResolver(self.settings)
        self.runner = runner or ProcessRunner(self.settings)
        self.adapters = adapters or get_adapters(self.resolver, self.settings)
        self.cancel_event = cancel_event
        self.logger = get_logger()

    def adapter_for(self, source: str) -> PackageSourceAdapter:
        adapter = self.adapters.get(source)
        if adapter is None:
            raise UnknownSourceError(source)
        return adapter

    def _checked_adapter(self, package_name: str, source: str) -> PackageSourceAdapter:
        adapter = self.adapter_for(source)
        if not adapter.validate_name(package_name):
            raise InvalidPackageNameError(package_name, source)
        return adapter

    # ==================== Install / Remove ====================

    def install_package(self, package_name: str, source: str, password: Optional[str] = None) -> Tuple[bool, str]:
        """Install `package_name` from `source`, streaming progress on install-progress"""
        reporter = ProgressReporter(self.sink, INSTALL_CHANNEL)
        reporter.report(10, f"Starting installation of {package_name}...")
        self.logger.log_operation_attempt("install", package_name, source)

        try:
            adapter = self._checked_adapter(package_name, source)
            reporter.report(30, f"Installing from {adapter.label}...")
            plan = adapter.install_plan(package_name)
        except (ArchStoreError, ValueError) as e:
            return self._fail(reporter, "install", package_name, source, str(e))

        percentage = 50
        if plan.elevation == ELEVATE_SCRIPT:
            reporter.report(40, f"Using {plan.tool} to install {package_name}...")
            percentage = 60

        try:
            self.execute(plan, password, reporter, percentage)
        except ProcessFailedError as e:
            return self._fail(reporter, "install", package_name, source, f"Installation failed: {e.diagnostic}")
        except ArchStoreError as e:
            return self._fail(reporter, "install", package_name, source,
                              f"Failed to execute installer: {e} ({source})")

        reporter.succeed("Installation completed successfully!")
        self.logger.log_operation_success("install", package_name, source)
        return True, f"Successfully installed {package_name}"

    def remove_package(self, package_name: str, source: str, remove_mode: str = "plain",
                       password: Optional[str] = None) -> Tuple[bool, str]:
        """Remove `package_name`; mode 'recursive' also removes unneeded dependencies"""
        reporter = ProgressReporter(self.sink, REMOVE_CHANNEL)
        reporter.report(10, f"Starting removal of {package_name}...")
        self.logger.log_operation_attempt("remove", package_name, source)

        try:
            adapter = self._checked_adapter(package_name, source)
            plan = adapter.remove_plan(package_name, remove_mode)
        except (ArchStoreError, ValueError) as e:
            return self._fail(reporter, "remove", package_name, source, str(e))

        reporter.report(30, REMOVE_STAGES[source])

        try:
            self.execute(plan, password, reporter, 50)
        except ProcessFailedError as e:
            return self._fail(reporter, "remove", package_name, source, f"Removal failed: {e.diagnostic}")
        except ArchStoreError as e:
            return self._fail(reporter, "remove", package_name, source, f"Failed to execute removal: {e}")

        reporter.succeed("Removal completed successfully!")
        self.logger.log_operation_success("remove", package_name, source)
        return True, f"Successfully removed {package_name}"

    # ==================== Updates ====================

    def update_system(self, password: Optional[str] = None) -> Tuple[bool, str]:
        """Update official, AUR (when a helper exists) and Flatpak packages in turn

        Only a failure of the official update aborts; the other two steps are
        best-effort and degrade to warnings.
        """
        reporter = ProgressReporter(self.sink, UPDATE_CHANNEL)
        reporter.report(10, "Starting system update...")
        self.logger.log_info("Starting full system update")

        reporter.report(20, ":: Updating official packages...")
        try:
            self.execute(self.adapters[SOURCE_OFFICIAL].update_plan(), password, reporter, 30)
        except ProcessFailedError as e:
            return self._fail_update(reporter, f"Official packages update failed: {e.diagnostic}", e.diagnostic)
        except ArchStoreError as e:
            return self._fail_update(reporter, f"Official packages update failed: {e}", str(e))

        helper = self.resolver.detect_aur_helper()
        if helper is not None:
            reporter.report(50, ":: Updating AUR packages...")
            try:
                self.execute(self.adapters[SOURCE_AUR].update_plan(helper), password, reporter, 60)
            except OperationCancelled as e:
                return self._fail_update(reporter, str(e), str(e))
            except ArchStoreError as e:
                self.logger.log_warning(f"AUR update failed: {e}")
                reporter.report(60, "AUR update completed with warnings (continuing...)")

        reporter.report(75, ":: Updating Flatpak packages...")
        try:
            self.execute(self.adapters[SOURCE_FLATPAK].update_plan(), None, reporter, 85)
        except OperationCancelled as e:
            return self._fail_update(reporter, str(e), str(e))
        except ArchStoreError as e:
            self.logger.log_warning(f"Flatpak update failed: {e}")
            reporter.report(85, "Flatpak update completed with warnings (continuing...)")

        reporter.succeed(":: System updated successfully!")
        self.logger.log_success("System updated")
        return True, "System updated successfully"

    def update_official(self, password: Optional[str] = None) -> Tuple[bool, str]:
        reporter = ProgressReporter(self.sink, UPDATE_CHANNEL)
        reporter.report(10, ":: Starting official packages update...")

        try:
            self.execute(self.adapters[SOURCE_OFFICIAL].update_plan(), password, reporter, 50)
        except ProcessFailedError as e:
            return self._fail_update(reporter, f"Official packages update failed: {e.diagnostic}", e.diagnostic)
        except ArchStoreError as e:
            return self._fail_update(reporter, f"Official packages update failed: {e}", str(e))

        reporter.succeed(":: Official packages updated successfully!")
        return True, "Official packages updated successfully"

    def update_aur(self, password: Optional[str] = None) -> Tuple[bool, str]:
        """Update AUR packages; a non-zero helper exit still counts as success with warnings"""
        reporter = ProgressReporter(self.sink, UPDATE_CHANNEL)

        adapter = self.adapters[SOURCE_AUR]
        try:
            plan = adapter.update_plan()
        except ArchStoreError as e:
            return self._fail_update(reporter, str(e), str(e))

        reporter.report(10, ":: Starting AUR packages update...")
        return self._best_effort_update(reporter, plan, password, adapter.label)

    def update_flatpak(self) -> Tuple[bool, str]:
        reporter = ProgressReporter(self.sink, UPDATE_CHANNEL)
        reporter.report(10, ":: Starting Flatpak packages update...")
        adapter = self.adapters[SOURCE_FLATPAK]
        return self._best_effort_update(reporter, adapter.update_plan(), None, adapter.label)

    def _best_effort_update(self, reporter: ProgressReporter, plan: CommandPlan,
                            password: Optional[str], label: str) -> Tuple[bool, str]:
        try:
            self.execute(plan, password, reporter, 50)
        except ProcessFailedError as e:
            self.logger.log_warning(f"{label} update exited with status {e.returncode}")
            reporter.complete(100, f":: {label} update completed with warnings")
            return True, f"{label} update completed with warnings"
        except ArchStoreError as e:
            return self._fail_update(reporter, f"{label} packages update failed: {e}", str(e))

        reporter.succeed(f":: {label} packages updated successfully!")
        return True, f"{label} packages updated successfully"

    # ==================== Execution ====================

    def execute(self, plan: CommandPlan, credential: Optional[str], reporter: Optional[ProgressReporter],
                percentage: int) -> CapturedOutput:
        """Spawn `plan`, drain both streams, then wait for the exit status

        Raises:
            SpawnError, CredentialTransferError: the process never ran
            ProcessFailedError: it ran and exited non-zero
            OperationCancelled, OperationTimedOut
        """
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise OperationCancelled()

        if plan.elevation == ELEVATE_SCRIPT:
            with self.runner.helper_script(plan.script_name, plan.argv, credential or "") as script:
                process = self.runner.spawn([script])
                return self._stream_and_wait(process, reporter, percentage, filter_prompt=True)

        if plan.elevation == ELEVATE_STDIN:
            process = self.runner.spawn_elevated(plan.argv, credential or "")
            return self._stream_and_wait(process, reporter, percentage, filter_prompt=True)

        process = self.runner.spawn(plan.argv)
        return self._stream_and_wait(process, reporter, percentage, filter_prompt=False)

    def _stream_and_wait(self, process: subprocess.Popen, reporter: Optional[ProgressReporter],
                         percentage: int, filter_prompt: bool) -> CapturedOutput:
        multiplexer = StreamMultiplexer(reporter, self.settings.get('password_prompt'), self.cancel_event)
        # Both streams reach EOF before the exit status is read, so the
        # child can never block on a full pipe.
        captured = multiplexer.drain(process, percentage, filter_prompt=filter_prompt)

        timeout = self.settings.exit_timeout()
        try:
            returncode = self.runner.wait(process, timeout)
        except subprocess.TimeoutExpired:
            raise OperationTimedOut(timeout)

        if captured.cancelled:
            raise OperationCancelled()
        if returncode != 0:
            raise ProcessFailedError(returncode, diagnostic(captured, returncode))
        return captured

    # ==================== Failure reporting ====================

    def _fail(self, reporter: ProgressReporter, operation: str, package_name: str, source: str,
              message: str) -> Tuple[bool, str]:
        reporter.fail(message)
        self.logger.log_operation_failure(operation, package_name, source, message)
        return False, message

    def _fail_update(self, reporter: ProgressReporter, message: str, result: str) -> Tuple[bool, str]:
        reporter.fail(message)
        self.logger.log_error(message)
        return False, result or message
