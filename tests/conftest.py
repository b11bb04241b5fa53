"""
Shared fixtures: isolated settings and logger, fake processes and runners
"""

import io
import os
import subprocess

import pytest

import archstore.config
import archstore.logger
from archstore.config import Settings
from archstore.errors import SpawnError
from archstore.logger import LoggerManager
from archstore.resolver import BackendResolver
from archstore.runner import ProcessRunner


class FakeProcess:
    """Stands in for subprocess.Popen with canned output"""

    def __init__(self, stdout="", stderr="", returncode=0, hang=False):
        self.stdout = io.StringIO(stdout)
        self.stderr = io.StringIO(stderr)
        self.stdin = None
        self.returncode = returncode
        self.hang = hang
        self.killed = False
        self.terminated = False

    def wait(self, timeout=None):
        if self.hang and timeout is not None and not self.killed:
            raise subprocess.TimeoutExpired("fake", timeout)
        return self.returncode

    def kill(self):
        self.killed = True

    def terminate(self):
        self.terminated = True


class FakeRunner(ProcessRunner):
    """Hands out queued FakeProcess objects instead of spawning"""

    def __init__(self, settings, processes=()):
        super().__init__(settings)
        self.processes = list(processes)
        self.spawned = []
        self.credentials = []
        self.scripts = []

    def spawn(self, argv, stdin=subprocess.DEVNULL):
        self.spawned.append(list(argv))
        if argv[0].endswith('.sh') and os.path.exists(argv[0]):
            with open(argv[0], 'r', encoding='utf-8') as f:
                self.scripts.append(f.read())
        if not self.processes:
            raise SpawnError(argv[0], "No such file or directory")
        return self.processes.pop(0)

    def feed_credential(self, process, credential):
        self.credentials.append(credential)


class FakeResolver(BackendResolver):
    """Resolver with a fixed AUR helper (or none) and flatpak availability"""

    def __init__(self, settings, helper="yay", flatpak=True):
        super().__init__(settings)
        self.helper = helper
        self.flatpak = flatpak
        self.lookups = 0

    def detect_aur_helper(self, helpers=None):
        self.lookups += 1
        return self.helper

    def has_flatpak(self):
        return self.flatpak


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Point the global settings and logger at a temporary directory"""
    settings = Settings(
        config_path=str(tmp_path / "settings.json"),
        log_dir=str(tmp_path / "logs"),
        script_dir=str(tmp_path),
    )
    monkeypatch.setattr(archstore.config, "_settings_instance", settings)
    monkeypatch.setattr(archstore.logger, "_logger_instance", LoggerManager(log_dir=str(tmp_path / "logs")))
    yield settings


@pytest.fixture
def settings(isolated_environment):
    return isolated_environment


@pytest.fixture
def resolver(settings):
    return FakeResolver(settings)
