"""
Process runner for archstore
Spawns external tools, feeds the elevation credential and writes helper scripts
"""

import os
import shlex
import subprocess
from contextlib import contextmanager
from typing import Iterator, List, Optional

from archstore.config import Settings, get_settings
from archstore.errors import CredentialTransferError, SpawnError
from archstore.logger import get_logger


def command_env() -> dict:
    """Environment for spawned tools: untranslated labels, no colour codes"""
    env = os.environ.copy()
    env['LC_MESSAGES'] = "C"
    env.setdefault('NO_COLOR', "1")
    env.setdefault('PACMAN_COLOR', "never")
    return env


def run_query(argv: List[str]) -> subprocess.CompletedProcess:
    """Run a read-only command to completion and capture its output

    Raises:
        SpawnError: the executable could not be started
    """
    get_logger().log_command(argv)
    try:
        return subprocess.run(
            argv,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            encoding='utf-8',
            errors='replace',
            env=command_env()
        )
    except (OSError, ValueError) as e:
        raise SpawnError(argv[0], str(e)) from e


def script_path_for(script_dir: str, name: str) -> str:
    safe = name.replace('/', '_').replace(os.sep, '_')
    return os.path.join(script_dir, f"archstore_{safe}.sh")


class ProcessRunner:
    """Spawns long-running operations with piped output streams"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.logger = get_logger()

    @property
    def elevation_tool(self) -> str:
        return self.settings.get('elevation_tool') or "sudo"

    def spawn(self, argv: List[str], stdin=subprocess.DEVNULL) -> subprocess.Popen:
        """Start `argv` with stdout and stderr piped as text

        Raises:
            SpawnError: executable missing or not runnable
        """
        self.logger.log_command(argv)
        try:
            return subprocess.Popen(
                argv,
                stdin=stdin,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding='utf-8',
                errors='replace',
                env=command_env()
            )
        except (OSError, ValueError) as e:
            raise SpawnError(argv[0], str(e)) from e

    def spawn_elevated(self, argv: List[str], credential: str) -> subprocess.Popen:
        """Start `argv` under the elevation tool, reading the credential from stdin

        Raises:
            SpawnError: the elevation tool could not be started
            CredentialTransferError: the credential could not be written
        """
        process = self.spawn([self.elevation_tool, '-S', *argv], stdin=subprocess.PIPE)
        self.feed_credential(process, credential)
        return process

    def feed_credential(self, process: subprocess.Popen, credential: str):
        """Write the credential and a newline to stdin, then close it"""
        try:
            process.stdin.write(f"{credential}\n")
            process.stdin.flush()
        except (OSError, ValueError) as e:
            self.abandon(process)
            raise CredentialTransferError(str(e)) from e
        finally:
            try:
                process.stdin.close()
            except OSError:
                pass

    @staticmethod
    def abandon(process: subprocess.Popen):
        """Kill and reap a process whose output will never be read"""
        try:
            process.kill()
        except OSError:
            pass
        for stream in (process.stdout, process.stderr):
            if stream is not None:
                try:
                    stream.close()
                except OSError:
                    pass
        try:
            process.wait()
        except OSError:
            pass

    @contextmanager
    def helper_script(self, name: str, helper_argv: List[str], credential: str) -> Iterator[str]:
        """Write a short-lived script that pre-authorizes sudo and runs an AUR helper

        The helper refuses to run as root and prompts for sudo itself, so the
        credential is embedded in the script. The file is owner-only and is
        removed when the block exits, whatever the outcome.
        """
        path = script_path_for(self.settings.script_dir(), name)
        content = (
            "#!/bin/bash\n"
            f"printf '%s\\n' {shlex.quote(credential)} | {shlex.quote(self.elevation_tool)} -S -v\n"
            f"{' '.join(shlex.quote(arg) for arg in helper_argv)}\n"
        )

        # Whatever already sits at the path is never reused
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise SpawnError(path, f"could not replace existing helper script: {e}") from e

        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL | getattr(os, 'O_NOFOLLOW', 0), 0o700)
        except OSError as e:
            raise SpawnError(path, f"could not create helper script: {e}") from e

        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                os.fchmod(f.fileno(), 0o700)
                f.write(content)
        except OSError as e:
            self._remove_script(path)
            raise SpawnError(path, f"could not write helper script: {e}") from e

        try:
            yield path
        finally:
            self._remove_script(path)

    def _remove_script(self, path: str):
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            self.logger.log_warning(f"Could not remove helper script {path}: {e}")

    def wait(self, process: subprocess.Popen, timeout: Optional[float] = None) -> int:
        """Wait for exit; on timeout the process is killed and TimeoutExpired re-raised"""
        try:
            return process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()
            raise
