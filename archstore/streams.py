"""
Stream multiplexer: drains a child's stdout and stderr on two threads
"""

import subprocess
import threading
from dataclasses import dataclass, field
from typing import IO, List, Optional

from archstore.progress import ProgressReporter


@dataclass
class CapturedOutput:
    """Non-empty lines seen on each stream, kept for failure diagnostics"""
    stdout: List[str] = field(default_factory=list)
    stderr: List[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def stdout_text(self) -> str:
        return "\n".join(self.stdout)

    @property
    def stderr_text(self) -> str:
        return "\n".join(self.stderr)


class StreamMultiplexer:
    """Consumes both output streams of a process until end-of-stream

    Every non-blank line becomes one progress event. Lines on stderr that
    contain the password prompt are dropped when `filter_prompt` is set.
    No ordering between the two streams is preserved.
    """

    def __init__(self, reporter: Optional[ProgressReporter], password_prompt: str = "[sudo] password",
                 cancel_event: Optional[threading.Event] = None):
        self.reporter = reporter
        self.password_prompt = password_prompt
        self.cancel_event = cancel_event
        self._terminate_lock = threading.Lock()

    def drain(self, process: subprocess.Popen, stdout_percentage: int,
              stderr_percentage: Optional[int] = None, filter_prompt: bool = True) -> CapturedOutput:
        """Block until both streams are closed; returns the captured lines"""
        if stderr_percentage is None:
            stderr_percentage = stdout_percentage

        captured = CapturedOutput()
        threads = []

        if process.stdout is not None:
            threads.append(threading.Thread(
                target=self._pump,
                args=(process, process.stdout, stdout_percentage, False, captured.stdout, captured),
                name="archstore-stdout",
                daemon=True
            ))
        if process.stderr is not None:
            threads.append(threading.Thread(
                target=self._pump,
                args=(process, process.stderr, stderr_percentage, filter_prompt, captured.stderr, captured),
                name="archstore-stderr",
                daemon=True
            ))

        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        return captured

    def _pump(self, process, stream: IO[str], percentage: int, filter_prompt: bool,
              sink: List[str], captured: CapturedOutput):
        try:
            for raw in iter(stream.readline, ''):
                line = raw.rstrip('\r\n')
                if self._cancelled():
                    self._terminate(process, captured)
                if not line.strip():
                    continue
                if filter_prompt and self.password_prompt and self.password_prompt in line:
                    continue
                sink.append(line)
                if self.reporter is not None:
                    self.reporter.report(percentage, line)
        finally:
            try:
                stream.close()
            except OSError:
                pass

    def _cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def _terminate(self, process, captured: CapturedOutput):
        with self._terminate_lock:
            if captured.cancelled:
                return
            captured.cancelled = True
        try:
            process.terminate()
        except OSError:
            pass
