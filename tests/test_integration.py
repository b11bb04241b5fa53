"""
Integration tests with real child processes
The child is the running Python interpreter, so no package tools are needed
"""

import sys

import pytest
from archstore.adapters.base import CommandPlan
from archstore.errors import ProcessFailedError
from archstore.operations import PackageOperations
from archstore.progress import ProgressReporter, RecordingSink
from archstore.runner import ProcessRunner
from archstore.streams import StreamMultiplexer


def python_plan(code):
    return CommandPlan([sys.executable, '-c', code])


@pytest.fixture
def operations(settings, resolver):
    return PackageOperations(sink=RecordingSink(), settings=settings, resolver=resolver)


class TestRealProcesses:
    """Drain-then-wait against real pipes"""

    @pytest.mark.integration
    def test_large_output_on_both_streams_does_not_deadlock(self, settings):
        code = (
            "import sys\n"
            "for i in range(5000):\n"
            "    sys.stdout.write('out %d\\n' % i)\n"
            "    sys.stderr.write('err %d\\n' % i)\n"
        )
        runner = ProcessRunner(settings)
        process = runner.spawn([sys.executable, '-c', code])

        captured = StreamMultiplexer(None).drain(process, 50)

        assert runner.wait(process, 30) == 0
        assert len(captured.stdout) == 5000
        assert len(captured.stderr) == 5000

    @pytest.mark.integration
    def test_execute_success(self, operations):
        sink = RecordingSink()
        reporter = ProgressReporter(sink, "install-progress")

        captured = operations.execute(python_plan("print('hello')\nprint()\nprint('world')"), None, reporter, 50)

        assert captured.stdout == ["hello", "world"]
        assert sink.messages() == ["hello", "world"]

    @pytest.mark.integration
    def test_execute_failure_diagnostic(self, operations):
        code = "import sys\nprint('some output')\nsys.stderr.write('error: broken\\n')\nsys.exit(3)"

        with pytest.raises(ProcessFailedError) as exc_info:
            operations.execute(python_plan(code), None, None, 50)

        assert exc_info.value.returncode == 3
        assert exc_info.value.diagnostic == "error: broken"

    @pytest.mark.integration
    def test_execute_failure_without_output(self, operations):
        with pytest.raises(ProcessFailedError) as exc_info:
            operations.execute(python_plan("raise SystemExit(4)"), None, None, 50)

        assert exc_info.value.diagnostic == "unknown error (exit status 4)"
