"""
Test suite for logger.py
"""

import logging

import pytest
from archstore.logger import LoggerManager, get_logger


class TestLoggerManager:
    """Tests for LoggerManager"""

    @pytest.mark.unit
    def test_writes_to_log_file(self, tmp_path):
        manager = LoggerManager(log_dir=str(tmp_path / "logs"))

        manager.log_info("hello from the test")

        assert manager.get_log_file_path() == str(tmp_path / "logs" / "archstore.log")
        assert "hello from the test" in manager.read_log_file()

    @pytest.mark.unit
    def test_recreating_does_not_stack_handlers(self, tmp_path):
        LoggerManager(log_dir=str(tmp_path / "a"))
        LoggerManager(log_dir=str(tmp_path / "b"))

        assert len(logging.getLogger("ArchStore").handlers) == 2

    @pytest.mark.unit
    def test_operation_failure_notifies(self, tmp_path):
        manager = LoggerManager(log_dir=str(tmp_path / "logs"))
        received = []
        manager.notification_signals.notification_signal.connect(lambda *args: received.append(args))

        manager.log_operation_failure("install", "htop", "official", "error: target not found")

        assert received == [(
            "Install Failed",
            "Install of official package htop failed\nerror: target not found",
            "error",
        )]
        assert "Install of official package htop failed - Error: error: target not found" in manager.read_log_file()

    @pytest.mark.unit
    def test_operation_success_notifies(self, tmp_path):
        manager = LoggerManager(log_dir=str(tmp_path / "logs"))
        received = []
        manager.notification_signals.notification_signal.connect(lambda *args: received.append(args))

        manager.log_operation_success("remove", "foo", "aur")

        assert received[0][0] == "Remove Successful"
        assert received[0][2] == "success"

    @pytest.mark.unit
    def test_missing_log_file(self, tmp_path):
        manager = LoggerManager(log_dir=str(tmp_path / "logs"))
        manager.log_path = str(tmp_path / "gone.log")

        assert manager.read_log_file() == "Log file not found"

    @pytest.mark.unit
    def test_global_instance(self):
        assert get_logger() is get_logger()
