"""
Logging and notification system for archstore
Handles both file-based logging and in-app notifications
"""

import logging
import os
import threading
from typing import List, Optional
from PyQt5.QtCore import QObject, pyqtSignal

from archstore.config import get_settings


class NotificationSignals(QObject):
    """Qt signals for notifications"""
    notification_signal = pyqtSignal(str, str, str)  # title, message, type


class LoggerManager:
    """Manages logging and notifications for archstore"""

    def __init__(self, log_dir: Optional[str] = None, log_file: str = "archstore.log"):
        """Initialize logger with file and console handlers"""
        self.log_dir = log_dir or get_settings().get('log_dir')
        self.log_file = log_file
        self.log_path = os.path.join(self.log_dir, log_file)

        os.makedirs(self.log_dir, exist_ok=True)

        self.logger = logging.getLogger("ArchStore")
        self.logger.setLevel(logging.DEBUG)

        # Re-creating the manager must not stack duplicate handlers
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

        file_handler = logging.FileHandler(self.log_path)
        file_handler.setLevel(logging.DEBUG)

        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.WARNING)

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        file_handler.setFormatter(formatter)
        console_handler.setFormatter(formatter)

        self.logger.addHandler(file_handler)
        self.logger.addHandler(console_handler)

        self.notification_signals = NotificationSignals()

    def log_info(self, message: str):
        self.logger.info(message)

    def log_warning(self, message: str):
        self.logger.warning(message)

    def log_error(self, message: str, error: Optional[Exception] = None):
        """Log error message with optional exception details"""
        if error:
            self.logger.error(f"{message}: {str(error)}", exc_info=True)
        else:
            self.logger.error(message)

    def log_debug(self, message: str):
        self.logger.debug(message)

    def log_success(self, message: str):
        self.logger.info(f"SUCCESS: {message}")

    # ==================== Operation Logging ====================

    def log_operation_attempt(self, operation: str, package_name: str, source: str):
        self.log_info(f"Attempting to {operation} {source} package: {package_name}")

    def log_operation_success(self, operation: str, package_name: str, source: str):
        message = f"{operation.capitalize()} of {source} package {package_name} succeeded"
        self.log_success(message)
        self.emit_notification(f"{operation.capitalize()} Successful", message, "success")

    def log_operation_failure(self, operation: str, package_name: str, source: str, error: str):
        message = f"{operation.capitalize()} of {source} package {package_name} failed"
        self.log_error(f"{message} - Error: {error}")
        self.emit_notification(f"{operation.capitalize()} Failed", f"{message}\n{error}", "error")

    def log_command(self, argv: List[str]):
        """Log a command line about to be spawned (never contains the credential)"""
        self.log_debug(f"Spawning: {' '.join(argv)}")

    # ==================== Search Logging ====================

    def log_search(self, query: str, source: str):
        self.log_info(f"Searching for '{query}' in {source}")

    def log_search_results(self, query: str, source: str, results_count: int):
        self.log_info(f"Search for '{query}' in {source} returned {results_count} results")

    def log_backend_error(self, source: str, error: str):
        """Log a best-effort backend failure that is not surfaced to the caller"""
        self.log_warning(f"{source} backend unavailable: {error}")

    # ==================== Notification Methods ====================

    def emit_notification(self, title: str, message: str, notification_type: str = "info"):
        """Emit notification signal for GUI display

        Args:
            title: Notification title
            message: Notification message
            notification_type: Type of notification (success, error, warning, info)
        """
        self.notification_signals.notification_signal.emit(title, message, notification_type)

    # ==================== Log File Management ====================

    def get_log_file_path(self) -> str:
        return self.log_path

    def read_log_file(self, lines: int = 100) -> str:
        """Read the last N lines from the log file"""
        try:
            with open(self.log_path, 'r') as f:
                all_lines = f.readlines()
                return ''.join(all_lines[-lines:])
        except FileNotFoundError:
            return "Log file not found"
        except OSError as e:
            return f"Error reading log file: {str(e)}"


# Global logger instance
_logger_instance = None
_logger_lock = threading.Lock()


def get_logger() -> LoggerManager:
    """Get or create the global logger instance"""
    global _logger_instance
    with _logger_lock:
        if _logger_instance is None:
            _logger_instance = LoggerManager()
        return _logger_instance
