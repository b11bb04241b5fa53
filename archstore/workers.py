"""
Qt worker threads so long operations never block the GUI thread
"""

from typing import Callable
from PyQt5.QtCore import QThread, pyqtSignal


class OperationWorker(QThread):
    """Runs one `(success, message)` operation on its own thread"""
    finished = pyqtSignal(bool, str)

    def __init__(self, operation: Callable, *args, **kwargs):
        super().__init__()
        self.operation = operation
        self.args = args
        self.kwargs = kwargs

    def run(self):
        success, message = self.operation(*self.args, **self.kwargs)
        self.finished.emit(success, message)


class QueryWorker(QThread):
    """Runs one query and emits its result list, or the error text"""
    finished = pyqtSignal(list)
    error = pyqtSignal(str)

    def __init__(self, query: Callable, *args):
        super().__init__()
        self.query = query
        self.args = args

    def run(self):
        try:
            results = self.query(*self.args)
        except Exception as e:
            self.error.emit(str(e))
            return
        self.finished.emit(list(results))
