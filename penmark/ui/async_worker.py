"""
Background thread running the asyncio loop that executes session coroutines.
"""
import asyncio
import logging
import threading
from concurrent.futures import Future
from typing import Any, Callable, Coroutine, Optional

from PyQt5.QtCore import QThread, pyqtSignal

logger = logging.getLogger(__name__)


class AsyncWorker(QThread):
    """
    Worker thread hosting an asyncio event loop.

    Coroutines are submitted from the GUI thread; their results come back to
    the GUI thread through queued signals.
    """

    # Signals
    task_finished = pyqtSignal(object, object)  # callback, result
    task_failed = pyqtSignal(object, object)  # callback, exception

    def __init__(self, parent=None):
        super().__init__(parent)
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._ready = threading.Event()
        self.task_finished.connect(self._dispatch)
        self.task_failed.connect(self._dispatch)

    def run(self):
        """Run the event loop until `stop` is called."""
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)
        self._ready.set()
        try:
            self._loop.run_forever()
        finally:
            self._loop.close()

    def start_loop(self) -> None:
        """Start the thread and block until its loop accepts work."""
        self.start()
        self._ready.wait()

    def submit(
        self,
        coro: Coroutine[Any, Any, Any],
        on_done: Optional[Callable[[Any], None]] = None,
        on_error: Optional[Callable[[BaseException], None]] = None,
    ) -> Future:
        """
        Schedule a coroutine on the worker loop.

        Args:
            coro: Coroutine to run
            on_done: Called on the GUI thread with the result
            on_error: Called on the GUI thread with the exception

        Returns:
            Future tracking the coroutine
        """
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)

        def _finished(f: Future):
            if f.cancelled():
                return
            error = f.exception()
            if error is None:
                if on_done is not None:
                    self.task_finished.emit(on_done, f.result())
            elif on_error is not None:
                self.task_failed.emit(on_error, error)
            else:
                logger.error("Background task failed: %s", error)

        future.add_done_callback(_finished)
        return future

    def _dispatch(self, callback, value):
        callback(value)

    def stop(self) -> None:
        if self._loop is not None and self._loop.is_running():
            self._loop.call_soon_threadsafe(self._loop.stop)
        self.wait()
