"""
Single worker thread for every PyMuPDF call made from a coroutine.

PyMuPDF documents are not thread-safe, so parse, rasterize and write calls
are serialized onto one dedicated thread while the event loop stays free.
"""
import asyncio
import functools
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional

_executor: Optional[ThreadPoolExecutor] = None
_executor_lock = threading.Lock()


def fitz_executor() -> ThreadPoolExecutor:
    """Get the shared PyMuPDF worker, creating it on first use."""
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="fitz")
        return _executor


async def run_in_fitz_thread(func: Callable[..., Any], *args, **kwargs) -> Any:
    """Run a blocking PyMuPDF call on the shared worker and await its result."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(
        fitz_executor(), functools.partial(func, *args, **kwargs)
    )
