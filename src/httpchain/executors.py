"""Shared executor used for asynchronous continuations.

The async chain runs its post-transport work (status classification and
error-body parsing) on a :class:`concurrent.futures.Executor`.  Callers may
pass their own per client or per call; otherwise the lazily created shared
pool returned by :func:`default_executor` is used.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Optional

from httpchain.config import executor_threads

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_executor: Optional[ThreadPoolExecutor] = None


def default_executor() -> Executor:
    """Return the shared pool, creating it on first use."""
    global _executor
    with _lock:
        if _executor is None:
            threads = executor_threads()
            logger.debug("Creating shared executor with %d threads", threads)
            _executor = ThreadPoolExecutor(max_workers=threads, thread_name_prefix="httpchain-io")
        return _executor


def shutdown_default_executor(wait: bool = True) -> None:
    """Shut the shared pool down; the next :func:`default_executor` call recreates it."""
    global _executor
    with _lock:
        if _executor is not None:
            _executor.shutdown(wait=wait)
            _executor = None
