"""
import_engine.runner - A private asyncio event loop on a daemon thread.

Flask request handlers hand coroutines to submit() and return at once;
the coroutines run one loop, in submission order of their yield points.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import Future
from typing import Optional

logger = logging.getLogger(__name__)


class BackgroundRunner:

    def __init__(self, name: str = "casehub-import"):
        self._name = name
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the loop thread if it is not already running."""
        with self._lock:
            if self.running:
                return

            def run_loop():
                self._loop = asyncio.new_event_loop()
                asyncio.set_event_loop(self._loop)
                self._ready.set()
                try:
                    self._loop.run_forever()
                except Exception as e:
                    logger.error(f"Background loop error: {e}")
                finally:
                    self._loop.close()

            self._ready.clear()
            self._thread = threading.Thread(target=run_loop, name=self._name,
                                            daemon=True)
            self._thread.start()

        if not self._ready.wait(timeout=5.0):
            raise RuntimeError("Background event loop did not start")
        logger.debug("Background loop %s started", self._name)

    def submit(self, coro) -> Future:
        """Schedule *coro* on the loop without waiting for it."""
        self.start()
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        future.add_done_callback(self._log_failure)
        return future

    def stop(self, timeout: float = 5.0) -> None:
        loop, thread = self._loop, self._thread
        if loop is not None and loop.is_running():
            loop.call_soon_threadsafe(loop.stop)
        if thread is not None:
            thread.join(timeout)
        self._thread = None
        self._loop = None

    @staticmethod
    def _log_failure(future: Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Background task failed: %s", exc, exc_info=exc)
