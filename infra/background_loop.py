"""
A single asyncio event loop running in a daemon thread.

Synchronous callers (Flask request threads, scripts) hand coroutines to it
and get a concurrent.futures.Future back immediately.
"""
import asyncio
import concurrent.futures
import logging
import threading
from typing import Coroutine, Optional

logger = logging.getLogger(__name__)


class BackgroundLoop:
    """Lazily started event loop thread"""

    def __init__(self, name: str = "look-worker-loop"):
        self.name = name
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            self._ready.clear()
            self._loop = asyncio.new_event_loop()
            self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
            self._thread.start()
        self._ready.wait()
        logger.info(f"[BackgroundLoop] Started {self.name}")

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.call_soon(self._ready.set)
        self._loop.run_forever()

    def submit(self, coro: Coroutine) -> concurrent.futures.Future:
        """Schedule a coroutine on the loop thread."""
        self.start()
        return asyncio.run_coroutine_threadsafe(coro, self._loop)

    def stop(self, timeout: float = 5.0) -> None:
        with self._lock:
            if not self.running:
                return
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join(timeout)
            self._loop.close()
            self._thread = None
            self._loop = None
        logger.info(f"[BackgroundLoop] Stopped {self.name}")
