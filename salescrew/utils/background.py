"""A long-lived event loop on a daemon thread for sessions that outlive one script run."""

import asyncio
import logging
import threading
from typing import Any, Coroutine, Optional

logger = logging.getLogger(__name__)


class BackgroundLoop:
    """
    Runs coroutines on a private event loop from synchronous code.

    Streamlit reruns the whole script on every interaction, so objects bound
    to an event loop (voice connections, asyncio queues) must live on a loop
    that survives between runs.
    """

    def __init__(self, name: str = "salescrew-loop"):
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive() and not self.loop.is_closed()

    def run(self, coro: Coroutine, timeout: Optional[float] = None) -> Any:
        """Run a coroutine on the loop and block until it finishes."""
        if not self.is_running:
            coro.close()
            raise RuntimeError("Background loop is not running")
        future = asyncio.run_coroutine_threadsafe(coro, self.loop)
        return future.result(timeout)

    def close(self) -> None:
        if not self.is_running:
            return
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join(timeout=5)
        if not self._thread.is_alive():
            self.loop.close()
        else:
            logger.warning("[Loop] Background loop did not stop within 5s")
