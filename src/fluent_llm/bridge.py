"""Blocking execution of provider coroutines on a shared background event loop."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Awaitable
from typing import Any, TypeVar

from fluent_llm.errors import LLMError

T = TypeVar("T")

logger = logging.getLogger(__name__)


class ExecutionBridge:
    """Reference-counted event loop running on a daemon thread.

    One bridge is created per ``LLM`` handle and shared by every builder
    derived from it. :meth:`run` blocks the calling thread until the awaitable
    finishes; there is no timeout or cancellation at this layer, so a provider
    call that never returns blocks its caller indefinitely.
    """

    def __init__(self, *, name: str = "fluent-llm-bridge") -> None:
        self._lock = threading.Lock()
        self._refs = 1
        try:
            self._loop = asyncio.new_event_loop()
            self._thread = threading.Thread(target=self._serve, name=name, daemon=True)
            self._thread.start()
        except (OSError, RuntimeError) as exc:
            raise LLMError(f"Failed to create runtime: {exc}") from exc
        logger.debug("Started execution bridge %s", name)

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._refs == 0

    @property
    def refs(self) -> int:
        with self._lock:
            return self._refs

    def retain(self) -> ExecutionBridge:
        with self._lock:
            if self._refs == 0:
                raise LLMError("Execution bridge has been closed")
            self._refs += 1
        return self

    def release(self) -> None:
        with self._lock:
            if self._refs == 0:
                return
            self._refs -= 1
            if self._refs:
                return
        self._loop.call_soon_threadsafe(self._loop.stop)
        if threading.current_thread() is not self._thread:
            self._thread.join()

    def run(self, awaitable: Awaitable[T]) -> T:
        """Block until ``awaitable`` completes on the bridge loop and return its result."""
        if threading.current_thread() is self._thread:
            raise RuntimeError("ExecutionBridge.run cannot be called from its own event loop")
        if self.closed:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise LLMError("Execution bridge has been closed")
        future = asyncio.run_coroutine_threadsafe(_await(awaitable), self._loop)
        return future.result()

    def _serve(self) -> None:
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_forever()
        finally:
            pending = asyncio.all_tasks(self._loop)
            for task in pending:
                task.cancel()
            if pending:
                self._loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            self._loop.run_until_complete(self._loop.shutdown_asyncgens())
            self._loop.close()
            logger.debug("Stopped execution bridge %s", self._thread.name)


async def _await(awaitable: Awaitable[Any]) -> Any:
    return await awaitable
