"""Marshal callbacks onto the single event loop that owns the documents."""

from __future__ import annotations

import asyncio
import concurrent.futures
import dataclasses
import functools
from typing import Any, Callable, Coroutine, TypeVar

__all__ = ["UIDispatcher"]


T = TypeVar("T")
H = TypeVar("H")


class UIDispatcher:
    """Routes work onto the UI-affine asyncio loop.

    Documents and anchors are not safe for concurrent mutation, so provider
    callbacks and timers must go through :meth:`call_soon`/:meth:`call_later`
    before touching them. ``call_soon`` is FIFO, which keeps the partials of
    one stream in delivery order.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            try:
                self._loop = asyncio.get_running_loop()
            except RuntimeError:
                self._loop = asyncio.new_event_loop()
                asyncio.set_event_loop(self._loop)
        return self._loop

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> None:
        """Schedule ``callback(*args)`` on the loop from any thread."""

        self.loop.call_soon_threadsafe(callback, *args)

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> asyncio.TimerHandle | None:
        """Run ``callback(*args)`` on the loop after ``delay`` seconds.

        Returns the timer handle when invoked on the loop thread; from other
        threads the timer is registered asynchronously and ``None`` is returned.
        """

        loop = self.loop
        delay = max(0.0, delay)
        if self.on_loop_thread():
            return loop.call_later(delay, callback, *args)
        loop.call_soon_threadsafe(functools.partial(loop.call_later, delay, callback, *args))
        return None

    def wrap(self, callback: Callable[..., Any]) -> Callable[..., None]:
        """Return a wrapper that re-marshals every call onto the loop."""

        @functools.wraps(callback)
        def _scheduled(*args: Any) -> None:
            self.call_soon(callback, *args)

        return _scheduled

    def wrap_handlers(self, handlers: H) -> H:
        """Return a copy of a handler triple whose callbacks all go through :meth:`wrap`."""

        return dataclasses.replace(
            handlers,
            on_partial=self.wrap(handlers.on_partial),
            on_finish=self.wrap(handlers.on_finish),
            on_error=self.wrap(handlers.on_error),
        )

    def spawn(
        self, coro: Coroutine[Any, Any, T]
    ) -> "asyncio.Task[T] | concurrent.futures.Future[T]":
        """Run ``coro`` on the loop; returns a task on the loop thread, a thread-safe future elsewhere."""

        loop = self.loop
        if self.on_loop_thread():
            return loop.create_task(coro)
        return asyncio.run_coroutine_threadsafe(coro, loop)

    def on_loop_thread(self) -> bool:
        try:
            return asyncio.get_running_loop() is self.loop
        except RuntimeError:
            # Nothing is driving the loop yet, so nothing can race with us.
            return not self.loop.is_running()
