"""Fakes shared by the test suite."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Any, Callable, List, Mapping

from quillstream.ai.streaming import StreamHandlers
from quillstream.editor.dispatch import UIDispatcher


class FakeProvider:
    """Records every request and hands the handlers back to the test."""

    def __init__(self, *, error: Exception | None = None) -> None:
        self.requests: List[SimpleNamespace] = []
        self.cancelled = 0
        self._error = error

    def request_completion(
        self,
        handlers: StreamHandlers,
        params: Mapping[str, Any] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> Callable[[], None]:
        if self._error is not None:
            raise self._error
        self.requests.append(SimpleNamespace(handlers=handlers, params=params, options=options))

        def cancel() -> None:
            self.cancelled += 1

        return cancel

    @property
    def last(self) -> SimpleNamespace:
        return self.requests[-1]


class ImmediateDispatcher(UIDispatcher):
    """Runs callbacks inline and records timers instead of scheduling them."""

    def __init__(self) -> None:
        super().__init__()
        self.timers: List[SimpleNamespace] = []

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> None:
        callback(*args)

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> None:
        self.timers.append(SimpleNamespace(delay=delay, callback=callback, args=args))
        return None

    def fire_all(self) -> None:
        for timer in sorted(self.timers, key=lambda item: item.delay):
            timer.callback(*timer.args)
        self.timers.clear()


class RecordingHandlers:
    """Collects stream callbacks into lists."""

    def __init__(self) -> None:
        self.partials: List[str] = []
        self.finishes: List[tuple[Any, Any]] = []
        self.errors: List[tuple[Any, Any]] = []

    def on_partial(self, text: str) -> None:
        self.partials.append(text)

    def on_finish(self, full_text: Any = None, reason: Any = None) -> None:
        self.finishes.append((full_text, reason))

    def on_error(self, data: Any, label: Any = None) -> None:
        self.errors.append((data, label))

    def handlers(self) -> StreamHandlers:
        return StreamHandlers(on_partial=self.on_partial, on_finish=self.on_finish, on_error=self.on_error)


async def drain(rounds: int = 10) -> None:
    """Let queued ``call_soon`` callbacks and spawned tasks run."""

    for _ in range(rounds):
        await asyncio.sleep(0)
