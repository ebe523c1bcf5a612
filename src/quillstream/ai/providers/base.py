"""Provider interface consumed by the prompt orchestrator."""

from __future__ import annotations

from typing import Any, Callable, Mapping, Protocol, runtime_checkable

from ..streaming import StreamHandlers

__all__ = ["Cancel", "Provider"]

# Stops further handler delivery for one request.
Cancel = Callable[[], None]


@runtime_checkable
class Provider(Protocol):
    """A completion source that streams into :class:`StreamHandlers`.

    Implementations must honor the handler contract: ordered partials, then
    a single finish or one or more errors, and nothing after ``cancel`` is
    invoked.
    """

    def request_completion(
        self,
        handlers: StreamHandlers,
        params: Mapping[str, Any] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> Cancel:
        ...
