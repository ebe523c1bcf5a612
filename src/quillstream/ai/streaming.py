"""Stream handler contract and the bridge that feeds streams into segments."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from ..core.errors import ProviderStreamError, QuillstreamError, TruncatedResponseError
from ..segments.segment import Segment
from ..services.notifications import Notifier, Severity

__all__ = [
    "FinishReason",
    "SegmentStreamBridge",
    "StreamHandlers",
    "TerminalListener",
    "create_prompt_handlers",
]

LOGGER = logging.getLogger(__name__)


class FinishReason(str, Enum):
    """Finish reasons with dedicated handling; anything else is an abnormal stop."""

    STOP = "stop"
    LENGTH = "length"


@dataclass(slots=True)
class StreamHandlers:
    """Callbacks a streaming producer drives.

    Producers call ``on_partial`` once per chunk, then exactly one terminal
    call: ``on_finish(full_text, reason)`` or one or more ``on_error``.
    ``full_text`` may be ``None``/empty to mean "the concatenated partials"
    and a missing ``reason`` is treated as ``"stop"``.
    """

    on_partial: Callable[[str], None]
    on_finish: Callable[[Optional[str], Optional[str]], None]
    on_error: Callable[[Any, Optional[str]], None]


# Called with the error (or None on a clean stop) once a stream terminates.
TerminalListener = Callable[[Optional[QuillstreamError]], None]


class SegmentStreamBridge:
    """Turns partial/finish/error events into segment mutations and notices."""

    def __init__(
        self,
        segment: Segment,
        notifier: Notifier,
        *,
        transform: Callable[[str], str] | None = None,
        error_highlight: str = "Error",
        done_highlight: str | None = None,
        on_terminal: TerminalListener | None = None,
    ) -> None:
        self._segment = segment
        self._notifier = notifier
        self._transform = transform
        self._error_highlight = error_highlight
        self._done_highlight = done_highlight
        self._on_terminal = on_terminal
        self._completion = ""
        self._finished = False

    @property
    def completion(self) -> str:
        """Concatenation of every partial received so far."""

        return self._completion

    @property
    def finished(self) -> bool:
        return self._finished

    def on_partial(self, text: str) -> None:
        if self._finished:
            LOGGER.debug("Dropping partial received after stream finished (%d chars)", len(text or ""))
            return
        self._segment.append(text)
        self._completion += text

    def on_finish(self, full_text: str | None = None, reason: str | None = None) -> None:
        if self._finished:
            LOGGER.debug("Ignoring duplicate finish (reason=%s)", reason)
            return
        self._finished = True
        text = full_text if full_text else self._completion
        final_text = self._transform(text) if self._transform is not None else text
        self._segment.set_text(final_text)

        error: QuillstreamError | None = None
        if reason is None or reason == FinishReason.STOP:
            self._segment.clear_highlight()
        elif reason == FinishReason.LENGTH:
            error = TruncatedResponseError()
            self._segment.highlight(self._error_highlight)
            self._notifier.notify(error.message, Severity(error.severity))
        else:
            error = ProviderStreamError(f"Response ended because: {reason}", str(reason))
            self._segment.highlight(self._error_highlight)
            self._notifier.notify(error.message, Severity.ERROR)

        if self._done_highlight:
            self._segment.highlight(self._done_highlight)

        if error is not None:
            LOGGER.warning("Stream finished abnormally: %s", error)
        if self._on_terminal is not None:
            self._on_terminal(error)

    def on_error(self, data: Any, label: str | None = None) -> None:
        error = ProviderStreamError(data, label)
        LOGGER.error("Provider stream error (%s): %s", label or "unlabeled", error.message)
        self._notifier.notify(error.message, Severity.ERROR, title=error.title)
        if self._on_terminal is not None:
            self._on_terminal(error)

    def handlers(self) -> StreamHandlers:
        return StreamHandlers(on_partial=self.on_partial, on_finish=self.on_finish, on_error=self.on_error)


def create_prompt_handlers(
    segment: Segment,
    notifier: Notifier,
    *,
    transform: Callable[[str], str] | None = None,
    error_highlight: str = "Error",
    done_highlight: str | None = None,
    on_terminal: TerminalListener | None = None,
) -> StreamHandlers:
    """Build the handler triple that streams into ``segment``."""

    bridge = SegmentStreamBridge(
        segment,
        notifier,
        transform=transform,
        error_highlight=error_highlight,
        done_highlight=done_highlight,
        on_terminal=on_terminal,
    )
    return bridge.handlers()
