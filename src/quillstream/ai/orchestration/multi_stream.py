"""Run several prompts at once with staggered start times."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Sequence

from ...services.notifications import Severity
from ..prompts import Prompt, SegmentMode
from .orchestrator import Invocation, PromptOrchestrator

__all__ = ["DEFAULT_STAGGER_MS", "MultiStreamCoordinator", "MultiStreamRun"]

LOGGER = logging.getLogger(__name__)

DEFAULT_STAGGER_MS = 200


@dataclass(slots=True)
class MultiStreamRun:
    """Bookkeeping for one multi-prompt launch.

    ``offsets`` holds the start delay (seconds) scheduled for each prompt;
    ``invocations`` fills in as the prompts actually start.
    """

    offsets: List[float] = field(default_factory=list)
    invocations: List[Invocation] = field(default_factory=list)
    cancelled: bool = False

    def cancel_all(self) -> None:
        self.cancelled = True
        for invocation in self.invocations:
            invocation.cancel()


class MultiStreamCoordinator:
    """Starts N independent append-mode streams, one every ``stagger_ms``.

    Staggering keeps request bursts below provider rate limits. A failing
    prompt never affects its siblings.
    """

    def __init__(self, orchestrator: PromptOrchestrator, *, stagger_ms: int = DEFAULT_STAGGER_MS) -> None:
        self._orchestrator = orchestrator
        self._stagger = max(0, int(stagger_ms)) / 1000.0

    def request_multi_completion_streams(
        self, prompts: Sequence[Prompt], want_selection: bool = False
    ) -> MultiStreamRun:
        run = MultiStreamRun()
        dispatcher = self._orchestrator.dispatcher
        for index, prompt in enumerate(prompts):
            delay = index * self._stagger
            run.offsets.append(delay)
            dispatcher.call_later(delay, self._start, run, prompt.with_mode(SegmentMode.APPEND), want_selection)
        LOGGER.debug("Scheduled %d staggered completion(s)", len(run.offsets))
        return run

    def _start(self, run: MultiStreamRun, prompt: Prompt, want_selection: bool) -> None:
        if run.cancelled:
            return
        try:
            invocation = self._orchestrator.request_completion(prompt, "", want_selection)
        except Exception as exc:
            LOGGER.error("Failed to start %s: %s", prompt.name or "prompt", exc, exc_info=exc)
            self._orchestrator.notifier.notify(str(exc), Severity.ERROR, title="Failed to start completion")
            return
        run.invocations.append(invocation)
