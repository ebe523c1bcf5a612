"""Prompt orchestration: resolve input, build params, place a segment, stream.

Each call to :meth:`PromptOrchestrator.request_completion` walks one
:class:`Invocation` through ``resolving -> building -> requesting ->
streaming`` and ends in ``succeeded``, ``failed`` or ``cancelled``. Errors
raised while building params or issuing the request are surfaced through
the notifier instead of propagating to the caller; text already streamed
into a segment is never rolled back.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Optional

from ...core.errors import ParamsBuilderError, ProviderStreamError, QuillstreamError, UnknownModeError
from ...editor.dispatch import UIDispatcher
from ...editor.workspace import BufferWorkspace
from ...segments.anchor_store import AnchorStore
from ...segments.factory import create_segment_at
from ...segments.segment import Segment
from ...services.notifications import NotificationCenter, Notifier, Severity
from ..input import InputContext, Source, get_input_context, get_source
from ..prompts import (
    DeferredParams,
    ImmediateParams,
    Prompt,
    ResolveParams,
    SegmentMode,
    normalize_built_params,
)
from ..providers.base import Cancel
from ..streaming import StreamHandlers, create_prompt_handlers

__all__ = [
    "Invocation",
    "InvocationState",
    "OrchestratorConfig",
    "PromptOrchestrator",
    "resolve_mode",
]

LOGGER = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Types
# -----------------------------------------------------------------------------


class InvocationState(str, Enum):
    """Lifecycle of one orchestrated request."""

    RESOLVING = "resolving"
    BUILDING = "building"
    REQUESTING = "requesting"
    STREAMING = "streaming"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def terminal(self) -> bool:
        return self in (InvocationState.SUCCEEDED, InvocationState.FAILED, InvocationState.CANCELLED)


@dataclass(slots=True, frozen=True)
class OrchestratorConfig:
    """Configuration for the prompt orchestrator.

    Attributes:
        responding_highlight: Tag shown on a segment while it streams.
        error_highlight: Tag applied when a stream ends abnormally.
        done_highlight: Tag applied to finished responses in buffer mode.
        scratch_buffer_name: Name of the document used by buffer mode.
    """

    responding_highlight: str = "Comment"
    error_highlight: str = "Error"
    done_highlight: str = "Identifier"
    scratch_buffer_name: str = "__quillstream__"


@dataclass(slots=True, eq=False)
class Invocation:
    """Tracks one request from input resolution to its terminal state."""

    prompt: Prompt
    mode: SegmentMode | None = None
    state: InvocationState = InvocationState.RESOLVING
    segment: Segment | None = None
    error: BaseException | None = None
    _provider_cancel: Cancel | None = field(default=None, repr=False)

    @property
    def done(self) -> bool:
        return self.state.terminal

    @property
    def cancelled(self) -> bool:
        return self.state is InvocationState.CANCELLED

    def transition(self, state: InvocationState) -> None:
        if self.state.terminal:
            return
        LOGGER.debug("Invocation %s: %s -> %s", self.label, self.state.value, state.value)
        self.state = state

    def attach_cancel(self, cancel: Cancel) -> None:
        self._provider_cancel = cancel

    def cancel(self) -> None:
        """Stop feeding the segment and ask the provider to stop streaming."""

        if self.state.terminal:
            return
        self.transition(InvocationState.CANCELLED)
        if self._provider_cancel is not None:
            self._provider_cancel()

    def fail(self, error: BaseException) -> None:
        self.error = error
        self.transition(InvocationState.FAILED)

    def terminate(self, error: QuillstreamError | None) -> None:
        if self.state.terminal:
            return
        if error is None:
            self.transition(InvocationState.SUCCEEDED)
        else:
            self.fail(error)

    @property
    def label(self) -> str:
        return self.prompt.name or f"prompt@{id(self):x}"


def resolve_mode(mode: Any, source: Source) -> SegmentMode:
    """Pick the effective display mode for ``source``."""

    if mode is None:
        return SegmentMode.APPEND
    if mode == SegmentMode.INSERT_OR_REPLACE:
        return SegmentMode.REPLACE if source.has_selection else SegmentMode.INSERT
    if isinstance(mode, SegmentMode):
        return mode
    raise UnknownModeError(mode)


# -----------------------------------------------------------------------------
# Orchestrator
# -----------------------------------------------------------------------------


class PromptOrchestrator:
    """Drives prompts from input resolution to a live, streaming segment."""

    def __init__(
        self,
        workspace: BufferWorkspace,
        *,
        dispatcher: UIDispatcher | None = None,
        notifier: Notifier | None = None,
        config: OrchestratorConfig | None = None,
    ) -> None:
        self._workspace = workspace
        self._dispatcher = dispatcher or UIDispatcher()
        self._notifier: Notifier = notifier or NotificationCenter()
        self._config = config or OrchestratorConfig()
        self._pending: set[Any] = set()

    @property
    def workspace(self) -> BufferWorkspace:
        return self._workspace

    @property
    def dispatcher(self) -> UIDispatcher:
        return self._dispatcher

    @property
    def notifier(self) -> Notifier:
        return self._notifier

    @property
    def config(self) -> OrchestratorConfig:
        return self._config

    @property
    def pending_builders(self) -> int:
        """Number of awaitable params builders still running."""

        return len(self._pending)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def request_completion(self, prompt: Prompt, args: str = "", want_selection: bool = False) -> Invocation:
        """Run ``prompt`` against the active document and stream into a new segment.

        Raises:
            UnknownModeError: if the prompt's mode cannot be placed.
        """

        invocation = Invocation(prompt=prompt)
        source = get_source(self._workspace.require_active(), want_selection)
        input_context = get_input_context(source, args)

        custom = prompt.custom_handlers
        if custom is not None:
            tracked = self._track_terminal(custom, invocation)
            self._build_params_run_prompt(prompt, self._marshal(tracked, invocation), input_context, invocation)
            return invocation

        mode = resolve_mode(prompt.mode, source)
        invocation.mode = mode
        segment = self._create_segment(source, mode, prompt.highlight or self._config.responding_highlight)
        invocation.segment = segment

        handlers = create_prompt_handlers(
            segment,
            self._notifier,
            transform=prompt.transform,
            error_highlight=self._config.error_highlight,
            done_highlight=self._config.done_highlight if mode is SegmentMode.BUFFER else None,
            on_terminal=invocation.terminate,
        )
        segment.data["cancel"] = self._build_params_run_prompt(
            prompt, self._marshal(handlers, invocation), input_context, invocation
        )
        return invocation

    def complete(
        self,
        prompt: Prompt,
        input_context: InputContext,
        callback: Callable[[str], None],
    ) -> Invocation:
        """Run ``prompt`` and hand the finished text to ``callback``; no segment is touched."""

        invocation = Invocation(prompt=prompt)
        collected: list[str] = []

        def on_partial(text: str) -> None:
            collected.append(text)

        def on_finish(full_text: Optional[str], reason: Optional[str]) -> None:
            invocation.terminate(None)
            callback(full_text if full_text else "".join(collected))

        def on_error(data: Any, label: Optional[str]) -> None:
            error = ProviderStreamError(data, label)
            self._notifier.notify(error.message, Severity.ERROR, title=error.title)
            invocation.fail(error)

        handlers = StreamHandlers(on_partial=on_partial, on_finish=on_finish, on_error=on_error)
        self._build_params_run_prompt(prompt, self._marshal(handlers, invocation), input_context, invocation)
        return invocation

    def debug_anchors(self) -> list[dict[str, int]]:
        """Return raw positions of every tracked anchor in the active document."""

        store = AnchorStore(self._workspace.require_active())
        return [position.to_dict() for position in store.tracked()]

    # ------------------------------------------------------------------
    # Segment placement
    # ------------------------------------------------------------------
    def _create_segment(self, source: Source, mode: SegmentMode, highlight: str | None) -> Segment:
        document = source.document
        selection = source.selection

        if mode is SegmentMode.REPLACE:
            if selection is not None:
                stop_col = min(selection.stop.col, document.line_length(selection.stop.row))
                document.set_text(selection.start.row, selection.start.col, selection.stop.row, stop_col, [])
                segment = create_segment_at(selection.start.row, selection.start.col, highlight, document)
            else:
                segment = create_segment_at(0, 0, highlight, document)
                document.set_lines(0, -1, [])
            segment.data["original"] = list(source.lines)
            return segment

        if mode is SegmentMode.APPEND:
            if selection is not None:
                return create_segment_at(selection.stop.row, selection.stop.col, highlight, document)
            return create_segment_at(len(source.lines), 0, highlight, document)

        if mode is SegmentMode.BUFFER:
            scratch = self._workspace.find_or_create(self._config.scratch_buffer_name)
            scratch.set_lines(-2, -1, source.lines)
            scratch.set_lines(-1, -1, ["", ""])
            self._workspace.set_active(scratch)
            return create_segment_at(scratch.line_count(), 0, highlight, scratch)

        if mode is SegmentMode.INSERT:
            cursor = document.cursor
            return create_segment_at(cursor.row, cursor.col, highlight, document)

        raise UnknownModeError(mode)

    # ------------------------------------------------------------------
    # Params + request
    # ------------------------------------------------------------------
    def _build_params_run_prompt(
        self,
        prompt: Prompt,
        handlers: StreamHandlers,
        input_context: InputContext,
        invocation: Invocation,
    ) -> Cancel:
        invocation.transition(InvocationState.BUILDING)
        try:
            built = prompt.builder(input_context.input, input_context.context)
            if inspect.isawaitable(built):
                built = self._register_awaitable(built, invocation)
            normalized = normalize_built_params(built)
        except Exception as exc:
            self._fail(invocation, exc, "Failed to build request params")
            return invocation.cancel

        def do_request(params: Mapping[str, Any] | None) -> None:
            if invocation.done:
                LOGGER.debug("Invocation %s ended before its request was issued", invocation.label)
                return
            if params is None:
                self._fail(invocation, ParamsBuilderError("prompt builder resolved nil"), "Failed to build request params")
                return
            invocation.transition(InvocationState.REQUESTING)
            try:
                cancel = prompt.provider.request_completion(handlers, prompt.merge_params(params), prompt.options)
            except Exception as exc:
                self._fail(invocation, exc, "Failed to request completion")
                return
            invocation.attach_cancel(cancel)

        if isinstance(normalized, ImmediateParams):
            do_request(normalized.params)
            return invocation.cancel

        if not isinstance(normalized, DeferredParams):
            error = ParamsBuilderError(f"unsupported params result {normalized!r}")
            self._fail(invocation, error, "Failed to build request params")
            return invocation.cancel

        resolved = False

        def resolve(params: Mapping[str, Any]) -> None:
            nonlocal resolved
            if resolved:
                LOGGER.warning("Params for %s resolved more than once; ignoring", invocation.label)
                return
            resolved = True
            self._dispatcher.call_soon(do_request, params)

        try:
            normalized.register(resolve)
        except Exception as exc:
            self._fail(invocation, exc, "Failed to build request params")
        return invocation.cancel

    def _register_awaitable(
        self, awaitable: Awaitable[Mapping[str, Any]], invocation: Invocation
    ) -> Callable[[ResolveParams], None]:
        async def _await_params(resolve: ResolveParams) -> None:
            try:
                params = await awaitable
            except Exception as exc:
                self._fail(invocation, exc, "Failed to build request params")
                return
            resolve(params)

        def register(resolve: ResolveParams) -> None:
            task = self._dispatcher.spawn(_await_params(resolve))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

        return register

    def _marshal(self, handlers: StreamHandlers, invocation: Invocation) -> StreamHandlers:
        """Route every handler call onto the dispatcher loop and stop feeding once cancelled."""

        def on_partial(text: str) -> None:
            if invocation.cancelled:
                return
            invocation.transition(InvocationState.STREAMING)
            handlers.on_partial(text)

        def on_finish(full_text: Optional[str], reason: Optional[str] = None) -> None:
            if invocation.cancelled:
                return
            handlers.on_finish(full_text, reason)

        def on_error(data: Any, label: Optional[str] = None) -> None:
            if invocation.cancelled:
                return
            handlers.on_error(data, label)

        gated = StreamHandlers(on_partial=on_partial, on_finish=on_finish, on_error=on_error)
        return self._dispatcher.wrap_handlers(gated)

    @staticmethod
    def _track_terminal(handlers: StreamHandlers, invocation: Invocation) -> StreamHandlers:
        """Mirror terminal callbacks of caller-supplied handlers onto ``invocation``."""

        def on_finish(full_text: Optional[str], reason: Optional[str] = None) -> None:
            handlers.on_finish(full_text, reason)
            invocation.terminate(None)

        def on_error(data: Any, label: Optional[str] = None) -> None:
            handlers.on_error(data, label)
            invocation.terminate(ProviderStreamError(data, label))

        return StreamHandlers(on_partial=handlers.on_partial, on_finish=on_finish, on_error=on_error)

    def _fail(self, invocation: Invocation, exc: BaseException, title: str) -> None:
        LOGGER.error("%s for %s: %s", title, invocation.label, exc, exc_info=exc)
        self._notifier.notify(str(exc), Severity.ERROR, title=title)
        invocation.fail(exc)
