"""Prompt descriptors, display modes and parameter-builder results."""

from __future__ import annotations

import inspect
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Union

from ..core.errors import ParamsBuilderError, UnknownModeError
from .providers.base import Provider
from .streaming import StreamHandlers

__all__ = [
    "BuilderResult",
    "DeferredParams",
    "ImmediateParams",
    "ParamsBuilder",
    "Prompt",
    "ResolveParams",
    "SegmentMode",
    "coerce_mode",
    "normalize_built_params",
]


class SegmentMode(str, Enum):
    """Where a prompt's response is written."""

    APPEND = "append"
    REPLACE = "replace"
    BUFFER = "buffer"
    INSERT = "insert"
    INSERT_OR_REPLACE = "insert_or_replace"


ResolveParams = Callable[[Mapping[str, Any]], None]

# A builder returns params directly, a function taking ``resolve``, or an awaitable of params.
BuilderResult = Union[Mapping[str, Any], Callable[[ResolveParams], Any], Awaitable[Mapping[str, Any]]]
ParamsBuilder = Callable[[str, Mapping[str, Any]], BuilderResult]


@dataclass(slots=True, frozen=True)
class ImmediateParams:
    """Builder output that is available synchronously."""

    params: Dict[str, Any]


@dataclass(slots=True, frozen=True)
class DeferredParams:
    """Builder output delivered later through a one-shot ``resolve`` callback."""

    register: Callable[[ResolveParams], Any]


def coerce_mode(value: Any) -> SegmentMode | StreamHandlers:
    """Return ``value`` as a :class:`SegmentMode` (or custom handlers), failing on unknown tags."""

    if value is None:
        return SegmentMode.APPEND
    if isinstance(value, (SegmentMode, StreamHandlers)):
        return value
    if isinstance(value, str):
        try:
            return SegmentMode(value.strip().lower())
        except ValueError:
            raise UnknownModeError(value) from None
    raise UnknownModeError(value)


@dataclass(slots=True, frozen=True)
class Prompt:
    """Immutable description of one completion request.

    Attributes:
        provider: Completion source the request goes through.
        builder: Converts ``(input, context)`` into request params.
        transform: Applied to the final text before it is committed.
        mode: Display mode, or :class:`StreamHandlers` to bypass segments.
        highlight: Highlight tag shown while the response streams.
        params: Static request params; builder output wins on conflicts.
        options: Provider-specific options.
        name: Optional label used in logs.
    """

    provider: Provider
    builder: ParamsBuilder
    transform: Optional[Callable[[str], str]] = None
    mode: Any = SegmentMode.APPEND
    highlight: Optional[str] = None
    params: Optional[Mapping[str, Any]] = None
    options: Optional[Mapping[str, Any]] = None
    name: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "mode", coerce_mode(self.mode))

    @property
    def custom_handlers(self) -> StreamHandlers | None:
        return self.mode if isinstance(self.mode, StreamHandlers) else None

    def with_mode(self, mode: SegmentMode | str) -> Prompt:
        return replace(self, mode=mode)

    def merge_params(self, built: Mapping[str, Any]) -> Dict[str, Any]:
        """Overlay builder params on the static ones."""

        merged: Dict[str, Any] = dict(self.params or {})
        merged.update(built)
        return merged


def normalize_built_params(result: Any) -> ImmediateParams | DeferredParams:
    """Classify what a params builder returned.

    Awaitables are not handled here; the orchestrator turns them into a
    :class:`DeferredParams` bound to its event loop.
    """

    if result is None:
        raise ParamsBuilderError("prompt builder produced nil")
    if isinstance(result, Mapping):
        return ImmediateParams(dict(result))
    if callable(result):
        return DeferredParams(result)
    if inspect.isawaitable(result):
        raise ParamsBuilderError("awaitable builder results must be scheduled by the orchestrator")
    raise ParamsBuilderError(f"prompt builder produced unsupported {type(result).__name__}")
