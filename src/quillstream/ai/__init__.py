"""Completion streaming: prompts, providers, handler bridge and orchestration."""

from .input import InputContext, Source, get_input_context, get_source
from .prompts import DeferredParams, ImmediateParams, Prompt, SegmentMode
from .streaming import FinishReason, SegmentStreamBridge, StreamHandlers, create_prompt_handlers

__all__ = [
    "DeferredParams",
    "FinishReason",
    "ImmediateParams",
    "InputContext",
    "Prompt",
    "SegmentMode",
    "SegmentStreamBridge",
    "Source",
    "StreamHandlers",
    "create_prompt_handlers",
    "get_input_context",
    "get_source",
]
