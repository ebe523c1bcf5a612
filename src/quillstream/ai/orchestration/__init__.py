"""Prompt orchestration and multi-stream coordination."""

from .multi_stream import DEFAULT_STAGGER_MS, MultiStreamCoordinator, MultiStreamRun
from .orchestrator import (
    Invocation,
    InvocationState,
    OrchestratorConfig,
    PromptOrchestrator,
    resolve_mode,
)

__all__ = [
    "DEFAULT_STAGGER_MS",
    "Invocation",
    "InvocationState",
    "MultiStreamCoordinator",
    "MultiStreamRun",
    "OrchestratorConfig",
    "PromptOrchestrator",
    "resolve_mode",
]
