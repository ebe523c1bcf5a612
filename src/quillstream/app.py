"""Application wiring and the headless ``quillstream`` command."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, TextIO, get_args, get_origin, get_type_hints

from .ai.input import InputContext
from .ai.orchestration.multi_stream import MultiStreamCoordinator, MultiStreamRun
from .ai.orchestration.orchestrator import Invocation, InvocationState, OrchestratorConfig, PromptOrchestrator
from .ai.prompts import ParamsBuilder, Prompt, SegmentMode
from .ai.providers.base import Provider
from .ai.providers.openai_provider import ClientSettings, OpenAIProvider
from .editor.dispatch import UIDispatcher
from .editor.document_model import Document
from .editor.workspace import BufferWorkspace
from .services.notifications import NotificationCenter, Notifier
from .services.settings import Settings, SettingsStore, redact_secret
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_LOGGER = logging.getLogger(__name__)
_POLL_SECONDS = 0.05


def configure_logging(debug: bool = False, *, force: bool = False) -> None:
    """Configure file and console logging for the application."""

    level = logging_utils.log_level_for(debug)
    log_path = logging_utils.setup_logging(level, force=force)
    _LOGGER.debug("Logging configured (level=%s, file=%s)", logging.getLevelName(level), log_path)


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        return active_store.load(overrides=overrides)
    except (OSError, ValueError) as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        return Settings()


def chat_builder(input_text: str, context: Mapping[str, Any]) -> Dict[str, Any]:
    """Default params builder: ``args`` becomes the system message, the input the user message."""

    messages: List[Dict[str, str]] = []
    instructions = str(context.get("args") or "").strip()
    if instructions:
        messages.append({"role": "system", "content": instructions})
    messages.append({"role": "user", "content": input_text})
    return {"messages": messages}


class QuillstreamApp:
    """Wires settings, documents, the event loop and the completion provider together."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        workspace: BufferWorkspace | None = None,
        dispatcher: UIDispatcher | None = None,
        notifier: Notifier | None = None,
        provider: Provider | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._workspace = workspace or BufferWorkspace()
        self._dispatcher = dispatcher or UIDispatcher()
        self._notifier: Notifier = notifier or NotificationCenter()
        self._provider: Provider = provider or OpenAIProvider(
            ClientSettings.from_settings(self._settings), dispatcher=self._dispatcher
        )
        config = OrchestratorConfig(
            responding_highlight=self._settings.responding_highlight,
            error_highlight=self._settings.error_highlight,
            done_highlight=self._settings.done_highlight,
            scratch_buffer_name=self._settings.scratch_buffer_name,
        )
        self._orchestrator = PromptOrchestrator(
            self._workspace, dispatcher=self._dispatcher, notifier=self._notifier, config=config
        )
        self._multi = MultiStreamCoordinator(self._orchestrator, stagger_ms=self._settings.stagger_ms)

    @property
    def settings(self) -> Settings:
        return self._settings

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
    def provider(self) -> Provider:
        return self._provider

    @property
    def orchestrator(self) -> PromptOrchestrator:
        return self._orchestrator

    def open_document(self, text: str = "", *, path: Path | str | None = None, name: str = "") -> Document:
        return self._workspace.open_document(text, name=name, path=path)

    def make_prompt(
        self,
        *,
        builder: ParamsBuilder | None = None,
        mode: Any = None,
        transform: Callable[[str], str] | None = None,
        params: Mapping[str, Any] | None = None,
        name: str | None = None,
    ) -> Prompt:
        """Build a :class:`Prompt` bound to this app's provider and default settings."""

        base_params: Dict[str, Any] = {"temperature": self._settings.temperature}
        base_params.update(params or {})
        return Prompt(
            provider=self._provider,
            builder=builder or chat_builder,
            transform=transform,
            mode=mode if mode is not None else self._settings.default_mode,
            params=base_params,
            name=name,
        )

    def run_completion(
        self, args: str = "", want_selection: bool = False, *, prompt: Prompt | None = None
    ) -> Invocation:
        """Stream a completion for the active document into a new segment."""

        return self._orchestrator.request_completion(prompt or self.make_prompt(), args, want_selection)

    def run_multi(self, prompts: Sequence[Prompt], want_selection: bool = False) -> MultiStreamRun:
        """Start every prompt in append mode, staggered by ``settings.stagger_ms``."""

        return self._multi.request_multi_completion_streams(prompts, want_selection)

    def complete(
        self, prompt: Prompt, input_context: InputContext, callback: Callable[[str], None]
    ) -> Invocation:
        return self._orchestrator.complete(prompt, input_context, callback)

    def debug_anchors(self) -> List[Dict[str, int]]:
        return self._orchestrator.debug_anchors()

    async def aclose(self) -> None:
        """Release network resources held by the provider."""

        close = getattr(self._provider, "aclose", None)
        if close is not None:
            await close()


async def wait_for(invocation: Invocation, *, poll_seconds: float = _POLL_SECONDS) -> InvocationState:
    """Wait on the running loop until ``invocation`` reaches a terminal state."""

    while not invocation.done:
        await asyncio.sleep(poll_seconds)
    return invocation.state


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point invoked by the ``quillstream`` console script."""

    args = _parse_cli_args(argv)

    debug = args.debug or _env_flag("QUILLSTREAM_DEBUG", default=False)
    configure_logging(debug)

    settings_path = args.settings_path or os.environ.get("QUILLSTREAM_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        return 2

    settings = load_settings(resolved_path, store=settings_store, overrides=cli_overrides or None)

    if args.dump_settings:
        _dump_settings(settings, settings_store, overrides=cli_overrides)
        return 0

    if args.file is None:
        print("A FILE argument is required unless --dump-settings is given.", file=sys.stderr)
        return 2

    if settings.debug_logging and not debug:
        configure_logging(True, force=True)

    source_path = Path(args.file).expanduser()
    try:
        text = source_path.read_text(encoding="utf-8")
    except OSError as exc:
        print(f"Unable to read {source_path}: {exc}", file=sys.stderr)
        return 1

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    app = QuillstreamApp(settings, dispatcher=UIDispatcher(loop))
    try:
        state = loop.run_until_complete(_run_cli(app, args, text, source_path))
    except KeyboardInterrupt:
        _LOGGER.info("Shutdown requested by user.")
        state = InvocationState.CANCELLED
    finally:
        with contextlib.suppress(RuntimeError):
            loop.run_until_complete(app.aclose())
        _drain_event_loop(loop)
        loop.close()
    return 0 if state is InvocationState.SUCCEEDED else 1


async def _run_cli(app: QuillstreamApp, args: argparse.Namespace, text: str, source_path: Path) -> InvocationState:
    document = app.open_document(text, path=source_path)
    if args.select:
        start_row, end_row = args.select
        last = max(0, min(end_row, document.line_count()) - 1)
        document.select((max(0, start_row - 1), 0), (last, document.line_length(last)))

    prompt = app.make_prompt(mode=args.mode)
    invocation = app.run_completion(args.prompt or "", bool(args.select), prompt=prompt)
    try:
        state = await wait_for(invocation)
    except asyncio.CancelledError:
        invocation.cancel()
        raise

    target = app.workspace.active or document
    if args.stdout or target is not document:
        sys.stdout.write(target.text)
        sys.stdout.write("\n")
    else:
        destination = Path(args.output).expanduser() if args.output else source_path
        destination.write_text(document.text, encoding="utf-8")
        _LOGGER.info("Wrote completion to %s", destination)
    return state


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _drain_event_loop(loop: asyncio.AbstractEventLoop) -> None:
    """Cancel outstanding tasks and shut down async machinery before closing."""

    if loop.is_closed():
        return

    async def _cleanup() -> None:
        current_task = asyncio.current_task(loop=loop)
        tasks = [task for task in asyncio.all_tasks(loop) if not task.done() and task is not current_task]
        if tasks:
            _LOGGER.debug("Cancelling %s pending asyncio task(s) before shutdown.", len(tasks))
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        await loop.shutdown_asyncgens()
        await loop.shutdown_default_executor()

    try:
        loop.run_until_complete(_cleanup())
    except RuntimeError as exc:
        _LOGGER.debug("Unable to drain asyncio loop: %s", exc)


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="quillstream",
        description="Stream an AI completion into a text file.",
    )
    parser.add_argument("file", nargs="?", metavar="FILE", help="Text file used as the prompt input.")
    parser.add_argument(
        "-p",
        "--prompt",
        metavar="TEXT",
        help="Instructions sent alongside the file contents.",
    )
    parser.add_argument(
        "-m",
        "--mode",
        choices=[mode.value for mode in SegmentMode],
        help="Where the response is written (defaults to the configured mode).",
    )
    parser.add_argument(
        "--select",
        nargs=2,
        type=int,
        metavar=("START", "END"),
        help="Use lines START..END (1-based, inclusive) as the selection.",
    )
    parser.add_argument("-o", "--output", metavar="PATH", help="Write the result here instead of FILE.")
    parser.add_argument("--stdout", action="store_true", help="Print the resulting text instead of writing it.")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload (with secrets redacted) and exit.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.quillstream/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings for this run (repeatable).",
    )
    return parser.parse_args(argv)


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if not items:
        return overrides

    fields = Settings.__dataclass_fields__  # type: ignore[attr-defined]
    type_hints = get_type_hints(Settings)
    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in fields:
            raise ValueError(f"Unknown setting '{key}'.")
        overrides[key] = _coerce_value(type_hints.get(key, fields[key].type), raw_value.strip())
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    if raw_value.lower() in {"none", "null"} and type(None) in get_args(annotation):
        return None
    target = _resolve_annotation(annotation)
    if target is bool:
        return _parse_bool(raw_value)
    if target is int:
        return int(raw_value, 10)
    if target is float:
        return float(raw_value)
    if target is dict:
        try:
            value = json.loads(raw_value or "{}")
        except json.JSONDecodeError as exc:
            raise ValueError("Dict overrides must be valid JSON objects") from exc
        if not isinstance(value, dict):
            raise ValueError("Dict overrides must be valid JSON objects")
        return value
    return raw_value


def _resolve_annotation(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is None:
        return annotation
    if origin is dict:
        return dict
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    return args[0] if args else origin


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    payload = asdict(settings)
    payload["api_key"] = redact_secret(payload.get("api_key") or "")
    metadata = {
        "path": str(store.path),
        "secret_backend": store.vault.strategy,
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": sorted(name for name in os.environ if name.startswith("QUILLSTREAM_")),
    }
    json.dump({"settings": payload, "meta": metadata}, destination, indent=2)
    destination.write("\n")


if __name__ == "__main__":
    raise SystemExit(main())
