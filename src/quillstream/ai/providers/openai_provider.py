"""Streaming provider built around OpenAI-compatible chat completion endpoints."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

import httpx
from openai import APIConnectionError, APIError, APIStatusError, APITimeoutError, AsyncOpenAI, RateLimitError
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from ...editor.dispatch import UIDispatcher
from ..streaming import StreamHandlers
from .base import Cancel

__all__ = ["ClientSettings", "OpenAIProvider"]

LOGGER = logging.getLogger(__name__)

_RETRYABLE = (APIConnectionError, APITimeoutError, RateLimitError, httpx.TimeoutException)
_PASSTHROUGH_OPTIONS = frozenset({"model", "timeout", "extra_headers", "extra_query", "extra_body"})


@dataclass(slots=True)
class ClientSettings:
    """Subset of settings required to configure the OpenAI client."""

    base_url: str
    api_key: str
    model: str
    organization: str | None = None
    request_timeout: float | None = 90.0
    max_retries: int = 3
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 6.0
    default_headers: Mapping[str, str] | None = None
    debug_logging: bool = False

    @classmethod
    def from_settings(cls, settings: Any) -> "ClientSettings":
        return cls(
            base_url=settings.base_url,
            api_key=settings.api_key,
            model=settings.model,
            organization=settings.organization,
            request_timeout=settings.request_timeout,
            max_retries=settings.max_retries,
            retry_min_seconds=settings.retry_min_seconds,
            retry_max_seconds=settings.retry_max_seconds,
            default_headers=dict(settings.default_headers or {}) or None,
            debug_logging=settings.debug_logging,
        )


@dataclass(slots=True)
class _StreamState:
    delivered: bool = False
    finish_reason: str | None = None
    refusal: list[str] = field(default_factory=list)


class OpenAIProvider:
    """Streams chat completions into :class:`StreamHandlers`.

    Built params are sent as the request body unchanged apart from a default
    ``model``. Connection, timeout and rate-limit failures are retried only
    while nothing has been delivered yet, so partials are never duplicated.
    """

    def __init__(
        self,
        settings: ClientSettings,
        *,
        client: AsyncOpenAI | None = None,
        dispatcher: UIDispatcher | None = None,
    ) -> None:
        self._settings = settings
        self._client = client or self._build_client(settings)
        self._dispatcher = dispatcher or UIDispatcher()

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    def request_completion(
        self,
        handlers: StreamHandlers,
        params: Mapping[str, Any] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> Cancel:
        payload = self._build_payload(params, options)
        task = self._dispatcher.spawn(self._stream(handlers, payload))

        def cancel() -> None:
            LOGGER.debug("Cancelling completion stream for %s", payload.get("model"))
            self._dispatcher.call_soon(task.cancel)

        return cancel

    async def _stream(self, handlers: StreamHandlers, payload: Dict[str, Any]) -> None:
        state = _StreamState()
        LOGGER.debug("Starting streamed completion via %s", payload.get("model"))
        if self._settings.debug_logging:
            self._log_payload(payload)
        try:
            async for attempt in self._retrying(state):
                with attempt:
                    stream = await self._client.chat.completions.create(**payload)
                    async for chunk in stream:
                        self._consume_chunk(chunk, handlers, state)
        except asyncio.CancelledError:
            LOGGER.debug("Completion stream cancelled")
            raise
        except (APIError, httpx.HTTPError) as exc:
            label = type(exc).__name__
            status = getattr(exc, "status_code", None)
            if status is not None:
                label = f"{label} {status}"
            handlers.on_error(str(exc), label)
            return

        if state.refusal:
            handlers.on_error("".join(state.refusal), "refusal")
            return
        handlers.on_finish(None, state.finish_reason)

    @staticmethod
    def _consume_chunk(chunk: Any, handlers: StreamHandlers, state: _StreamState) -> None:
        for choice in getattr(chunk, "choices", None) or ():
            delta = getattr(choice, "delta", None)
            content = getattr(delta, "content", None) if delta is not None else None
            if content:
                state.delivered = True
                handlers.on_partial(str(content))
            refusal = getattr(delta, "refusal", None) if delta is not None else None
            if refusal:
                state.refusal.append(str(refusal))
            reason = getattr(choice, "finish_reason", None)
            if reason:
                state.finish_reason = str(reason)

    def _build_payload(
        self, params: Mapping[str, Any] | None, options: Mapping[str, Any] | None
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"model": self._settings.model}
        if params:
            payload.update(params)
        for key, value in (options or {}).items():
            if key in _PASSTHROUGH_OPTIONS:
                payload[key] = value
            else:
                LOGGER.debug("Ignoring unsupported provider option %s", key)
        payload["stream"] = True
        return payload

    def _retrying(self, state: _StreamState) -> AsyncRetrying:
        return AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(max(1, self._settings.max_retries)),
            wait=wait_exponential(
                multiplier=self._settings.retry_min_seconds,
                max=self._settings.retry_max_seconds,
            ),
            retry=retry_if_exception(lambda exc: _is_retryable(exc, state)),
        )

    def _build_client(self, settings: ClientSettings) -> AsyncOpenAI:
        headers = dict(settings.default_headers) if settings.default_headers else None
        return AsyncOpenAI(
            api_key=settings.api_key,
            base_url=settings.base_url,
            organization=settings.organization,
            timeout=settings.request_timeout,
            default_headers=headers,
            max_retries=0,
        )

    def _log_payload(self, payload: Mapping[str, Any]) -> None:
        try:
            serialized = json.dumps(payload, ensure_ascii=False, indent=2)
        except (TypeError, ValueError):
            LOGGER.debug("Completion payload (unserializable): %s", payload)
        else:
            LOGGER.debug("Completion payload:\n%s", serialized)

    async def aclose(self) -> None:
        """Close the underlying OpenAI client to release network resources."""

        await self._client.close()


def _is_retryable(exc: BaseException, state: _StreamState) -> bool:
    if state.delivered:
        return False
    if isinstance(exc, _RETRYABLE):
        return True
    return isinstance(exc, APIStatusError) and exc.status_code >= 500
