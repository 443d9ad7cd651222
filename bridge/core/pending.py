from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Literal

logger = logging.getLogger(__name__)

ESCAPE = 27
ENTER = 13

# number_pad:1 movement digits.
ARROW_KEYS: dict[str, str] = {
    "ArrowLeft": "4",
    "ArrowRight": "6",
    "ArrowUp": "8",
    "ArrowDown": "2",
}


class RequestKind(StrEnum):
    general = "general"
    position = "position"
    menu_selection = "menu_selection"


ReusePolicy = Literal["fresh", "unconsumed", "never"]


def decode_key(raw: str) -> int:
    """Turn one logical client keypress into the key code the engine reads."""

    if raw in ARROW_KEYS:
        return ord(ARROW_KEYS[raw])
    if raw == "Escape":
        return ESCAPE
    if raw == "Enter":
        return ENTER
    if raw:
        return ord(raw[0])
    return 0


class SuspensionConflictError(RuntimeError):
    """A second suspension was requested for a kind that is already pending."""


@dataclass(slots=True)
class BufferedInput:
    raw: str
    received_at: float
    # Request kinds this input has already answered.
    used_by: set[RequestKind] = field(default_factory=set)


@dataclass(slots=True)
class PendingRequest:
    kind: RequestKind
    resolver: Callable[[Any], None]
    created_at: float
    decoder: Callable[[str], Any]
    default: Any
    timer: asyncio.TimerHandle | None = None
    # Runs when the request expires, before the default is handed over.
    on_timeout: Callable[[], None] | None = None


class PendingRequestRegistry:
    """At most one outstanding request per kind, plus the latest client input.

    Contract:
      - `suspend(kind)` returns a value right away when a buffered input can
        answer it, otherwise an `asyncio.Future` the engine waits on.
      - `resolve(kind, raw)` always records `raw` as the latest input and, when
        a request of `kind` is registered, completes it.

    Callers must check `is_pending(kind)` before suspending; a second
    registration raises `SuspensionConflictError`.
    """

    def __init__(
        self,
        *,
        cooldown_s: float = 0.1,
        timeout_s: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._pending: dict[RequestKind, PendingRequest] = {}
        self._latest: BufferedInput | None = None
        self._cooldown_s = cooldown_s
        self._timeout_s = timeout_s
        self._clock = clock
        self._closed = False

    @property
    def latest(self) -> BufferedInput | None:
        return self._latest

    @property
    def closed(self) -> bool:
        return self._closed

    def is_pending(self, kind: RequestKind) -> bool:
        return kind in self._pending

    def pending_kinds(self) -> list[RequestKind]:
        return list(self._pending)

    def _reusable(self, kind: RequestKind, reuse: ReusePolicy) -> BufferedInput | None:
        buffered = self._latest
        if buffered is None or reuse == "never":
            return None
        if reuse == "unconsumed":
            return buffered if not buffered.used_by else None
        if kind in buffered.used_by:
            return None
        if self._clock() - buffered.received_at >= self._cooldown_s:
            return None
        return buffered

    def suspend(
        self,
        kind: RequestKind,
        *,
        decoder: Callable[[str], Any] = decode_key,
        default: Any = ESCAPE,
        reuse: ReusePolicy = "fresh",
        on_timeout: Callable[[], None] | None = None,
    ) -> Any:
        if kind in self._pending:
            raise SuspensionConflictError(f"a {kind.value} request is already pending")

        if self._closed:
            return default

        buffered = self._reusable(kind, reuse)
        if buffered is not None:
            buffered.used_by.add(kind)
            logger.debug("reusing buffered input %r for %s request", buffered.raw, kind.value)
            return decoder(buffered.raw)

        loop = asyncio.get_running_loop()
        future: asyncio.Future[Any] = loop.create_future()

        def _resolver(value: Any) -> None:
            if not future.done():
                future.set_result(value)

        request = PendingRequest(
            kind=kind,
            resolver=_resolver,
            created_at=self._clock(),
            decoder=decoder,
            default=default,
            on_timeout=on_timeout,
        )
        if self._timeout_s is not None:
            request.timer = loop.call_later(self._timeout_s, self._expire, request)
        self._pending[kind] = request
        logger.debug("suspended on %s request", kind.value)
        return future

    def resolve(self, kind: RequestKind, raw: str) -> bool:
        """Record `raw` and complete the `kind` request if one is registered."""

        buffered = BufferedInput(raw=raw, received_at=self._clock())
        self._latest = buffered

        request = self._pending.pop(kind, None)
        if request is None:
            return False

        buffered.used_by.add(kind)
        self._finish(request, request.decoder(raw))
        logger.debug("resolved %s request with %r", kind.value, raw)
        return True

    def settle(self, kind: RequestKind, value: Any) -> bool:
        """Complete the `kind` request with an already prepared value."""

        request = self._pending.pop(kind, None)
        if request is None:
            return False
        self._finish(request, value)
        return True

    def note_consumed(self, raw: str) -> None:
        """Record an input that was handled elsewhere and must not be reused."""

        self._latest = BufferedInput(raw=raw, received_at=self._clock(), used_by=set(RequestKind))

    def cancel_all(self) -> None:
        """Settle everything with its safe default; later suspensions return defaults."""

        self._closed = True
        pending = list(self._pending.values())
        self._pending.clear()
        for request in pending:
            logger.info("releasing %s request with default %r", request.kind.value, request.default)
            self._finish(request, request.default)

    def _expire(self, request: PendingRequest) -> None:
        if self._pending.get(request.kind) is not request:
            return
        del self._pending[request.kind]
        logger.warning("%s request timed out; answering %r", request.kind.value, request.default)
        request.timer = None
        if request.on_timeout is not None:
            request.on_timeout()
        self._finish(request, request.default)

    @staticmethod
    def _finish(request: PendingRequest, value: Any) -> None:
        if request.timer is not None:
            request.timer.cancel()
            request.timer = None
        request.resolver(value)
