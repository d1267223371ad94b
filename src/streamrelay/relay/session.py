"""Per-client chat relay: live room events in, SSE frames out.

Each browser client owns one ``ChatRelay``. The relay keeps one live session
open at a time; when a connect attempt is rejected or a session ends it
schedules exactly one retry along a fixed backoff ladder, and the ladder
resets after every successful connect. Closing the relay cancels the pending
retry and disconnects the live session.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Awaitable, Callable

from streamrelay.connectors.live import LiveSession, LiveSessionFactory
from streamrelay.constants import DEFAULT_BACKOFF_SECONDS, DEFAULT_KEEPALIVE_SECONDS
from streamrelay.logging_utils import get_request_logger, log_event, new_request_id

KEEPALIVE_FRAME = ":\n\n"

STATUS_BY_KIND = {
    "disconnected": "disconnected",
    "error": "error",
    "streamEnd": "ended",
}


def sse_frame(event: str, data: dict[str, Any]) -> str:
    return f"event: {event}\ndata: {json.dumps(data, ensure_ascii=False)}\n\n"


class BackoffLadder:
    def __init__(self, delays: list[float] | None = None) -> None:
        self.delays = list(delays or DEFAULT_BACKOFF_SECONDS)
        if not self.delays:
            raise ValueError("backoff ladder needs at least one delay")
        self.attempt = 0

    def next_delay(self) -> float:
        delay = self.delays[min(self.attempt, len(self.delays) - 1)]
        self.attempt += 1
        return delay

    def reset(self) -> None:
        self.attempt = 0


class ChatRelay:
    def __init__(
        self,
        user: str,
        session_factory: LiveSessionFactory,
        *,
        backoff: list[float] | None = None,
        keepalive_seconds: float = DEFAULT_KEEPALIVE_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        self.user = user
        self._factory = session_factory
        self._ladder = BackoffLadder(backoff)
        self._keepalive = keepalive_seconds
        self._sleep = sleep
        self._log = logger or get_request_logger(new_request_id(), user=user)
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._closed = False
        self._runner: asyncio.Task | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    def _emit(self, event: str, data: dict[str, Any]) -> None:
        if not self._closed:
            self._queue.put_nowait(sse_frame(event, data))

    async def _attempt(self, trigger: str) -> str:
        """Run one connection attempt to its end; return the retry reason."""
        self._emit("debug", {"stage": "attempt", "user": self.user, "trigger": trigger})
        log_event(self._log, "info", "relay_attempt", "connecting", trigger=trigger)
        try:
            session = self._factory(self.user)
        except Exception as exc:
            log_event(self._log, "error", "relay_attempt", "session setup failed", error=str(exc))
            self._emit("status", {"state": "error", "error": str(exc)})
            return "connect:reject"

        try:
            try:
                await session.connect()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                log_event(self._log, "warning", "relay_attempt", "connect rejected", error=str(exc))
                return "connect:reject"

            self._ladder.reset()
            self._emit("open", {"ok": True, "user": self.user})
            return await self._pump(session)
        finally:
            await self._release(session)

    async def _pump(self, session: LiveSession) -> str:
        try:
            async for event in session.events():
                if event.kind == "chat" and event.chat is not None:
                    self._emit("chat", event.chat.to_payload())
                    continue
                status: dict[str, Any] = {"state": STATUS_BY_KIND.get(event.kind, event.kind)}
                if event.kind == "error":
                    status["error"] = event.error
                self._emit("status", status)
                return event.kind
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._emit("status", {"state": "error", "error": str(exc)})
            return "error"
        self._emit("status", {"state": "disconnected"})
        return "disconnected"

    async def _release(self, session: LiveSession) -> None:
        try:
            await session.disconnect()
        except Exception as exc:
            log_event(self._log, "warning", "relay_closed", "disconnect failed", error=str(exc))

    async def run(self) -> None:
        trigger = "init"
        while not self._closed:
            reason = await self._attempt(trigger)
            if self._closed:
                return
            wait = self._ladder.next_delay()
            self._emit("debug", {"stage": "retry", "user": self.user, "inMs": int(wait * 1000), "reason": reason})
            log_event(self._log, "info", "relay_retry", "retry scheduled", wait=wait, reason=reason)
            await self._sleep(wait)
            trigger = "retry"

    def start(self) -> None:
        if self._runner is None:
            self._emit("status", {"state": "connected", "user": self.user})
            self._runner = asyncio.create_task(self.run())

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        runner, self._runner = self._runner, None
        if runner is not None and not runner.done():
            runner.cancel()
            try:
                await runner
            except asyncio.CancelledError:
                pass
        log_event(self._log, "info", "relay_closed", "client gone")

    async def frames(self) -> AsyncIterator[str]:
        """SSE frames for the client, with a keep-alive comment on silence."""
        self.start()
        try:
            while not self._closed:
                try:
                    frame = await asyncio.wait_for(self._queue.get(), timeout=self._keepalive)
                except asyncio.TimeoutError:
                    yield KEEPALIVE_FRAME
                    continue
                yield frame
        finally:
            await self.close()
