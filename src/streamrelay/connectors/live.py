"""Live chat connector.

The relay only needs three things from a live platform client: join a room,
stream chat/status events, and leave. ``LiveSession`` is that contract; the
default implementation wraps the ``TikTokLive`` package.
"""

from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator, Callable, Protocol

from streamrelay.models import ChatMessage, LiveEvent


class LiveSession(Protocol):
    async def connect(self) -> None: ...

    def events(self) -> AsyncIterator[LiveEvent]: ...

    async def disconnect(self) -> None: ...


LiveSessionFactory = Callable[[str], LiveSession]


class TikTokLiveSession:
    """One TikTok LIVE room subscription. ``disconnect`` is safe to call twice."""

    def __init__(self, unique_id: str, **client_kwargs: Any) -> None:
        try:
            from TikTokLive import TikTokLiveClient
            from TikTokLive.events import CommentEvent, DisconnectEvent, LiveEndEvent
        except ImportError as exc:  # pragma: no cover
            raise RuntimeError(
                "TikTokLive is required for the live relay. Install optional live deps."
            ) from exc

        self.unique_id = unique_id
        self._queue: asyncio.Queue[LiveEvent] = asyncio.Queue()
        self._task: asyncio.Task | None = None
        self._closed = False
        self._client = TikTokLiveClient(unique_id=f"@{unique_id.lstrip('@')}", **client_kwargs)
        self._client.add_listener(CommentEvent, self._on_comment)
        self._client.add_listener(DisconnectEvent, self._on_disconnect)
        self._client.add_listener(LiveEndEvent, self._on_live_end)

    async def _on_comment(self, event: Any) -> None:
        user = getattr(event, "user", None)
        self._queue.put_nowait(
            LiveEvent(
                kind="chat",
                chat=ChatMessage(
                    comment=str(getattr(event, "comment", "") or ""),
                    user_id=str(getattr(user, "unique_id", "") or ""),
                    nickname=str(getattr(user, "nickname", "") or ""),
                ),
            )
        )

    async def _on_disconnect(self, _event: Any) -> None:
        self._queue.put_nowait(LiveEvent(kind="disconnected"))

    async def _on_live_end(self, _event: Any) -> None:
        self._queue.put_nowait(LiveEvent(kind="streamEnd"))

    def _on_task_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._queue.put_nowait(LiveEvent(kind="error", error=str(exc)))
        else:
            self._queue.put_nowait(LiveEvent(kind="disconnected"))

    async def connect(self) -> None:
        self._task = await self._client.start(fetch_room_info=False)
        self._task.add_done_callback(self._on_task_done)

    async def events(self) -> AsyncIterator[LiveEvent]:
        while not self._closed:
            event = await self._queue.get()
            yield event
            if event.kind != "chat":
                return

    async def disconnect(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._task is None:
            return
        try:
            await self._client.disconnect()
        finally:
            if not self._task.done():
                self._task.cancel()


def tiktok_session_factory(**client_kwargs: Any) -> LiveSessionFactory:
    def factory(unique_id: str) -> LiveSession:
        return TikTokLiveSession(unique_id, **client_kwargs)

    return factory
