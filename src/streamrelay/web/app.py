from __future__ import annotations

import asyncio
from functools import partial
import logging
from typing import Any, Awaitable, Callable

from streamrelay.config import RelaySettings
from streamrelay.connectors.live import LiveSessionFactory, tiktok_session_factory
from streamrelay.connectors.mirror import MirrorFetchError, fetch_profile_markdown
from streamrelay.logging_utils import get_request_logger, log_event, new_request_id
from streamrelay.pipeline.byline import extract_byline
from streamrelay.platforms import InvalidSourceUrl, validate_source_url
from streamrelay.relay.session import ChatRelay

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}
SSE_MEDIA_TYPE = "text/event-stream; charset=utf-8"
DISCONNECT_POLL_SECONDS = 0.5
CLIENT_CLOSED_STATUS = 499

MarkdownFetcher = Callable[[str], str]


def default_markdown_fetcher(settings: RelaySettings) -> MarkdownFetcher:
    return partial(
        fetch_profile_markdown,
        template=settings.mirror.url_template,
        timeout=settings.mirror.timeout_seconds,
        user_agent=settings.mirror.user_agent,
        max_chars=settings.byline.max_markdown_chars,
    )


async def _never_disconnected() -> bool:
    return False


async def resolve_byline(
    url: str,
    settings: RelaySettings,
    fetch_markdown: MarkdownFetcher,
    *,
    is_disconnected: Callable[[], Awaitable[bool]] = _never_disconnected,
    logger: logging.Logger | logging.LoggerAdapter | None = None,
) -> tuple[int, dict[str, Any]]:
    """Validate, fetch through the mirror, run the pipeline.

    Returns ``(status, payload)``: 200 with a byline, 204 when the page has
    none, 400 for a bad URL, 502 when the mirror fails, 499 when the client
    left before the fetch finished.
    """
    log = logger or get_request_logger(new_request_id(), url=url)
    try:
        source = validate_source_url(url, settings.allowed_hosts)
    except InvalidSourceUrl as exc:
        log_event(log, "info", "byline_fetch", "rejected url", error=str(exc))
        return 400, {"error": str(exc)}

    target = source.normalized
    fetch = asyncio.create_task(asyncio.to_thread(fetch_markdown, target))
    while True:
        done, _ = await asyncio.wait({fetch}, timeout=DISCONNECT_POLL_SECONDS)
        if done:
            break
        if await is_disconnected():
            fetch.cancel()
            log_event(log, "info", "byline_fetch", "client disconnected", target=target)
            return CLIENT_CLOSED_STATUS, {"error": "client closed request"}

    try:
        markdown = fetch.result()
    except MirrorFetchError as exc:
        log_event(log, "warning", "byline_fetch", "mirror fetch failed", target=target, error=exc.reason, status=exc.status)
        return 502, {"error": "upstream unavailable"}

    log_event(log, "info", "byline_fetch", "mirror fetched", target=target, chars=len(markdown))
    markdown = markdown[: settings.byline.max_markdown_chars]
    result = extract_byline(target, markdown, max_chars=settings.byline.max_chars, logger=log)
    if not result.text:
        return 204, {}
    return 200, {"byline": result.text, "platform": result.platform.value, "source": target}


def create_app(
    settings: RelaySettings,
    *,
    session_factory: LiveSessionFactory | None = None,
    fetch_markdown: MarkdownFetcher | None = None,
):
    try:
        from fastapi import FastAPI, Request
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError(
            "FastAPI is required for web mode. Install the web dependencies."
        ) from exc

    app = FastAPI(title="streamrelay", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )

    live_factory = session_factory or tiktok_session_factory()
    fetcher = fetch_markdown or default_markdown_fetcher(settings)

    @app.get("/", response_class=PlainTextResponse)
    def index() -> str:
        return "SSE relay OK"

    @app.get("/api/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/live-sse")
    async def live_sse(user: str = "") -> Any:
        user = user.strip().lower()
        if not user:
            return JSONResponse(status_code=400, content={"error": "Missing ?user="})
        relay = ChatRelay(
            user,
            live_factory,
            backoff=settings.relay.backoff_seconds,
            keepalive_seconds=settings.relay.keepalive_seconds,
            logger=get_request_logger(new_request_id(), user=user),
        )
        return StreamingResponse(relay.frames(), media_type=SSE_MEDIA_TYPE, headers=SSE_HEADERS)

    @app.get("/api/byline")
    async def byline(request: Request, url: str = "") -> Any:
        status, payload = await resolve_byline(
            url,
            settings,
            fetcher,
            is_disconnected=request.is_disconnected,
        )
        if status == 204:
            return Response(status_code=204)
        return JSONResponse(status_code=status, content=payload)

    return app
