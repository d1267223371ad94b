from __future__ import annotations

import codecs
import http.client
import socket
import urllib.error
import urllib.request

from streamrelay.constants import (
    DEFAULT_MAX_MARKDOWN_CHARS,
    DEFAULT_MIRROR_TIMEOUT_SECONDS,
    DEFAULT_MIRROR_URL_TEMPLATE,
    DEFAULT_USER_AGENT,
)


class MirrorFetchError(RuntimeError):
    def __init__(self, url: str, reason: str, status: int | None = None) -> None:
        super().__init__(f"mirror fetch failed for {url}: {reason}")
        self.url = url
        self.reason = reason
        self.status = status


def mirror_url(target_url: str, template: str = DEFAULT_MIRROR_URL_TEMPLATE) -> str:
    target = target_url.strip()
    for scheme in ("https://", "http://"):
        if target.lower().startswith(scheme):
            target = target[len(scheme):]
            break
    return template.format(target=target)


def _charset(declared: str | None) -> str:
    if not declared:
        return "utf-8"
    try:
        return codecs.lookup(declared).name
    except LookupError:
        return "utf-8"


def fetch_text(
    url: str,
    *,
    timeout: float = DEFAULT_MIRROR_TIMEOUT_SECONDS,
    user_agent: str = DEFAULT_USER_AGENT,
    headers: dict[str, str] | None = None,
    max_bytes: int | None = None,
) -> str:
    """Single GET, no retry. Any failure surfaces as MirrorFetchError."""
    req = urllib.request.Request(
        url,
        headers={
            "User-Agent": user_agent,
            "Accept": "text/plain, text/markdown;q=0.9, */*;q=0.8",
            **(headers or {}),
        },
    )
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            status = getattr(resp, "status", 200)
            if status < 200 or status >= 300:
                raise MirrorFetchError(url, f"HTTP {status}", status=status)
            body = resp.read(max_bytes if max_bytes else -1)
            return body.decode(_charset(resp.headers.get_content_charset()), errors="replace")
    except urllib.error.HTTPError as exc:
        raise MirrorFetchError(url, f"HTTP {exc.code}", status=exc.code) from exc
    except urllib.error.URLError as exc:
        raise MirrorFetchError(url, str(exc.reason)) from exc
    except http.client.HTTPException as exc:
        raise MirrorFetchError(url, exc.__class__.__name__) from exc
    except (socket.timeout, TimeoutError) as exc:
        raise MirrorFetchError(url, "timeout") from exc
    except OSError as exc:
        raise MirrorFetchError(url, str(exc) or exc.__class__.__name__) from exc


def fetch_profile_markdown(
    profile_url: str,
    *,
    template: str = DEFAULT_MIRROR_URL_TEMPLATE,
    timeout: float = DEFAULT_MIRROR_TIMEOUT_SECONDS,
    user_agent: str = DEFAULT_USER_AGENT,
    max_chars: int = DEFAULT_MAX_MARKDOWN_CHARS,
) -> str:
    text = fetch_text(
        mirror_url(profile_url, template),
        timeout=timeout,
        user_agent=user_agent,
        max_bytes=max_chars * 4,
    )
    return text[:max_chars]
