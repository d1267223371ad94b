from __future__ import annotations

from dataclasses import dataclass
import urllib.parse

from streamrelay.models import PlatformKind

# Ordered: first match wins, everything else is generic.
PLATFORM_HOSTS: list[tuple[str, PlatformKind]] = [
    ("youtube.com", PlatformKind.VIDEO_HOST),
    ("twitch.tv", PlatformKind.STREAM_HOST),
]

VIDEO_HOST_PREFIXES = {"channel", "c", "user"}


class InvalidSourceUrl(ValueError):
    pass


def classify_host(host: str) -> PlatformKind:
    lowered = (host or "").lower()
    for needle, kind in PLATFORM_HOSTS:
        if needle in lowered:
            return kind
    return PlatformKind.GENERIC


@dataclass(frozen=True, slots=True)
class SourceUrl:
    raw: str
    scheme: str
    host: str
    path_parts: tuple[str, ...]

    @property
    def kind(self) -> PlatformKind:
        return classify_host(self.host)

    @property
    def handle(self) -> str:
        parts = self.path_parts
        if not parts:
            return ""
        kind = self.kind
        if kind == PlatformKind.VIDEO_HOST:
            first = parts[0]
            if first.startswith("@"):
                return first[1:]
            if first.lower() in VIDEO_HOST_PREFIXES and len(parts) > 1:
                return parts[1]
            return ""
        if kind == PlatformKind.STREAM_HOST:
            return parts[0].lower()
        return parts[0].lstrip("@")

    @property
    def normalized(self) -> str:
        kind = self.kind
        handle = self.handle
        if kind == PlatformKind.VIDEO_HOST and handle:
            first = self.path_parts[0]
            prefix = f"@{handle}" if first.startswith("@") else f"{first}/{handle}"
            return f"https://www.youtube.com/{prefix}/about"
        if kind == PlatformKind.STREAM_HOST and handle:
            return f"https://www.twitch.tv/{handle}/about"
        path = "/".join(self.path_parts)
        return f"{self.scheme}://{self.host}/{path}" if path else f"{self.scheme}://{self.host}/"


def parse_source_url(raw: str) -> SourceUrl:
    """Parse a creator profile URL. Never raises; bad input yields an empty host."""
    text = (raw or "").strip()
    if text and "://" not in text:
        text = f"https://{text}"
    try:
        parsed = urllib.parse.urlsplit(text)
        host = parsed.hostname or ""
    except ValueError:
        # Unbalanced IPv6 brackets and the like.
        return SourceUrl(raw=raw or "", scheme="https", host="", path_parts=())
    parts = tuple(p for p in parsed.path.split("/") if p)
    return SourceUrl(
        raw=raw or "",
        scheme=(parsed.scheme or "https").lower(),
        host=host.lower(),
        path_parts=parts,
    )


def validate_source_url(raw: str, allowed_hosts: list[str]) -> SourceUrl:
    """Reject missing, malformed or unsupported profile URLs before any fetch."""
    if not str(raw or "").strip():
        raise InvalidSourceUrl("missing url")
    source = parse_source_url(raw)
    if source.scheme not in {"http", "https"}:
        raise InvalidSourceUrl(f"unsupported scheme: {source.scheme}")
    if not source.host:
        raise InvalidSourceUrl(f"malformed url: {raw}")
    if not any(_host_matches(source.host, allowed) for allowed in allowed_hosts):
        raise InvalidSourceUrl(f"unsupported host: {source.host}")
    return source


def handle_of(raw: str) -> str:
    return parse_source_url(raw).handle


def _host_matches(host: str, allowed: str) -> bool:
    allowed = allowed.strip().lower()
    if not allowed:
        return False
    return host == allowed or host.endswith(f".{allowed}")
