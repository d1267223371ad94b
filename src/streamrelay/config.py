from __future__ import annotations

from dataclasses import asdict, dataclass, field
import os
from pathlib import Path
from typing import Any

from streamrelay.constants import (
    ALLOWED_BYLINE_MAX_CHARS,
    DEFAULT_ALLOWED_HOSTS,
    DEFAULT_BACKOFF_SECONDS,
    DEFAULT_BYLINE_MAX_CHARS,
    DEFAULT_KEEPALIVE_SECONDS,
    DEFAULT_MAX_MARKDOWN_CHARS,
    DEFAULT_MIRROR_TIMEOUT_SECONDS,
    DEFAULT_MIRROR_URL_TEMPLATE,
    DEFAULT_USER_AGENT,
)

try:
    import yaml
except ImportError as exc:  # pragma: no cover
    raise RuntimeError("PyYAML is required. Install with: pip install PyYAML") from exc


@dataclass(slots=True)
class BylineSettings:
    max_chars: int = DEFAULT_BYLINE_MAX_CHARS
    max_markdown_chars: int = DEFAULT_MAX_MARKDOWN_CHARS


@dataclass(slots=True)
class MirrorSettings:
    url_template: str = DEFAULT_MIRROR_URL_TEMPLATE
    timeout_seconds: float = DEFAULT_MIRROR_TIMEOUT_SECONDS
    user_agent: str = DEFAULT_USER_AGENT


@dataclass(slots=True)
class LiveRelaySettings:
    backoff_seconds: list[float] = field(default_factory=lambda: list(DEFAULT_BACKOFF_SECONDS))
    keepalive_seconds: float = DEFAULT_KEEPALIVE_SECONDS


@dataclass(slots=True)
class RelaySettings:
    byline: BylineSettings = field(default_factory=BylineSettings)
    mirror: MirrorSettings = field(default_factory=MirrorSettings)
    relay: LiveRelaySettings = field(default_factory=LiveRelaySettings)
    allowed_hosts: list[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_HOSTS))
    cors_origins: list[str] = field(default_factory=lambda: ["*"])


def _read_yaml(path: str | Path) -> dict:
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML object at {path}")
    return data


def load_dotenv(path: str | Path = ".env") -> None:
    env_path = Path(path)
    if not env_path.exists():
        return
    for line in env_path.read_text(encoding="utf-8").splitlines():
        raw = line.strip()
        if not raw or raw.startswith("#") or "=" not in raw:
            continue
        key, value = raw.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            os.environ.setdefault(key, value)


def parse_settings_dict(data: dict[str, Any]) -> RelaySettings:
    if "streamrelay" in data:
        data = data["streamrelay"] or {}

    byline_raw = _as_dict(data, "byline")
    mirror_raw = _as_dict(data, "mirror")
    relay_raw = _as_dict(data, "relay")
    web_raw = _as_dict(data, "web")

    settings = RelaySettings(
        byline=BylineSettings(
            max_chars=int(byline_raw.get("max_chars", DEFAULT_BYLINE_MAX_CHARS)),
            max_markdown_chars=int(byline_raw.get("max_markdown_chars", DEFAULT_MAX_MARKDOWN_CHARS)),
        ),
        mirror=MirrorSettings(
            url_template=str(mirror_raw.get("url_template", DEFAULT_MIRROR_URL_TEMPLATE) or "").strip(),
            timeout_seconds=float(mirror_raw.get("timeout_seconds", DEFAULT_MIRROR_TIMEOUT_SECONDS)),
            user_agent=str(mirror_raw.get("user_agent", DEFAULT_USER_AGENT) or DEFAULT_USER_AGENT),
        ),
        relay=LiveRelaySettings(
            backoff_seconds=[float(v) for v in relay_raw.get("backoff_seconds", DEFAULT_BACKOFF_SECONDS) or []],
            keepalive_seconds=float(relay_raw.get("keepalive_seconds", DEFAULT_KEEPALIVE_SECONDS)),
        ),
        allowed_hosts=_as_str_list(data, "allowed_hosts") or list(DEFAULT_ALLOWED_HOSTS),
        cors_origins=_as_str_list(web_raw, "cors_origins") or ["*"],
    )
    _apply_env_overrides(settings)
    _validate(settings)
    return settings


def load_settings(path: str | Path | None = None) -> RelaySettings:
    if path is None or not Path(path).exists():
        return parse_settings_dict({})
    return parse_settings_dict(_read_yaml(path))


def settings_to_dict(settings: RelaySettings) -> dict[str, Any]:
    return asdict(settings)


def _apply_env_overrides(settings: RelaySettings) -> None:
    raw_max = os.getenv("STREAMRELAY_BYLINE_MAX_CHARS", "").strip()
    if raw_max:
        settings.byline.max_chars = int(raw_max)
    raw_timeout = os.getenv("STREAMRELAY_MIRROR_TIMEOUT", "").strip()
    if raw_timeout:
        settings.mirror.timeout_seconds = float(raw_timeout)
    raw_template = os.getenv("STREAMRELAY_MIRROR_URL_TEMPLATE", "").strip()
    if raw_template:
        settings.mirror.url_template = raw_template
    raw_origins = os.getenv("STREAMRELAY_CORS_ORIGINS", "").strip()
    if raw_origins:
        settings.cors_origins = [part.strip() for part in raw_origins.split(",") if part.strip()]


def _validate(settings: RelaySettings) -> None:
    if settings.byline.max_chars not in ALLOWED_BYLINE_MAX_CHARS:
        allowed = ", ".join(str(v) for v in sorted(ALLOWED_BYLINE_MAX_CHARS))
        raise ValueError(f"byline.max_chars must be one of: {allowed}")
    if settings.byline.max_markdown_chars <= 0:
        raise ValueError("byline.max_markdown_chars must be > 0")
    if "{target}" not in settings.mirror.url_template:
        raise ValueError("mirror.url_template must contain {target}")
    if settings.mirror.timeout_seconds <= 0:
        raise ValueError("mirror.timeout_seconds must be > 0")
    if not settings.relay.backoff_seconds or any(v <= 0 for v in settings.relay.backoff_seconds):
        raise ValueError("relay.backoff_seconds must be a non-empty list of positive delays")
    if settings.relay.keepalive_seconds <= 0:
        raise ValueError("relay.keepalive_seconds must be > 0")


def _as_dict(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key, {}) or {}
    if not isinstance(value, dict):
        raise ValueError(f"{key} must be a mapping")
    return value


def _as_str_list(data: dict[str, Any], key: str) -> list[str]:
    value = data.get(key, [])
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{key} must be a list")
    return [str(v).strip() for v in value if str(v).strip()]
