from __future__ import annotations

DEFAULT_BYLINE_MAX_CHARS = 100
ALLOWED_BYLINE_MAX_CHARS = {100, 200}
DEFAULT_MAX_MARKDOWN_CHARS = 400_000

DEFAULT_MIRROR_URL_TEMPLATE = "https://r.jina.ai/http://{target}"
DEFAULT_MIRROR_TIMEOUT_SECONDS = 12
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; streamrelay/1.0; +https://example.local)"

DEFAULT_ALLOWED_HOSTS = [
    "youtube.com",
    "twitch.tv",
    "kick.com",
    "tiktok.com",
]

DEFAULT_BACKOFF_SECONDS = [2, 5, 10, 20, 30, 60]
DEFAULT_KEEPALIVE_SECONDS = 15

WEB_DEFAULT_HOST = "0.0.0.0"
WEB_DEFAULT_PORT = 3000

MASK = "****"
