"""Byline pipeline: raw mirror markdown in, short sanitized teaser out.

Order is fixed for every platform:

    normalize -> extract -> dedupe -> redact -> masked-tail cleanup -> clamp

An empty extractor result short-circuits. Any exception raised while parsing
degrades to an empty byline; scraped markdown is expected to be malformed.
"""

from __future__ import annotations

import logging

from streamrelay.constants import DEFAULT_BYLINE_MAX_CHARS
from streamrelay.extractors.base import Extractor
from streamrelay.extractors.generic import extract_generic
from streamrelay.extractors.streamhost import extract_stream_about
from streamrelay.extractors.videohost import extract_video_about
from streamrelay.logging_utils import LOGGER_NAME, log_event
from streamrelay.models import BylineResult, PlatformKind
from streamrelay.pipeline.dedupe import dedupe_text
from streamrelay.pipeline.normalize import normalize
from streamrelay.pipeline.redact import RedactionTokens, strip_masked_tail, tokens_for_handle
from streamrelay.platforms import SourceUrl, parse_source_url

ELLIPSIS = "…"
CLAMP_TRAILING = " \t,;:-–—"

EXTRACTORS: dict[PlatformKind, Extractor] = {
    PlatformKind.VIDEO_HOST: extract_video_about,
    PlatformKind.STREAM_HOST: extract_stream_about,
    PlatformKind.GENERIC: extract_generic,
}


def extractor_for(source: SourceUrl) -> Extractor:
    return EXTRACTORS[source.kind]


def clamp(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    head = text[: max_chars - len(ELLIPSIS)]
    cut = head.rfind(" ")
    if cut > 0:
        head = head[:cut]
    return head.rstrip(CLAMP_TRAILING) + ELLIPSIS


def fit(text: str, tokens: RedactionTokens, max_chars: int) -> str:
    """Clamp, then mask again: a cut can shorten a word down to a handle token.

    Masking a token shorter than the mask grows the text, so the limit is
    tightened until the masked result fits.
    """
    limit = max_chars
    out = tokens.mask(clamp(text, limit))
    while len(out) > max_chars and limit > 1:
        limit = max(1, limit - (len(out) - max_chars))
        out = tokens.mask(clamp(text, limit))
    return out


def extract_byline(
    source_url: str,
    raw_markdown: str,
    *,
    max_chars: int = DEFAULT_BYLINE_MAX_CHARS,
    logger: logging.Logger | logging.LoggerAdapter | None = None,
) -> BylineResult:
    log = logger or logging.getLogger(LOGGER_NAME)
    platform = PlatformKind.GENERIC
    try:
        source = parse_source_url(source_url)
        platform = source.kind
        text = normalize(raw_markdown)
        candidate = extractor_for(source)(text, source)
        if not candidate:
            log_event(log, "info", "byline_extract", "no byline block", platform=platform.value)
            return BylineResult(text="", platform=platform, outcome="no_candidate")

        text = dedupe_text(candidate)

        tokens = tokens_for_handle(source.handle)
        text = tokens.mask(text)
        text = strip_masked_tail(text)
        text = fit(text, tokens, max_chars)
    except Exception as exc:
        log_event(
            log,
            "error",
            "byline_extract",
            "byline pipeline failed",
            exc_info=True,
            platform=platform.value,
            error=str(exc),
        )
        return BylineResult(text="", platform=platform, outcome="error")

    if not text:
        log_event(log, "info", "byline_extract", "byline emptied by redaction", platform=platform.value)
        return BylineResult(text="", platform=platform, outcome="redacted_empty")

    log_event(log, "info", "byline_extract", "byline extracted", platform=platform.value, chars=len(text))
    return BylineResult(text=text, platform=platform, outcome="ok")


def get_byline(
    source_url: str,
    raw_markdown: str,
    *,
    max_chars: int = DEFAULT_BYLINE_MAX_CHARS,
) -> str:
    return extract_byline(source_url, raw_markdown, max_chars=max_chars).text
