"""Handle-aware redaction.

Creators' about text tends to repeat their own handle and contact details.
A handle like ``GamerDude123`` expands into a token set (the whole handle,
every 4-8 character window, and its camelCase/number segments); each token,
every email address and every URL is replaced by ``****``.

Tokens are kept longest-first so the alternation regex consumes
``gamerdude123`` before ``gamer`` and never leaves a dangling ``dude123``.
"""

from __future__ import annotations

from dataclasses import dataclass
import re

from streamrelay.constants import MASK
from streamrelay.platforms import handle_of
from streamrelay.pipeline.normalize import flatten

EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}")
URL_RE = re.compile(r"(?:https?://|www\.)\S+", re.IGNORECASE)
SEGMENT_RE = re.compile(r"[A-Z][a-z]+|[a-z]+|[A-Z]+(?![a-z])|\d+")
NON_ALNUM_RE = re.compile(r"[^a-z0-9]")

MIN_WINDOW = 4
MAX_WINDOW = 8

TAIL_NOISE_RE = re.compile(
    r"(?:\s*(?:[.,!?…~\-]|[:;=8xX][-']?[()\[\]DPpOo3/\\|]|<3|[:;](?=\s|$)))*\s*"
)
DANGLING_SEPARATORS = " \t-–—|:,;"


@dataclass(frozen=True, slots=True)
class RedactionTokens:
    tokens: tuple[str, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.tokens)

    @property
    def pattern(self) -> re.Pattern[str] | None:
        if not self.tokens:
            return None
        alternation = "|".join(re.escape(t) for t in self.tokens)
        return re.compile(rf"(?<![a-z0-9])(?:{alternation})(?![a-z0-9])", re.IGNORECASE)

    def mask(self, text: str) -> str:
        text = EMAIL_RE.sub(MASK, text or "")
        text = URL_RE.sub(MASK, text)
        pattern = self.pattern
        if pattern is not None:
            text = pattern.sub(MASK, text)
        return flatten(text)


def tokens_for_handle(handle: str) -> RedactionTokens:
    raw = handle or ""
    base = NON_ALNUM_RE.sub("", raw.lower())
    if not base:
        return RedactionTokens()

    found: list[str] = [base]
    upper = min(MAX_WINDOW, len(base))
    for size in range(MIN_WINDOW, upper + 1):
        for start in range(0, len(base) - size + 1):
            found.append(base[start:start + size])
    for segment in SEGMENT_RE.findall(raw):
        if len(segment) >= MIN_WINDOW:
            found.append(segment.lower())

    unique = list(dict.fromkeys(found))
    unique.sort(key=len, reverse=True)
    return RedactionTokens(tuple(unique))


def tokens_for_url(source_url: str) -> RedactionTokens:
    return tokens_for_handle(handle_of(source_url))


def redact(text: str, source_url: str) -> str:
    return tokens_for_url(source_url).mask(text)


def strip_masked_tail(text: str) -> str:
    """Drop a trailing ``****`` left behind when the last token was masked."""
    current = text or ""
    while True:
        idx = current.rfind(MASK)
        if idx == -1:
            break
        start = idx
        while start > 0 and current[start - 1] == "*":
            start -= 1
        if not TAIL_NOISE_RE.fullmatch(current[idx + len(MASK):]):
            break
        current = current[:start].rstrip(DANGLING_SEPARATORS)
    return current
