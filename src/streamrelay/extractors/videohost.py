"""Video-host "About" tab: the block under the ``Description`` heading."""

from __future__ import annotations

import re

from streamrelay.extractors.base import ScanState, heading_level
from streamrelay.extractors.generic import extract_generic
from streamrelay.pipeline.clean_text import clean_fragment, has_alnum, is_bracket_only, is_rule
from streamrelay.platforms import SourceUrl

DESCRIPTION_RE = re.compile(
    r"^(?:#{1,6}\s*)?(?:\*\*|__)?description(?:\*\*|__)?\s*:?(?:\s+(.*))?$",
    re.IGNORECASE,
)
LINKS_RE = re.compile(r"^(?:#{1,6}\s*)?(?:\*\*|__)?links(?:\*\*|__)?\s*:?\s*$", re.IGNORECASE)
STOP_RE = re.compile(r"^\W*(?:more info|sign in|log in)\b", re.IGNORECASE)
COUNT_RE = re.compile(r"[\d.,]+\s*[KMB]?\s*(?:subscribers?|views?|videos?)\b", re.IGNORECASE)
LEADING_COUNT_RE = re.compile(r"^\W*" + COUNT_RE.pattern, re.IGNORECASE)
META_PREFIX_RE = re.compile(r"^\W*(?:joined\b|share channel\b)", re.IGNORECASE)
BULLET_SEPARATORS = ("•", "·", "‧")

COUNTRIES = {
    "argentina", "australia", "austria", "belgium", "brazil", "canada", "chile",
    "china", "colombia", "czechia", "denmark", "egypt", "finland", "france",
    "germany", "greece", "hong kong", "india", "indonesia", "ireland", "israel",
    "italy", "japan", "kenya", "malaysia", "mexico", "morocco", "netherlands",
    "new zealand", "nigeria", "norway", "pakistan", "peru", "philippines",
    "poland", "portugal", "romania", "russia", "saudi arabia", "singapore",
    "south africa", "south korea", "spain", "sweden", "switzerland", "taiwan",
    "thailand", "turkey", "ukraine", "united arab emirates", "united kingdom",
    "united states", "vietnam",
}


def is_stop_line(line: str) -> bool:
    return bool(STOP_RE.match(line))


def is_metadata_line(line: str) -> bool:
    if LEADING_COUNT_RE.match(line) or META_PREFIX_RE.match(line):
        return True
    if any(sep in line for sep in BULLET_SEPARATORS) and COUNT_RE.search(line):
        return True
    bare = re.sub(r"[^\w\s]", "", line).strip().lower()
    return bare in COUNTRIES


def _ends_block(line: str) -> bool:
    if LINKS_RE.match(line):
        return True
    if heading_level(line) >= 2:
        return True
    return is_stop_line(line) or is_metadata_line(line)


def _keep_line(line: str) -> bool:
    if not line or is_rule(line) or is_bracket_only(line):
        return False
    return not (is_stop_line(line) or is_metadata_line(line))


def extract_video_about(markdown: str, source: SourceUrl) -> str:
    state = ScanState.SEEKING
    fragments: list[str] = []

    for raw_line in markdown.split("\n"):
        line = raw_line.strip()
        if state is ScanState.SEEKING:
            match = DESCRIPTION_RE.match(line)
            if match is None:
                continue
            state = ScanState.IN_BLOCK
            inline = (match.group(1) or "").strip()
            if _keep_line(inline):
                fragments.append(inline)
        elif state is ScanState.IN_BLOCK:
            if _ends_block(line):
                state = ScanState.DONE
                break
            if _keep_line(line):
                fragments.append(line)

    if state is ScanState.SEEKING:
        # No Description heading at all: the page is not an About tab render.
        return extract_generic(markdown, source)

    candidate = clean_fragment(" ".join(fragments))
    if not has_alnum(candidate):
        return ""
    return candidate
