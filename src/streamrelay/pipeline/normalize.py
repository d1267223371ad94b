from __future__ import annotations

import re

MIRROR_MARKER_RE = re.compile(r"^[ \t]*markdown content:", re.IGNORECASE | re.MULTILINE)
HSPACE_RE = re.compile(r"[ \t\f\v\u00a0]+")
TRAILING_SPACE_RE = re.compile(r" +\n")
BLANK_RUN_RE = re.compile(r"\n{3,}")
WHITESPACE_RE = re.compile(r"\s+")
# '#' and '*' carry heading level and mask meaning, leave them alone.
REPEATED_RUN_RE = re.compile(r"([^\w\s#*])\1{3,}")


def strip_mirror_preamble(raw: str) -> str:
    match = MIRROR_MARKER_RE.search(raw)
    if match is None:
        return raw
    return raw[match.end():]


def normalize(raw: str) -> str:
    text = strip_mirror_preamble(raw or "")
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = HSPACE_RE.sub(" ", text)
    text = TRAILING_SPACE_RE.sub("\n", text)
    text = BLANK_RUN_RE.sub("\n\n", text)
    return text.strip()


def flatten(text: str) -> str:
    return WHITESPACE_RE.sub(" ", text or "").strip()


def collapse_repeated_runs(text: str) -> str:
    return REPEATED_RUN_RE.sub(r"\1\1\1", text or "")
