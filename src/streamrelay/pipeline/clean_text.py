from __future__ import annotations

import re

from streamrelay.pipeline.normalize import collapse_repeated_runs, flatten

IMAGE_RE = re.compile(r"!\[[^\]]*\]\([^)]*\)")
LINK_RE = re.compile(r"\[([^\]]*)\]\([^)]*\)")
WRAPPED_URL_RE = re.compile(r"[\[(<]\s*(?:https?://|www\.)[^\])>\s]*\s*[\])>]")
URL_RE = re.compile(r"(?:https?://|www\.)\S+", re.IGNORECASE)
BRACKET_RE = re.compile(r"[\[\]]")
EMPTY_PARENS_RE = re.compile(r"\(\s*\)")
DECORATIVE_RE = re.compile(r"^[\s\-–—•·*_|=~]+$")
INLINE_SEPARATOR_RE = re.compile(r"(?<!\S)[\-–—•·*_|=~]{2,}(?!\S)")
RULE_RE = re.compile(r"^\s*(?:[-*_=]\s*){3,}$")
BRACKET_ONLY_RE = re.compile(r"^\s*(?:\[[^\]]*\](?:\([^)]*\))?\s*)+$|^\s*[\[\]()]+\s*$")
ALNUM_RE = re.compile(r"[^\W_]")


def strip_links(text: str) -> str:
    text = IMAGE_RE.sub(" ", text or "")
    text = LINK_RE.sub(r"\1", text)
    text = WRAPPED_URL_RE.sub(" ", text)
    text = URL_RE.sub(" ", text)
    return EMPTY_PARENS_RE.sub(" ", text)


def strip_brackets(text: str) -> str:
    return BRACKET_RE.sub("", text or "")


def is_decorative(line: str) -> bool:
    return bool(DECORATIVE_RE.match(line or ""))


def is_rule(line: str) -> bool:
    return bool(RULE_RE.match(line or ""))


def is_bracket_only(line: str) -> bool:
    return bool(line.strip()) and bool(BRACKET_ONLY_RE.match(line))


def has_alnum(text: str) -> bool:
    return bool(ALNUM_RE.search(text or ""))


def clean_fragment(text: str) -> str:
    """Links, brackets and repeated punctuation out, one line in."""
    text = strip_links(text)
    text = strip_brackets(text)
    text = collapse_repeated_runs(text)
    return flatten(text)


def strip_separators(text: str) -> str:
    return INLINE_SEPARATOR_RE.sub(" ", text or "")
