"""Fallback extractor: score blank-line separated paragraphs, keep the best."""

from __future__ import annotations

import re

from streamrelay.pipeline.clean_text import clean_fragment
from streamrelay.platforms import SourceUrl

PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")

NAV_WORDS = {
    "home", "videos", "shorts", "live", "playlists", "community", "channels",
    "store", "members", "about", "description", "search", "subscriptions",
    "popular", "stats", "links", "details", "location", "joined", "business",
    "email", "contact", "creator", "more",
}
BOILERPLATE_RE = re.compile(
    r"cookie|consent|privacy|policy|analytics|partners|third-party|marketing|targeting",
    re.IGNORECASE,
)
PERSONABLE_RE = re.compile(
    r"\b(?:i|my|we|channel|subscribe|videos?|stream(?:ing)?|gaming|variety)\b",
    re.IGNORECASE,
)
SENTENCE_END_RE = re.compile(r"[.!?][\"'”’)]?$")

LENGTH_BONUS = 60
PUNCTUATION_BONUS = 10
PERSONABLE_BONUS = 20
MIN_GOOD_LENGTH = 40
MAX_GOOD_LENGTH = 400


def is_nav_line(line: str) -> bool:
    return clean_fragment(line).strip("#*_ ").lower() in NAV_WORDS


def score_paragraph(paragraph: str) -> int:
    score = 0
    if MIN_GOOD_LENGTH <= len(paragraph) <= MAX_GOOD_LENGTH:
        score += LENGTH_BONUS
    if SENTENCE_END_RE.search(paragraph):
        score += PUNCTUATION_BONUS
    if PERSONABLE_RE.search(paragraph):
        score += PERSONABLE_BONUS
    return score


def candidate_paragraphs(markdown: str) -> list[str]:
    out: list[str] = []
    for block in PARAGRAPH_SPLIT_RE.split(markdown or ""):
        lines = [line for line in block.split("\n") if line.strip() and not is_nav_line(line)]
        paragraph = clean_fragment(" ".join(lines))
        if not paragraph or BOILERPLATE_RE.search(paragraph):
            continue
        out.append(paragraph)
    return out


def extract_generic(markdown: str, source: SourceUrl) -> str:
    best = ""
    best_score = -1
    for paragraph in candidate_paragraphs(markdown):
        score = score_paragraph(paragraph)
        if score > best_score:
            best, best_score = paragraph, score
    return best
