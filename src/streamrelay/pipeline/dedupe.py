from __future__ import annotations

import re

LEADING_PHRASE_RE = re.compile(r"^(.{8,160}?)(?:\s*\1)+", re.IGNORECASE | re.DOTALL)
SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+|(?<=[.!?][\"'”’])\s+")

HEAD_MIN_LENGTH = 30
HEAD_MAX_SPAN = 40
HEAD_MIN_SPAN = 20


def collapse_leading_phrase(text: str) -> str:
    match = LEADING_PHRASE_RE.match(text or "")
    if match is None:
        return text
    return (match.group(1) + text[match.end():]).strip()


def dedupe_sentences(text: str) -> str:
    sentences = [s.strip() for s in SENTENCE_SPLIT_RE.split(text or "") if s.strip()]
    kept: list[str] = []
    for sentence in sentences:
        if kept and kept[-1].casefold() == sentence.casefold():
            continue
        kept.append(sentence)
    return " ".join(kept)


def collapse_head_duplication(text: str) -> str:
    current = text or ""
    changed = True
    while changed and len(current) >= HEAD_MIN_LENGTH:
        changed = False
        for span in range(HEAD_MAX_SPAN, HEAD_MIN_SPAN - 1, -1):
            if len(current) < span * 2:
                continue
            if current[:span] == current[span:span * 2]:
                current = current[:span] + current[span * 2:]
                changed = True
                break
    return current


def dedupe_text(text: str) -> str:
    text = collapse_leading_phrase(text)
    text = dedupe_sentences(text)
    return collapse_head_duplication(text)
