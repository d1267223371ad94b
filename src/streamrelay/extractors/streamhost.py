"""Streaming-host "About" panel: the first real line after the follower count."""

from __future__ import annotations

import re

from streamrelay.extractors.base import ScanState, heading_level, heading_text
from streamrelay.pipeline.clean_text import clean_fragment, is_decorative, strip_separators
from streamrelay.platforms import SourceUrl

ABOUT_RE = re.compile(r"^about\b", re.IGNORECASE)
FOLLOWERS_RE = re.compile(r"^\s*\d+(?:[,.]\d+)*\s*[KMB]?\s+followers\b", re.IGNORECASE)
PANEL_IMAGE_MARKER = "[!["
SPAN_END_LEVEL = 3


def is_about_heading(line: str) -> bool:
    return heading_level(line) > 0 and bool(ABOUT_RE.match(heading_text(line)))


def cleanup_remaining(lines: list[str]) -> str:
    kept = [line for line in lines if line.strip() and not is_decorative(line)]
    return clean_fragment(strip_separators(" ".join(kept)))


def extract_stream_about(markdown: str, source: SourceUrl) -> str:
    lines = markdown.split("\n")
    about_idx = next((i for i, line in enumerate(lines) if is_about_heading(line)), None)
    if about_idx is None:
        return cleanup_remaining(lines)

    follower_idx = next(
        (i for i in range(about_idx + 1, len(lines)) if FOLLOWERS_RE.match(lines[i])),
        None,
    )
    if follower_idx is None:
        return cleanup_remaining(lines[about_idx + 1:])

    span: list[str] = []
    state = ScanState.IN_BLOCK
    for line in lines[follower_idx + 1:]:
        if heading_level(line) == SPAN_END_LEVEL:
            state = ScanState.DONE
        else:
            cut = line.find(PANEL_IMAGE_MARKER)
            if cut != -1:
                span.append(line[:cut])
                state = ScanState.DONE
            else:
                span.append(line)
        if state is ScanState.DONE:
            break

    for line in span:
        cleaned = clean_fragment(line)
        if cleaned and not is_decorative(cleaned):
            return cleaned
    return ""
