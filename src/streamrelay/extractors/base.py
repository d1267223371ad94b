from __future__ import annotations

from enum import Enum
import re
from typing import Protocol

from streamrelay.platforms import SourceUrl

HEADING_RE = re.compile(r"^(#{1,6})(?:\s+|$)(.*?)\s*#*\s*$")


class ScanState(Enum):
    SEEKING = "seeking-start"
    IN_BLOCK = "in-block"
    DONE = "done"


class Extractor(Protocol):
    def __call__(self, markdown: str, source: SourceUrl) -> str: ...


def heading_level(line: str) -> int:
    match = HEADING_RE.match(line.strip())
    if match is None:
        return 0
    return len(match.group(1))


def heading_text(line: str) -> str:
    match = HEADING_RE.match(line.strip())
    if match is None:
        return ""
    return match.group(2)
