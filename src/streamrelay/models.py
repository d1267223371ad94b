from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal

BylineOutcome = Literal["ok", "no_candidate", "redacted_empty", "error"]


class PlatformKind(str, Enum):
    VIDEO_HOST = "video_host"
    STREAM_HOST = "stream_host"
    GENERIC = "generic"


@dataclass(frozen=True, slots=True)
class BylineResult:
    text: str
    platform: PlatformKind
    outcome: BylineOutcome


@dataclass(slots=True)
class ChatMessage:
    comment: str
    user_id: str
    nickname: str

    def to_payload(self) -> dict[str, str]:
        return {"comment": self.comment, "userId": self.user_id, "nickname": self.nickname}


@dataclass(slots=True)
class LiveEvent:
    kind: Literal["chat", "disconnected", "error", "streamEnd"]
    chat: ChatMessage | None = None
    error: str = ""
