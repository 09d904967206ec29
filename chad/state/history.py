from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Literal

Role = Literal["system", "user", "assistant", "tool"]


@dataclass(frozen=True)
class ConversationEntry:
    role: Role
    content: str

    def as_message(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


class ConversationWindows:
    """Per-channel bounded log of recent messages, oldest dropped first."""

    def __init__(self, max_messages: int):
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1")
        self.max_messages = max_messages
        self._windows: dict[str, deque[ConversationEntry]] = {}

    def append(self, channel_id: str, entry: ConversationEntry) -> None:
        window = self._windows.get(channel_id)
        if window is None:
            window = self._windows[channel_id] = deque(maxlen=self.max_messages)
        window.append(entry)

    def snapshot(self, channel_id: str) -> list[dict[str, str]]:
        return [e.as_message() for e in self._windows.get(channel_id, ())]

    def __len__(self) -> int:
        return len(self._windows)
