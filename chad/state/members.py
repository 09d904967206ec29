"""
chad/state/members.py

Display-name -> user ID lookup used to turn `@name` tokens in generated text
into real Discord mentions.

Every membership event goes through upsert / replace / remove so the two
indexes (name -> id, id -> names) never drift apart.
"""

from __future__ import annotations

import re
from typing import Iterable

MENTION_PATTERN = re.compile(r"@(\w+)")


class MemberDirectory:
    def __init__(self) -> None:
        self._ids: dict[str, str] = {}           # name -> user_id
        self._aliases: dict[str, set[str]] = {}  # user_id -> names

    def upsert(self, names: Iterable[str | None], user_id: str) -> None:
        for name in names:
            if not name:
                continue
            previous = self._ids.get(name)
            if previous is not None and previous != user_id:
                self._discard_alias(previous, name)
            self._ids[name] = user_id
            self._aliases.setdefault(user_id, set()).add(name)

    def remove(self, names: Iterable[str | None], user_id: str | None = None) -> None:
        """Drop `names`; with `user_id`, only the ones that user still owns."""
        for name in names:
            if not name:
                continue
            owner = self._ids.get(name)
            if owner is None or (user_id is not None and owner != user_id):
                continue
            del self._ids[name]
            self._discard_alias(owner, name)

    def remove_user(self, user_id: str) -> None:
        """Forget every alias known for `user_id`."""
        for name in self._aliases.pop(user_id, set()):
            if self._ids.get(name) == user_id:
                del self._ids[name]

    def replace(self, user_id: str, names: Iterable[str | None]) -> None:
        self.remove_user(user_id)
        self.upsert(names, user_id)

    def lookup(self, name: str) -> str | None:
        return self._ids.get(name)

    def aliases(self, user_id: str) -> set[str]:
        return set(self._aliases.get(user_id, ()))

    def render_mentions(self, text: str) -> str:
        """Rewrite `@name` to `<@id>` for known names; unknown tokens pass through."""

        def _sub(match: re.Match) -> str:
            user_id = self._ids.get(match.group(1))
            return f"<@{user_id}>" if user_id else match.group(0)

        return MENTION_PATTERN.sub(_sub, text)

    def _discard_alias(self, user_id: str, name: str) -> None:
        names = self._aliases.get(user_id)
        if names is None:
            return
        names.discard(name)
        if not names:
            del self._aliases[user_id]

    def __len__(self) -> int:
        return len(self._ids)
