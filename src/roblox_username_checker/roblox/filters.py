"""Client-side content pre-filter.

A pre-filter decides, before any network call, that a username would be
rejected by moderation. The word list is configuration; the default is
empty, which disables filtering.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol


class ContentFilter(Protocol):
    """Callable returning True if the username must be reported as filtered."""

    def __call__(self, username: str) -> bool: ...


class WordListFilter:
    """Case-insensitive substring match against a list of blocked words.

    Usage:
        blocked = WordListFilter(["admin", "moderator"])
        blocked("TheAdmin42")  # True
    """

    def __init__(self, words: Iterable[str]) -> None:
        self._words = tuple(w.lower() for w in words if w.strip())

    @property
    def words(self) -> tuple[str, ...]:
        """Normalized blocked words."""
        return self._words

    def __bool__(self) -> bool:
        return bool(self._words)

    def __call__(self, username: str) -> bool:
        lowered = username.lower()
        return any(word in lowered for word in self._words)
