"""Variant cache bound to a feature session."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING

from variantlab.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from variantlab.session.models import TokenUsage

log = get_logger(__name__)


class VariantCache(Mapping[str, str]):
    """Cache key -> generated text, writing through to a session.

    Wraps the session's own ``cache`` dict and token counters, so saving the
    session captures every write. Protected keys (source texts and anchors)
    are never removed.

    Args:
        entries: The session's cache dict, mutated in place.
        token_usage: The session's token counters.
        protected: Keys that ``discard``/``clear_derived`` never remove.
        on_change: Called after every mutation (typically persists the session).
    """

    def __init__(
        self,
        entries: dict[str, str],
        token_usage: TokenUsage,
        *,
        protected: Iterable[str] = (),
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self._entries = entries
        self.token_usage = token_usage
        self.protected = frozenset(protected)
        self._on_change = on_change

    def __getitem__(self, key: str) -> str:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def put(
        self,
        key: str,
        text: str,
        input_tokens: int | None = None,
        output_tokens: int | None = None,
    ) -> None:
        """Store ``text`` under ``key`` and add its token usage."""
        self._entries[key] = text
        self.token_usage.add(input_tokens, output_tokens)
        self._changed()

    def discard(self, keys: Iterable[str]) -> list[str]:
        """Remove ``keys`` (skipping protected ones), returning those removed."""
        removed = []
        for key in keys:
            if key in self.protected or key not in self._entries:
                continue
            del self._entries[key]
            removed.append(key)
        if removed:
            log.debug("cache_invalidated", keys=removed)
            self._changed()
        return removed

    def clear_derived(self) -> list[str]:
        """Remove every unprotected entry."""
        return self.discard(list(self._entries))

    def derived_keys(self) -> list[str]:
        return [k for k in self._entries if k not in self.protected]

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()
