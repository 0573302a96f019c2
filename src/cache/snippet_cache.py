# src/cache/snippet_cache.py — v2
"""Snippet cache: bounded LRU + TTL store serving exact and fuzzy lookups.

Exact entries are keyed by a hash of the literal prefix and hold a completion
for verbatim reuse. Fuzzy entries come from significant buffer edits, are
tagged with identifiers extracted from the surrounding lines, and are ranked
by tag overlap, edit similarity, frequency and recency.

The cache is the single owner of its CodeSnippet instances: the index is one
OrderedDict keyed by id whose order is LRU recency (oldest first). Every
mutation rewrites the full array to the storage backend.
"""

from __future__ import annotations

import logging
import re
import uuid
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Callable, Iterator

from pydantic import ValidationError

from tabautocomplete.cache.base_cache_store import BaseSnippetStorage
from tabautocomplete.cache.models import BufferChange, CacheStats, CodeSnippet, utcnow
from tabautocomplete.core import text

logger = logging.getLogger(__name__)

EXACT_CONTEXT_CHARS = 200
MIN_EDIT_CHARS = 10
DUPLICATE_THRESHOLD = 0.8

_JS_LANGUAGES = frozenset(
    {"javascript", "typescript", "javascriptreact", "typescriptreact"}
)
_JS_TAG_PATTERNS = (
    re.compile(r"function\s+([a-zA-Z0-9_]+)\s*\("),
    re.compile(r"class\s+([a-zA-Z0-9_]+)\s*"),
    re.compile(r"const\s+([a-zA-Z0-9_]+)\s*="),
    re.compile(r"let\s+([a-zA-Z0-9_]+)\s*="),
)
_PYTHON_TAG_PATTERNS = (
    re.compile(r"def\s+([a-zA-Z0-9_]+)\s*\("),
    re.compile(r"class\s+([a-zA-Z0-9_]+)\s*\(?"),
)
_IDENTIFIER_RE = re.compile(r"\b([a-zA-Z][a-zA-Z0-9_]{2,})\b")
_COMMON_KEYWORDS = frozenset({
    "function", "class", "const", "let", "var", "if", "else", "for", "while",
    "return", "import", "export", "from", "async", "await", "try", "catch",
    "switch", "case", "break", "default", "continue", "new", "this", "super",
    "extends", "implements", "interface", "typeof", "instanceof",
})


def extract_tags(context: str, language: str) -> list[str]:
    """Identifier tags for a block of code, in first-seen order."""
    if language in _JS_LANGUAGES:
        patterns = _JS_TAG_PATTERNS
    elif language == "python":
        patterns = _PYTHON_TAG_PATTERNS
    else:
        return _generic_tags(context)

    tags: dict[str, None] = {}
    for pattern in patterns:
        for match in pattern.finditer(context):
            tags.setdefault(match.group(1), None)
    return list(tags)


def _generic_tags(context: str) -> list[str]:
    tags: dict[str, None] = {}
    for match in _IDENTIFIER_RE.finditer(context):
        word = match.group(1)
        if len(word) > 3 and word.lower() not in _COMMON_KEYWORDS:
            tags.setdefault(word, None)
    return list(tags)


def relevance_score(
    snippet: CodeSnippet,
    current_tags: list[str],
    current_code: str,
    now: datetime,
) -> float:
    """Score a snippet against the code around the cursor.

    0.2 per matched tag, 0.3 x edit similarity, up to 0.3 for frequency and
    up to 0.2 for recency (decays to zero after ten days).
    """
    snippet_tags = set(snippet.tags)
    score = 0.2 * sum(1 for tag in current_tags if tag in snippet_tags)
    score += 0.3 * text.similarity(snippet.code, current_code)
    score += min(snippet.frequency / 10, 0.3)
    score += max(0.0, 0.2 - (snippet.age_hours(now) / 240) * 0.2)
    return score


class SnippetCache:
    """LRU + TTL snippet store with write-through persistence.

    Args:
        storage: Durable backend, or None for a purely in-memory cache.
        max_snippets: Capacity; least recently used entries are evicted first.
        retention_hours: Entries older than this are expired.
        enabled: When False every lookup misses and every write is a no-op.
        clock: Returns the current UTC time (injectable for tests).
    """

    similarity = staticmethod(text.similarity)

    def __init__(
        self,
        storage: BaseSnippetStorage | None = None,
        max_snippets: int = 1000,
        retention_hours: int = 24,
        enabled: bool = True,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if max_snippets < 1:
            raise ValueError("max_snippets must be >= 1")
        self._storage = storage
        self._max_snippets = max_snippets
        self._retention = timedelta(hours=retention_hours)
        self._retention_hours = retention_hours
        self._enabled = enabled
        self._clock = clock
        self._entries: OrderedDict[str, CodeSnippet] = OrderedDict()

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def max_snippets(self) -> int:
        return self._max_snippets

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, snippet_id: object) -> bool:
        return snippet_id in self._entries

    # --- Persistence ---

    async def load(self) -> int:
        """Replace in-memory state with the persisted array.

        Malformed records are dropped; expired entries are purged and the
        result trimmed to capacity. A storage fault leaves the cache empty.

        Returns:
            Number of snippets loaded.
        """
        self._entries.clear()
        if self._storage is None:
            return 0
        try:
            records = await self._storage.load()
        except Exception as e:
            logger.warning("Snippet cache load failed, starting empty: %s", e)
            return 0

        snippets: list[CodeSnippet] = []
        for record in records:
            try:
                snippets.append(CodeSnippet.model_validate(record))
            except ValidationError as e:
                logger.debug("Dropping malformed snippet record: %s", e)

        snippets.sort(key=lambda s: s.last_touched_at)
        for snippet in snippets:
            self._entries[snippet.id] = snippet
            self._entries.move_to_end(snippet.id)

        purged = self._purge_expired()
        evicted = self._evict_overflow()
        if purged or evicted or len(snippets) != len(records):
            await self._persist()

        logger.info(
            "Loaded %d snippets (%d expired, %d over capacity)",
            len(self._entries), purged, evicted,
        )
        return len(self._entries)

    async def close(self) -> None:
        if self._storage is not None:
            await self._storage.close()

    async def _persist(self) -> None:
        if self._storage is None:
            return
        records = [s.model_dump(mode="json") for s in self._entries.values()]
        try:
            await self._storage.save(records)
        except Exception as e:
            logger.warning("Snippet cache persist failed: %s", e)

    # --- Exact cache ---

    async def get_exact(self, prefix: str) -> str | None:
        """Cached completion for ``prefix``, or None on miss.

        Expired entries miss but stay in place until the next cleanup pass.
        """
        if not self._enabled:
            return None
        key = text.hash_prefix(prefix)
        snippet = self._entries.get(key)
        if snippet is None:
            return None
        now = self._clock()
        if snippet.is_expired(now, self._retention):
            logger.debug("Exact entry %s expired", key)
            return None
        snippet.last_touched_at = now
        self._entries.move_to_end(key)
        return snippet.code

    async def put_exact(self, prefix: str, completion: str) -> None:
        """Store ``completion`` under the hashed ``prefix``."""
        if not self._enabled or not completion.strip():
            return
        key = text.hash_prefix(prefix)
        now = self._clock()
        self._entries[key] = CodeSnippet(
            id=key,
            code=completion,
            language="unknown",
            created_at=now,
            context=prefix[-EXACT_CONTEXT_CHARS:],
            tags=[],
            frequency=1,
            last_touched_at=now,
        )
        self._entries.move_to_end(key)
        await self._after_mutation()

    # --- Fuzzy cache ---

    async def record_edit(self, change: BufferChange) -> CodeSnippet | None:
        """Cache a significant edit, merging it into a near-duplicate if any.

        Returns:
            A copy of the inserted or updated snippet, or None when ignored.
        """
        if not self._enabled or not change.is_significant:
            return None
        if len(change.text) < MIN_EDIT_CHARS:
            logger.debug("Edit too short to cache (%d chars)", len(change.text))
            return None

        context = change.context_window()
        tags = extract_tags(context, change.language)
        if not tags:
            logger.debug("No tags extracted, edit ignored")
            return None

        now = self._clock()
        existing = self._find_duplicate(change.text, change.language)
        if existing is not None:
            existing.frequency += 1
            existing.tags = list(dict.fromkeys([*existing.tags, *tags]))
            existing.created_at = now
            existing.last_touched_at = now
            self._entries.move_to_end(existing.id)
            snippet = existing
            logger.debug("Merged edit into %s (frequency=%d)", snippet.id, snippet.frequency)
        else:
            snippet = CodeSnippet(
                id=uuid.uuid4().hex,
                code=change.text,
                language=change.language,
                created_at=now,
                context=context,
                source_path=change.file_path,
                tags=tags,
                frequency=1,
                last_touched_at=now,
            )
            self._entries[snippet.id] = snippet
            logger.debug("Cached snippet %s, tags: %s", snippet.id, ", ".join(tags))

        await self._after_mutation()
        return snippet.model_copy(deep=True)

    def _find_duplicate(self, code: str, language: str) -> CodeSnippet | None:
        for snippet in self._entries.values():
            if snippet.language != language or text.is_exact_key(snippet.id):
                continue
            if text.similarity(snippet.code, code) > DUPLICATE_THRESHOLD:
                return snippet
        return None

    def find_relevant(
        self, current_code: str, language: str, max_results: int = 3
    ) -> Iterator[str]:
        """Yield up to ``max_results`` cached code bodies relevant to ``current_code``.

        Scoring happens on the first ``next()``; the generator is not
        restartable.
        """
        if not self._enabled or max_results < 1 or not self._entries:
            return
        current_tags = extract_tags(current_code, language)
        if not current_tags:
            return

        now = self._clock()
        scored = [
            (relevance_score(s, current_tags, current_code, now), s.code)
            for s in self._entries.values()
            if s.language == language and not s.is_expired(now, self._retention)
        ]
        ranked = sorted((item for item in scored if item[0] > 0), key=lambda item: -item[0])
        if ranked:
            logger.debug("Best relevance score: %.2f", ranked[0][0])
        for _, code in ranked[:max_results]:
            yield code

    # --- Maintenance ---

    async def clear(self) -> None:
        """Drop every entry and remove the persisted array."""
        self._entries.clear()
        if self._storage is not None:
            try:
                await self._storage.clear()
            except Exception as e:
                logger.warning("Snippet cache storage clear failed: %s", e)
        logger.info("Snippet cache cleared")

    async def cleanup_expired(self) -> int:
        """Purge expired entries; returns how many were removed."""
        purged = self._purge_expired()
        if purged:
            await self._persist()
        return purged

    def stats(self) -> CacheStats:
        now = self._clock()
        language_stats: dict[str, int] = {}
        expired = 0
        for snippet in self._entries.values():
            language_stats[snippet.language] = language_stats.get(snippet.language, 0) + 1
            if snippet.is_expired(now, self._retention):
                expired += 1
        return CacheStats(
            snippet_count=len(self._entries),
            language_stats=language_stats,
            expired_count=expired,
            max_snippets=self._max_snippets,
            retention_hours=self._retention_hours,
        )

    def snippets(self) -> list[CodeSnippet]:
        """Copies of every entry, least recently used first."""
        return [s.model_copy(deep=True) for s in self._entries.values()]

    async def _after_mutation(self) -> None:
        self._purge_expired()
        self._evict_overflow()
        await self._persist()

    def _purge_expired(self) -> int:
        now = self._clock()
        expired = [
            key for key, s in self._entries.items() if s.is_expired(now, self._retention)
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Purged %d expired snippets", len(expired))
        return len(expired)

    def _evict_overflow(self) -> int:
        evicted = 0
        while len(self._entries) > self._max_snippets:
            key, _ = self._entries.popitem(last=False)
            logger.debug("Evicted LRU snippet %s", key)
            evicted += 1
        return evicted
