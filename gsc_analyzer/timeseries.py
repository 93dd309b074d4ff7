"""Idempotent, newest-first storage of week sections.

A TimeSeriesUpsertStore models one persisted table: an ordered list of
sections, each labeled by a week and holding a payload (a ranking row-block
or a URL-average column). Week labels are matched under
normalize_for_comparison(), never by literal text, so the same week written
as "2025/10/06 - 2025/10/12" and "2025-10-06 - 2025-10-12" occupies a single
section.

Ordering is newest first. A week that is not newer than the newest existing
section is appended at the tail as historical back-fill and never reorders
newer sections, so back-filled sections are the only place the start dates
may increase going down the list. Labels that cannot be parsed to a date
are always tail-appended and ignored when finding the newest section.
"""

import logging
from datetime import date
from typing import Any, Iterable, Iterator

from .exceptions import MergeConflict, SectionOrderViolation
from .models import Section, UpsertAction, UpsertResult, WeeklyKey
from .weeks import normalize_for_comparison, range_for_key

logger = logging.getLogger(__name__)


def _key_text(key) -> str:
    if isinstance(key, WeeklyKey):
        return key.label
    return str(key).strip()


class TimeSeriesUpsertStore:
    """Ordered week sections with a normalized-key index."""

    def __init__(self):
        self._sections: list[Section] = []
        self._index: dict[str, int] = {}
        # Position of the first back-filled section; None means none known.
        self._backfill_start: int | None = None

    @classmethod
    def from_sections(
        cls,
        sections: Iterable[Section],
        backfill_start: int | None = None,
    ) -> "TimeSeriesUpsertStore":
        """Load persisted sections in their stored order.

        Args:
            sections: Sections as stored, newest first
            backfill_start: Position of the first back-filled section, if known.
                Without it every section is expected in newest-first order.

        Raises:
            MergeConflict: If two sections share a normalized key.
        """
        store = cls()
        store._sections = list(sections)
        store._backfill_start = backfill_start
        store._reindex()
        return store

    def _reindex(self) -> None:
        index: dict[str, int] = {}
        for position, section in enumerate(self._sections):
            norm = normalize_for_comparison(section.key)
            if norm in index:
                raise MergeConflict(section.key, [index[norm], position])
            index[norm] = position
        self._index = index

    def _scan(self, norm: str) -> list[int]:
        """Positions of every section matching a normalized key."""
        return [
            position
            for position, section in enumerate(self._sections)
            if normalize_for_comparison(section.key) == norm
        ]

    @staticmethod
    def _start_of(key: str) -> date | None:
        parsed = range_for_key(key)
        return parsed[0] if parsed else None

    def _newest_start(self) -> date | None:
        starts = [self._start_of(s.key) for s in self._sections]
        starts = [s for s in starts if s is not None]
        return max(starts) if starts else None

    def _replace(self, position: int, key: str, payload: Any) -> UpsertResult:
        # Single assignment: readers see either the old or the new section.
        # The relabeled key normalizes equal, so the index stays valid.
        self._sections[position] = Section(key=key, payload=payload)
        logger.debug("Replaced section %s at %d", key, position)
        return UpsertResult(UpsertAction.REPLACED, position, key)

    def upsert(self, key, payload: Any) -> UpsertResult:
        """Insert or replace the section for a week.

        Args:
            key: WeeklyKey or week label
            payload: Section data

        Returns:
            UpsertResult describing where the section ended up

        Raises:
            MergeConflict: If the store already holds duplicates of the key.
        """
        key = _key_text(key)
        norm = normalize_for_comparison(key)

        # The index covers every section and refuses duplicates when built.
        position = self._index.get(norm)
        if position is not None:
            return self._replace(position, key, payload)

        start = self._start_of(key)
        newest = self._newest_start()

        if start is not None and (newest is None or start >= newest):
            # Recheck before growing the front in case the list changed.
            late_matches = self._scan(norm)
            if len(late_matches) > 1:
                raise MergeConflict(key, late_matches)
            if late_matches:
                return self._replace(late_matches[0], key, payload)

            self._sections.insert(0, Section(key=key, payload=payload))
            if self._backfill_start is not None:
                self._backfill_start += 1
            self._reindex()
            logger.debug("Inserted section %s at front", key)
            return UpsertResult(UpsertAction.INSERTED_FRONT, 0, key)

        if start is None:
            logger.warning("Week label %r has no parseable date, appending at tail", key)
        self._sections.append(Section(key=key, payload=payload))
        self._reindex()
        position = len(self._sections) - 1
        if self._backfill_start is None:
            self._backfill_start = position
        logger.debug("Appended section %s at %d", key, position)
        return UpsertResult(UpsertAction.APPENDED_TAIL, position, key)

    def get(self, key) -> Section | None:
        """Section for a week under normalized matching, if any."""
        position = self._index.get(normalize_for_comparison(_key_text(key)))
        return None if position is None else self._sections[position]

    def position_of(self, key) -> int | None:
        return self._index.get(normalize_for_comparison(_key_text(key)))

    def list_sections(self) -> list[Section]:
        """Sections newest first (back-filled sections trail)."""
        return list(self._sections)

    def keys(self) -> list[str]:
        return [s.key for s in self._sections]

    def check_invariants(self) -> None:
        """Verify the store before it is persisted.

        Raises:
            MergeConflict: If any normalized key occurs twice.
            SectionOrderViolation: If a parseable section ahead of the
                back-filled region is newer than the one before it.
        """
        seen: dict[str, int] = {}
        for position, section in enumerate(self._sections):
            norm = normalize_for_comparison(section.key)
            if norm in seen:
                raise MergeConflict(section.key, [seen[norm], position])
            seen[norm] = position

        front = self._sections[:self._backfill_start]
        previous = None
        for position, section in enumerate(front):
            start = self._start_of(section.key)
            if start is None:
                continue
            if previous is not None and start > previous:
                raise SectionOrderViolation(section.key, position)
            previous = start

    def __len__(self) -> int:
        return len(self._sections)

    def __contains__(self, key) -> bool:
        return self.position_of(key) is not None

    def __iter__(self) -> Iterator[Section]:
        return iter(self._sections)
