from __future__ import annotations

import logging
from collections import abc
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from ..constants import IMPORTED_SOURCE, PROFICIENCY_CATEGORIES
from ..rules import normalize_lookup

logger = logging.getLogger(__name__)


class ProficiencyLedger:
    """Granted proficiencies per category with the sources that granted them.

    A name is visible in ``granted(category)`` exactly while at least one
    source backs it. Matching is case-insensitive; the casing of the first
    grant is kept for display.
    """

    def __init__(
        self,
        granted: Optional[Mapping[str, Iterable[str]]] = None,
        sources: Optional[Mapping[str, Mapping[str, Iterable[str]]]] = None,
    ) -> None:
        self._granted: Dict[str, List[str]] = {category: [] for category in PROFICIENCY_CATEGORIES}
        self._sources: Dict[str, Dict[str, Set[str]]] = {category: {} for category in PROFICIENCY_CATEGORIES}

        for category in PROFICIENCY_CATEGORIES:
            provenance = (sources or {}).get(category) or {}
            if not isinstance(provenance, abc.Mapping):
                provenance = {}
            known = {normalize_lookup(name): source_list for name, source_list in provenance.items()}
            names = (granted or {}).get(category) or []
            if isinstance(names, str):
                names = [names]
            # Visible order wins; provenance-only names are appended after.
            for name in names:
                if not isinstance(name, str) or not name:
                    continue
                for source in _as_source_list(known.get(normalize_lookup(name))) or [IMPORTED_SOURCE]:
                    self.add(category, name, source)
            for name, source_list in provenance.items():
                for source in _as_source_list(source_list):
                    self.add(category, name, source)

    # ------------------------------------------------------------------
    def add(self, category: str, name: str, source: str) -> bool:
        """Grant ``name`` from ``source``; True only when it becomes newly visible."""

        if not category or not name or not source:
            logger.warning(
                "Invalid proficiency grant (category=%r, name=%r, source=%r)", category, name, source
            )
            return False
        if category not in self._granted:
            logger.warning("Unknown proficiency category %r", category)
            return False

        existing = self._find(category, name)
        is_new = existing is None
        if is_new:
            self._granted[category].append(name)
            existing = name
        self._sources[category].setdefault(existing, set()).add(source)
        return is_new

    def remove_by_source(self, source: str) -> Dict[str, List[str]]:
        """Withdraw ``source`` everywhere; report the names that lost their last source."""

        removed: Dict[str, List[str]] = {category: [] for category in self._granted}
        if not source:
            logger.warning("remove_by_source called without a source")
            return removed
        for category, provenance in self._sources.items():
            for name in list(provenance):
                sources = provenance[name]
                if source not in sources:
                    continue
                sources.discard(source)
                if not sources:
                    del provenance[name]
                    self._granted[category].remove(name)
                    removed[category].append(name)
        return removed

    def remove(self, category: str, name: str, source: str) -> bool:
        """Withdraw one source from one name; True if the name is gone afterwards."""

        if category not in self._sources:
            return False
        existing = self._find(category, name)
        if existing is None:
            return False
        sources = self._sources[category].get(existing)
        if sources is None:
            return False
        sources.discard(source)
        if sources:
            return False
        del self._sources[category][existing]
        self._granted[category].remove(existing)
        return True

    # ------------------------------------------------------------------
    def has(self, category: str, name: str) -> bool:
        return self._find(category, name) is not None

    def granted(self, category: str) -> List[str]:
        return list(self._granted.get(category, []))

    def sources_for(self, category: str, name: str) -> Set[str]:
        existing = self._find(category, name)
        if existing is None:
            return set()
        return set(self._sources[category].get(existing, set()))

    def with_sources(self, category: str) -> List[Tuple[str, Set[str]]]:
        return [(name, self.sources_for(category, name)) for name in self._granted.get(category, [])]

    @property
    def categories(self) -> List[str]:
        return list(self._granted)

    def _find(self, category: str, name: str) -> Optional[str]:
        target = normalize_lookup(name)
        if not target:
            return None
        for existing in self._granted.get(category, []):
            if normalize_lookup(existing) == target:
                return existing
        return None


def _as_source_list(value: object) -> List[str]:
    if isinstance(value, str):
        return [value] if value else []
    if isinstance(value, (list, tuple, set, frozenset)):
        return [source for source in value if isinstance(source, str) and source]
    return []
