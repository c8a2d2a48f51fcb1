from __future__ import annotations

import logging
from collections import abc
from dataclasses import dataclass, field
from typing import Collection, Dict, Iterable, List, Mapping, Optional

from ..constants import OPTIONAL_ORIGINS, OPTIONAL_PROFICIENCY_CATEGORIES
from ..rules import normalize_lookup, unique_in_order

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class OptionalAllocation:
    allowed: int = 0
    options: List[str] = field(default_factory=list)
    selected: List[str] = field(default_factory=list)


@dataclass(slots=True)
class OptionalCategory:
    """One category's per-origin allocations and the aggregate derived from them."""

    allowed: int = 0
    options: List[str] = field(default_factory=list)
    selected: List[str] = field(default_factory=list)
    origins: Dict[str, OptionalAllocation] = field(
        default_factory=lambda: {origin: OptionalAllocation() for origin in OPTIONAL_ORIGINS}
    )

    def recalculate(self) -> None:
        self.allowed = sum(self.origins[origin].allowed for origin in OPTIONAL_ORIGINS)
        self.options = unique_in_order(
            option for origin in OPTIONAL_ORIGINS for option in self.origins[origin].options
        )
        self.selected = unique_in_order(
            choice for origin in OPTIONAL_ORIGINS for choice in self.origins[origin].selected
        )


def normalize_origin(origin: Optional[str]) -> Optional[str]:
    key = normalize_lookup(origin)
    return key if key in OPTIONAL_ORIGINS else None


class OptionalProficiencyAllocator:
    """Bookkeeping for "pick N from this list" proficiency slots.

    Each category tracks a race, class and background allocation. The
    category-level ``allowed``/``options``/``selected`` are always derived
    from those three and are recomputed after every origin mutation.
    """

    def __init__(self, categories: Optional[Mapping[str, Mapping[str, object]]] = None) -> None:
        self._categories: Dict[str, OptionalCategory] = {
            category: OptionalCategory() for category in OPTIONAL_PROFICIENCY_CATEGORIES
        }
        for category, payload in (categories or {}).items():
            if not category or not isinstance(payload, abc.Mapping):
                continue
            entry = self._ensure(category)
            for origin in OPTIONAL_ORIGINS:
                raw = payload.get(origin)
                if isinstance(raw, abc.Mapping):
                    entry.origins[origin] = OptionalAllocation(
                        allowed=_as_count(raw.get("allowed")),
                        options=_as_names(raw.get("options")),
                        selected=_as_names(raw.get("selected")),
                    )
            entry.recalculate()

    # ------------------------------------------------------------------
    def configure(
        self,
        category: str,
        origin: str,
        allowed_count: int,
        candidate_options: Iterable[str],
    ) -> None:
        origin_key = normalize_origin(origin)
        if not category or origin_key is None:
            logger.warning("Cannot configure optional %r proficiencies for origin %r", category, origin)
            return
        entry = self._ensure(category)
        allocation = entry.origins[origin_key]
        allocation.allowed = _as_count(allowed_count)
        allocation.options = _as_names(candidate_options)
        entry.recalculate()

    def select(self, category: str, origin: str, name: str) -> bool:
        allocation = self._allocation(category, origin)
        if allocation is None or not name:
            logger.warning("No optional %r allocation for origin %r", category, origin)
            return False
        if name in allocation.selected:
            return False
        if len(allocation.selected) >= allocation.allowed:
            logger.warning("All optional %s choices for %s are already used", category, origin)
            return False
        if name not in allocation.options:
            logger.warning("%r is not an option for %s %s", name, origin, category)
            return False
        allocation.selected.append(name)
        self._categories[category].recalculate()
        return True

    def deselect(self, category: str, origin: str, name: str) -> bool:
        allocation = self._allocation(category, origin)
        if allocation is None or name not in allocation.selected:
            return False
        allocation.selected.remove(name)
        self._categories[category].recalculate()
        return True

    def clear(self, category: str, origin: str) -> List[str]:
        """Reset one origin to zero; returns the selections it held."""

        allocation = self._allocation(category, origin)
        if allocation is None:
            return []
        released = list(allocation.selected)
        self._categories[category].origins[normalize_origin(origin)] = OptionalAllocation()
        self._categories[category].recalculate()
        return released

    def reset_origin(self, origin: str) -> Dict[str, List[str]]:
        return {category: self.clear(category, origin) for category in self._categories}

    # ------------------------------------------------------------------
    def aggregate(self, category: str) -> OptionalAllocation:
        entry = self._categories.get(category)
        if entry is None:
            return OptionalAllocation()
        return OptionalAllocation(entry.allowed, list(entry.options), list(entry.selected))

    def allocation(self, category: str, origin: str) -> OptionalAllocation:
        allocation = self._allocation(category, origin)
        if allocation is None:
            return OptionalAllocation()
        return OptionalAllocation(allocation.allowed, list(allocation.options), list(allocation.selected))

    def available(self, category: str, origin: str, granted_elsewhere: Collection[str] = ()) -> List[str]:
        """Candidates still open for ``origin``: unselected and not granted by a fixed source."""

        allocation = self._allocation(category, origin)
        if allocation is None:
            return []
        fixed = {normalize_lookup(name) for name in granted_elsewhere}
        return [
            option
            for option in allocation.options
            if option not in allocation.selected and normalize_lookup(option) not in fixed
        ]

    def origin_holding(self, category: str, name: str, exclude: Optional[str] = None) -> List[str]:
        """Origins (other than ``exclude``) whose selections include ``name``."""

        entry = self._categories.get(category)
        if entry is None:
            return []
        target = normalize_lookup(name)
        return [
            origin
            for origin in OPTIONAL_ORIGINS
            if origin != exclude
            and any(normalize_lookup(choice) == target for choice in entry.origins[origin].selected)
        ]

    @property
    def categories(self) -> List[str]:
        return list(self._categories)

    def _ensure(self, category: str) -> OptionalCategory:
        if category not in self._categories:
            self._categories[category] = OptionalCategory()
        return self._categories[category]

    def _allocation(self, category: str, origin: str) -> Optional[OptionalAllocation]:
        entry = self._categories.get(category)
        origin_key = normalize_origin(origin)
        if entry is None or origin_key is None:
            return None
        return entry.origins[origin_key]


def _as_count(value: object) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


def _as_names(values: object) -> List[str]:
    if isinstance(values, str) or not isinstance(values, abc.Iterable):
        return []
    return unique_in_order(value for value in values if isinstance(value, str) and value)
