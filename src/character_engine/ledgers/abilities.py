from __future__ import annotations

import logging
from collections import abc
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional

from ..constants import (
    ABILITY_ABBREVIATIONS,
    ABILITY_SCORES,
    DEFAULT_ABILITY_SCORE,
    MAX_ABILITY_SCORE,
    MIN_ABILITY_SCORE,
)
from .. import rules

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AbilityBonus:
    value: int
    source: str


def normalize_ability(ability: Optional[str]) -> Optional[str]:
    """Map "STR", "str" or "Strength" onto the canonical "strength" key."""

    if not ability:
        return None
    key = str(ability).strip().lower()
    key = ABILITY_ABBREVIATIONS.get(key, key)
    if key not in ABILITY_SCORES:
        return None
    return key


class AbilityScoreTracker:
    """Base ability scores plus a per-ability ledger of sourced bonuses.

    A ledger never holds two bonuses from the same source: adding again from
    a source that already contributed overwrites its value in place.
    """

    def __init__(
        self,
        scores: Optional[Mapping[str, int]] = None,
        bonuses: Optional[Mapping[str, Iterable[object]]] = None,
    ) -> None:
        self.scores: Dict[str, int] = {key: DEFAULT_ABILITY_SCORE for key in ABILITY_SCORES}
        self.bonuses: Dict[str, List[AbilityBonus]] = {key: [] for key in ABILITY_SCORES}

        for ability, value in (scores or {}).items():
            key = normalize_ability(ability)
            if key is None:
                continue
            try:
                self.scores[key] = int(value)
            except (TypeError, ValueError):
                logger.warning("Ignoring non-numeric %s score %r", key, value)

        for ability, entries in (bonuses or {}).items():
            key = normalize_ability(ability)
            if key is None or not isinstance(entries, (list, tuple)):
                continue
            for entry in entries:
                if isinstance(entry, AbilityBonus):
                    value, source = entry.value, entry.source
                elif isinstance(entry, abc.Mapping):
                    value, source = entry.get("value"), entry.get("source")
                else:
                    continue
                if not isinstance(source, str):
                    continue
                try:
                    self._upsert(key, int(value), source)
                except (TypeError, ValueError):
                    logger.warning("Ignoring malformed %s bonus %r", key, entry)

    # ------------------------------------------------------------------
    def get_score(self, ability: str) -> int:
        key = normalize_ability(ability)
        if key is None:
            return 0
        return self.scores[key] + self.total_bonus(key)

    def get_modifier(self, ability: str) -> int:
        return rules.ability_modifier(self.get_score(ability))

    def total_bonus(self, ability: str) -> int:
        key = normalize_ability(ability)
        if key is None:
            return 0
        return sum(bonus.value for bonus in self.bonuses[key])

    def bonuses_for(self, ability: str) -> List[AbilityBonus]:
        key = normalize_ability(ability)
        if key is None:
            return []
        return [AbilityBonus(bonus.value, bonus.source) for bonus in self.bonuses[key]]

    # ------------------------------------------------------------------
    def set_base_score(self, ability: str, value: int) -> bool:
        key = normalize_ability(ability)
        if key is None:
            logger.warning("Cannot set base score for unknown ability %r", ability)
            return False
        try:
            score = int(value)
        except (TypeError, ValueError):
            logger.warning("Ignoring non-numeric %s score %r", key, value)
            return False
        self.scores[key] = max(MIN_ABILITY_SCORE, min(MAX_ABILITY_SCORE, score))
        return True

    def add_bonus(self, ability: Optional[str], value: int, source: str) -> None:
        if not ability:
            logger.warning(
                "Attempted to add ability bonus without an ability (value: %s, source: %s)",
                value,
                source,
            )
            return
        key = normalize_ability(ability)
        if key is None:
            logger.warning("Ignoring bonus for unknown ability %r from %s", ability, source)
            return
        if not isinstance(source, str) or not source:
            logger.warning("Ignoring %s bonus %r without a source", key, value)
            return
        try:
            amount = int(value)
        except (TypeError, ValueError):
            logger.warning("Ignoring non-numeric %s bonus %r from %s", key, value, source)
            return
        self._upsert(key, amount, source)

    def remove_bonus(self, ability: Optional[str], value: int, source: str) -> None:
        # Identity is the (value, source) pair, not the source alone.
        key = normalize_ability(ability)
        if key is None:
            return
        self.bonuses[key] = [
            bonus
            for bonus in self.bonuses[key]
            if not (bonus.value == value and bonus.source == source)
        ]

    def clear_by_source(self, source: str) -> None:
        for ability in ABILITY_SCORES:
            self.bonuses[ability] = [bonus for bonus in self.bonuses[ability] if bonus.source != source]

    def clear_by_prefix(self, prefix: str) -> None:
        if not prefix:
            return
        lowered = prefix.lower()
        for ability in ABILITY_SCORES:
            self.bonuses[ability] = [
                bonus
                for bonus in self.bonuses[ability]
                if not bonus.source or not bonus.source.lower().startswith(lowered)
            ]

    def _upsert(self, ability: str, value: int, source: str) -> None:
        for bonus in self.bonuses[ability]:
            if bonus.source == source:
                bonus.value = value
                return
        self.bonuses[ability].append(AbilityBonus(value, source))
