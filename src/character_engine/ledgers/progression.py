from __future__ import annotations

import logging
from collections import abc
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from ..constants import MAX_CHARACTER_LEVEL
from .. import rules

logger = logging.getLogger(__name__)

FEATS_DISABLED_REASON = "Feats are disabled by variant rules."
NO_FEAT_SLOTS_REASON = "No feat selections available for this character."


@dataclass(slots=True)
class ClassProgression:
    name: str
    levels: int = 1
    subclass: str = ""
    subclass_choices: Dict[str, object] = field(default_factory=dict)
    hit_dice: str = ""
    hit_points: List[int] = field(default_factory=list)
    features: List[str] = field(default_factory=list)
    spell_slots: Dict[str, int] = field(default_factory=dict)


@dataclass(slots=True)
class LevelUpRecord:
    from_level: int
    to_level: int
    applied_feats: List[str] = field(default_factory=list)
    applied_features: List[str] = field(default_factory=list)
    changed_abilities: Dict[str, int] = field(default_factory=dict)
    timestamp: str = ""


@dataclass(slots=True)
class FeatAvailability:
    used: int
    max: int
    remaining: int
    reasons: List[str] = field(default_factory=list)
    blocked_reason: Optional[str] = None


class ProgressionTracker:
    """Per-class levels for multiclass characters plus the level-up history."""

    def __init__(
        self,
        classes: Optional[Iterable[object]] = None,
        level_ups: Optional[Iterable[object]] = None,
        experience_points: int = 0,
    ) -> None:
        self.classes: List[ClassProgression] = []
        self.level_ups: List[LevelUpRecord] = []
        self.experience_points = _as_int(experience_points)

        for entry in classes or []:
            if isinstance(entry, ClassProgression):
                self.classes.append(entry)
            elif isinstance(entry, abc.Mapping) and entry.get("name"):
                self.classes.append(
                    ClassProgression(
                        name=str(entry["name"]),
                        levels=_as_int(entry.get("levels"), 0),
                        subclass=_as_text(entry.get("subclass")),
                        subclass_choices=_as_dict(entry.get("subclass_choices")),
                        hit_dice=_as_text(entry.get("hit_dice")),
                        hit_points=_as_list(entry.get("hit_points")),
                        features=_as_list(entry.get("features")),
                        spell_slots=_as_dict(entry.get("spell_slots")),
                    )
                )
        for entry in level_ups or []:
            if isinstance(entry, LevelUpRecord):
                self.level_ups.append(entry)
            elif isinstance(entry, abc.Mapping):
                self.level_ups.append(
                    LevelUpRecord(
                        from_level=_as_int(entry.get("from_level")),
                        to_level=_as_int(entry.get("to_level")),
                        applied_feats=_as_list(entry.get("applied_feats")),
                        applied_features=_as_list(entry.get("applied_features")),
                        changed_abilities=_as_dict(entry.get("changed_abilities")),
                        timestamp=_as_text(entry.get("timestamp")),
                    )
                )

    # ------------------------------------------------------------------
    def get_total_level(self) -> int:
        if not self.classes:
            return 1
        return sum(entry.levels for entry in self.classes)

    def primary_class(self) -> Optional[ClassProgression]:
        return self.classes[0] if self.classes else None

    def class_entry(self, name: str) -> Optional[ClassProgression]:
        target = rules.normalize_lookup(name)
        for entry in self.classes:
            if rules.normalize_lookup(entry.name) == target:
                return entry
        return None

    def has_class(self, name: str) -> bool:
        return self.class_entry(name) is not None

    def set_class_level(self, name: str, levels: int) -> Optional[ClassProgression]:
        if not name:
            logger.warning("Cannot set a class level without a class name")
            return None
        levels = max(1, min(MAX_CHARACTER_LEVEL, _as_int(levels, 1)))
        entry = self.class_entry(name)
        if entry is None:
            entry = ClassProgression(name=name, levels=levels)
            self.classes.append(entry)
        else:
            entry.levels = levels
        return entry

    def add_class_level(self, name: str) -> Optional[ClassProgression]:
        """Gain one level in ``name`` (a new class starts at level 1)."""

        if not name:
            logger.warning("Cannot add a class level without a class name")
            return None
        if self.classes and self.get_total_level() >= MAX_CHARACTER_LEVEL:
            logger.warning("Character is already level %d", MAX_CHARACTER_LEVEL)
            return None
        entry = self.class_entry(name)
        if entry is None:
            entry = ClassProgression(name=name, levels=1)
            self.classes.append(entry)
        else:
            entry.levels += 1
        return entry

    def remove_class(self, name: str) -> bool:
        entry = self.class_entry(name)
        if entry is None:
            return False
        self.classes.remove(entry)
        return True

    def record_level_up(
        self,
        from_level: int,
        to_level: int,
        applied_feats: Optional[Iterable[str]] = None,
        applied_features: Optional[Iterable[str]] = None,
        changed_abilities: Optional[Dict[str, int]] = None,
    ) -> LevelUpRecord:
        record = LevelUpRecord(
            from_level=from_level,
            to_level=to_level,
            applied_feats=list(applied_feats or []),
            applied_features=list(applied_features or []),
            changed_abilities=dict(changed_abilities or {}),
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
        self.level_ups.append(record)
        logger.info("Recorded level-up %d -> %d", from_level, to_level)
        return record

    # ------------------------------------------------------------------
    def get_feat_availability(
        self,
        race_name: Optional[str] = None,
        feats_granted: int = 0,
        feats_enabled: bool = True,
    ) -> FeatAvailability:
        if not feats_enabled:
            return FeatAvailability(
                used=feats_granted, max=0, remaining=0, blocked_reason=FEATS_DISABLED_REASON
            )

        slots = 0
        reasons: List[str] = []
        for entry in self.classes:
            reached = rules.asi_levels_reached(entry.name, entry.levels)
            if reached:
                slots += len(reached)
                levels = ", ".join(str(level) for level in reached)
                reasons.append(f"{entry.name} {entry.levels}: ASI levels {levels}")

        if rules.is_variant_human(race_name):
            slots += 1
            reasons.append(f"Race: {race_name}")

        return FeatAvailability(
            used=feats_granted,
            max=slots,
            remaining=max(0, slots - feats_granted),
            reasons=reasons,
            blocked_reason=NO_FEAT_SLOTS_REASON if slots == 0 else None,
        )


def _as_int(value: object, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_text(value: object) -> str:
    return value if isinstance(value, str) else ""


def _as_list(value: object) -> list:
    return list(value) if isinstance(value, (list, tuple)) else []


def _as_dict(value: object) -> dict:
    return dict(value) if isinstance(value, abc.Mapping) else {}
