from __future__ import annotations

from typing import Iterable, Optional, Tuple

from .constants import (
    CLASS_ASI_LEVELS,
    DEFAULT_ASI_LEVELS,
    MAX_CHARACTER_LEVEL,
)


def proficiency_bonus(level: int) -> int:
    level = max(1, min(level, MAX_CHARACTER_LEVEL))
    return 2 + (level - 1) // 4


def ability_modifier(score: int) -> int:
    return (score - 10) // 2


def carrying_capacity(strength: int) -> int:
    return max(0, strength) * 15


def normalize_lookup(value: Optional[str]) -> str:
    """Key used for case-insensitive comparisons of rule names."""

    if not value:
        return ""
    return str(value).strip().casefold()


def asi_levels_for_class(class_name: Optional[str]) -> Tuple[int, ...]:
    return CLASS_ASI_LEVELS.get(normalize_lookup(class_name), DEFAULT_ASI_LEVELS)


def asi_levels_reached(class_name: Optional[str], level: int) -> Tuple[int, ...]:
    return tuple(asi for asi in asi_levels_for_class(class_name) if asi <= level)


def is_variant_human(race_name: Optional[str]) -> bool:
    # Matches on the display name; homebrew or translated names slip through.
    lowered = normalize_lookup(race_name)
    return "variant" in lowered and "human" in lowered


def unique_in_order(values: Iterable[str]) -> list:
    return list(dict.fromkeys(values))
