from __future__ import annotations

import logging
from collections import abc
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Set

from .constants import (
    CHOICE_SOURCE_SUFFIX,
    CURRENCY_KEYS,
    DEFAULT_ALLOWED_SOURCES,
    DEFAULT_FEAT_SOURCE,
    DEFAULT_LANGUAGE,
    DEFAULT_LANGUAGE_SOURCE,
    DEFAULT_SIZE,
    DEFAULT_SPEED,
    EQUIPMENT_SLOTS,
    MULTI_ITEM_SLOTS,
    OPTIONAL_ORIGINS,
    RACIAL_SOURCES,
)
from .ledgers import (
    AbilityScoreTracker,
    FeatAvailability,
    FeatLedger,
    FeatureRegistry,
    OptionalProficiencyAllocator,
    ProficiencyLedger,
    ProgressionTracker,
)
from . import rules

logger = logging.getLogger(__name__)


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def choice_source(origin: str) -> str:
    """Source label for proficiencies picked from an origin's optional list."""

    return f"{origin.capitalize()} {CHOICE_SOURCE_SUFFIX}"


def normalize_sources(sources: Iterable[str]) -> Set[str]:
    return {source.strip().upper() for source in sources if isinstance(source, str) and source.strip()}


def default_inventory() -> Dict[str, object]:
    return {
        "items": [],
        "equipped": {slot: ([] if slot in MULTI_ITEM_SLOTS else None) for slot in EQUIPMENT_SLOTS},
        "attuned": [],
        "currency": {key: 0 for key in CURRENCY_KEYS},
        "weight": {"current": 0, "capacity": 0},
    }


def default_spellcasting() -> Dict[str, object]:
    return {
        "classes": {},
        "multiclass": {"is_casting_multiclass": False, "combined_slots": {}},
        "other": {"spells_known": [], "item_spells": []},
    }


def default_proficiencies() -> ProficiencyLedger:
    ledger = ProficiencyLedger()
    ledger.add("languages", DEFAULT_LANGUAGE, DEFAULT_LANGUAGE_SOURCE)
    return ledger


@dataclass(slots=True)
class RaceSelection:
    name: str = ""
    source: str = ""
    subrace: str = ""
    ability_choices: List[Dict[str, object]] = field(default_factory=list)

    @property
    def display_name(self) -> str:
        if self.name and self.subrace:
            return f"{self.name} ({self.subrace})"
        return self.name


@dataclass(slots=True)
class HitPoints:
    current: int = 0
    max: int = 0
    temp: int = 0


@dataclass(slots=True)
class Character:
    """Aggregate root for a character under construction.

    Each attribute family lives in its own ledger; the methods here only
    cover operations that have to touch more than one of them.
    """

    id: Optional[str] = None
    name: str = ""
    player_name: str = ""
    portrait: str = ""
    race: RaceSelection = field(default_factory=RaceSelection)
    background: Dict[str, object] = field(default_factory=dict)
    allowed_sources: Set[str] = field(default_factory=lambda: set(DEFAULT_ALLOWED_SOURCES))

    abilities: AbilityScoreTracker = field(default_factory=AbilityScoreTracker)
    pending_ability_choices: List[Dict[str, object]] = field(default_factory=list)
    proficiencies: ProficiencyLedger = field(default_factory=default_proficiencies)
    optional_proficiencies: OptionalProficiencyAllocator = field(default_factory=OptionalProficiencyAllocator)
    features: FeatureRegistry = field(default_factory=FeatureRegistry)
    feats: FeatLedger = field(default_factory=FeatLedger)
    progression: ProgressionTracker = field(default_factory=ProgressionTracker)

    size: str = DEFAULT_SIZE
    speed: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_SPEED))
    height: str = ""
    weight: str = ""
    gender: str = ""
    age: str = ""
    alignment: str = ""
    deity: str = ""
    backstory: str = ""
    notes: str = ""

    variant_rules: Dict[str, object] = field(
        default_factory=lambda: {"feats": True, "ability_score_method": "custom"}
    )
    hit_points: HitPoints = field(default_factory=HitPoints)
    inventory: Dict[str, object] = field(default_factory=default_inventory)
    spellcasting: Dict[str, object] = field(default_factory=default_spellcasting)

    created_at: str = field(default_factory=utc_timestamp)
    last_modified: str = field(default_factory=utc_timestamp)

    def __post_init__(self) -> None:
        self.allowed_sources = normalize_sources(self.allowed_sources)

    # ------------------------------------------------------------------
    # Allowed rule sources
    def add_allowed_source(self, source: str) -> None:
        if source:
            self.allowed_sources.add(source.strip().upper())

    def remove_allowed_source(self, source: str) -> None:
        if source:
            self.allowed_sources.discard(source.strip().upper())

    def is_source_allowed(self, source: str) -> bool:
        return bool(source) and source.strip().upper() in self.allowed_sources

    def set_allowed_sources(self, sources: Iterable[str]) -> None:
        self.allowed_sources = normalize_sources(sources)
        logger.debug("Allowed sources updated: %s", sorted(self.allowed_sources))

    def get_allowed_sources(self) -> Set[str]:
        return set(self.allowed_sources)

    # ------------------------------------------------------------------
    # Proficiencies
    def add_proficiency(self, category: str, name: str, source: str) -> bool:
        added = self.proficiencies.add(category, name, source)
        if category == "skills" and source and not source.endswith(CHOICE_SOURCE_SUFFIX):
            self._refund_optional_skill(name, source)
        return added

    def remove_proficiencies_by_source(self, source: str) -> Dict[str, List[str]]:
        return self.proficiencies.remove_by_source(source)

    def select_optional_proficiency(self, category: str, origin: str, name: str) -> bool:
        if not self.optional_proficiencies.select(category, origin, name):
            return False
        self.proficiencies.add(category, name, choice_source(origin))
        return True

    def deselect_optional_proficiency(self, category: str, origin: str, name: str) -> bool:
        if not self.optional_proficiencies.deselect(category, origin, name):
            return False
        self.proficiencies.remove(category, name, choice_source(origin))
        return True

    def clear_optional_proficiencies(self, category: str, origin: str) -> List[str]:
        released = self.optional_proficiencies.clear(category, origin)
        for name in released:
            self.proficiencies.remove(category, name, choice_source(origin))
        return released

    def optional_proficiency_options(self, category: str, origin: str) -> List[str]:
        """Candidates the player can still pick for ``origin``."""

        fixed = [
            name
            for name, sources in self.proficiencies.with_sources(category)
            if any(not source.endswith(CHOICE_SOURCE_SUFFIX) for source in sources)
        ]
        return self.optional_proficiencies.available(category, origin, fixed)

    def _refund_optional_skill(self, name: str, granting_source: str) -> None:
        # A fixed grant makes an earlier optional pick of the same skill redundant.
        granting_origin = granting_source.lower() if granting_source.lower() in OPTIONAL_ORIGINS else None
        target = rules.normalize_lookup(name)
        for origin in self.optional_proficiencies.origin_holding("skills", name, exclude=granting_origin):
            for choice in self.optional_proficiencies.allocation("skills", origin).selected:
                if rules.normalize_lookup(choice) == target:
                    self.deselect_optional_proficiency("skills", origin, choice)
                    logger.info("Refunded optional skill %s from %s choices", choice, origin)

    # ------------------------------------------------------------------
    # Ability choices awaiting a player decision
    def add_pending_ability_choice(self, choice: Dict[str, object]) -> None:
        if not isinstance(choice, abc.Mapping):
            logger.warning("Ignoring pending ability choice %r", choice)
            return
        self.pending_ability_choices.append(dict(choice))

    def get_pending_ability_choices(self) -> List[Dict[str, object]]:
        return [dict(choice) for choice in self.pending_ability_choices]

    # ------------------------------------------------------------------
    # Feats and progression
    def set_feats(self, feats: Iterable[object], default_source: str = DEFAULT_FEAT_SOURCE) -> None:
        self.feats.set_feats(feats, default_source)

    def get_total_level(self) -> int:
        return self.progression.get_total_level()

    def get_feat_availability(self) -> FeatAvailability:
        return self.progression.get_feat_availability(
            race_name=self.race.display_name,
            feats_granted=len(self.feats),
            feats_enabled=self.variant_rules.get("feats", True) is not False,
        )

    @property
    def proficiency_bonus(self) -> int:
        return rules.proficiency_bonus(self.get_total_level())

    @property
    def carrying_capacity(self) -> int:
        return rules.carrying_capacity(self.abilities.get_score("strength"))

    # ------------------------------------------------------------------
    def clear_racial_benefits(self) -> None:
        """Undo everything granted by the current race and subrace."""

        for source in RACIAL_SOURCES:
            self.abilities.clear_by_source(source)
            self.abilities.clear_by_prefix(source)
            self.proficiencies.remove_by_source(source)
            self.features.clear_traits_by_source(source)
        self.race.ability_choices = []
        self.pending_ability_choices = []
        self.features.set_darkvision(0)
        self.features.clear_resistances()
        for category in self.optional_proficiencies.categories:
            self.clear_optional_proficiencies(category, "race")
        logger.debug("Cleared racial benefits for %r", self.name or self.id)
