"""Two-way conversion between :class:`Character` and plain JSON values.

Provenance sets and ordered ledgers only exist in memory; this module is the
one place that flattens them into lists and mappings of lists and rebuilds
them on the way back in. Each section is converted inside its own failure
boundary, so a broken nested structure degrades to that section's empty
shape instead of losing the whole snapshot.
"""

from __future__ import annotations

import copy
import json
import logging
from collections import abc
from dataclasses import asdict
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set

from .constants import (
    ABILITY_SCORES,
    CURRENCY_KEYS,
    DEFAULT_ALLOWED_SOURCES,
    DEFAULT_ABILITY_SCORE,
    DEFAULT_SIZE,
    DEFAULT_SPEED,
    IMPORTED_SOURCE,
    OPTIONAL_ORIGINS,
    OPTIONAL_PROFICIENCY_CATEGORIES,
    PROFICIENCY_CATEGORIES,
)
from .ledgers import (
    AbilityScoreTracker,
    FeatLedger,
    FeatureRegistry,
    OptionalProficiencyAllocator,
    ProficiencyLedger,
    ProgressionTracker,
)
from .models import (
    Character,
    HitPoints,
    RaceSelection,
    default_inventory,
    default_proficiencies,
    default_spellcasting,
    utc_timestamp,
)

logger = logging.getLogger(__name__)

SECTION_ERRORS = (TypeError, ValueError, AttributeError, KeyError)


# ----------------------------------------------------------------------
# Empty shapes
def empty_optional_category() -> Dict[str, Any]:
    shape: Dict[str, Any] = {"allowed": 0, "options": [], "selected": []}
    for origin in OPTIONAL_ORIGINS:
        shape[origin] = {"allowed": 0, "options": [], "selected": []}
    return shape


def empty_progression() -> Dict[str, Any]:
    return {"classes": [], "experience_points": 0, "level_ups": []}


def empty_features() -> Dict[str, Any]:
    return {"darkvision": 0, "resistances": [], "traits": {}}


# ----------------------------------------------------------------------
def _section(name: str, convert: Callable[[], Any], fallback: Callable[[], Any]) -> Any:
    try:
        return convert()
    except SECTION_ERRORS:
        logger.warning("Could not serialize %s; writing an empty section", name, exc_info=True)
        return fallback()


def _sorted_list(values: Iterable[str]) -> List[str]:
    return sorted(set(values))


def _provenance_to_plain(provenance: Mapping[str, Set[str]]) -> Dict[str, List[str]]:
    return {name: _sorted_list(sources) for name, sources in provenance.items()}


def _abilities(character: Character) -> Dict[str, Any]:
    tracker = character.abilities
    return {
        "ability_scores": {ability: int(tracker.scores[ability]) for ability in ABILITY_SCORES},
        "ability_bonuses": {
            ability: [{"value": bonus.value, "source": bonus.source} for bonus in tracker.bonuses[ability]]
            for ability in ABILITY_SCORES
        },
    }


def _proficiencies(character: Character) -> Dict[str, Any]:
    ledger = character.proficiencies
    return {
        "proficiencies": {category: ledger.granted(category) for category in PROFICIENCY_CATEGORIES},
        "proficiency_sources": {
            category: {name: _sorted_list(sources) for name, sources in ledger.with_sources(category)}
            for category in PROFICIENCY_CATEGORIES
        },
    }


def _optional_proficiencies(character: Character) -> Dict[str, Any]:
    allocator = character.optional_proficiencies
    result: Dict[str, Any] = {}
    for category in allocator.categories:
        aggregate = allocator.aggregate(category)
        entry: Dict[str, Any] = {
            "allowed": aggregate.allowed,
            "options": list(aggregate.options),
            "selected": list(aggregate.selected),
        }
        for origin in OPTIONAL_ORIGINS:
            entry[origin] = asdict(allocator.allocation(category, origin))
        result[category] = entry
    return result


def _features(character: Character) -> Dict[str, Any]:
    registry = character.features
    return {
        "darkvision": int(registry.darkvision),
        "resistances": _sorted_list(registry.resistances),
        "traits": {
            name: {"description": trait.description, "source": trait.source}
            for name, trait in registry.traits.items()
        },
    }


def _feats(character: Character) -> Dict[str, Any]:
    return {
        "feats": [{"name": grant.name, "source": grant.source} for grant in character.feats.feats],
        "feat_sources": _provenance_to_plain(character.feats.provenance()),
    }


def _progression(character: Character) -> Dict[str, Any]:
    tracker = character.progression
    return {
        "classes": [
            {
                "name": entry.name,
                "levels": entry.levels,
                "subclass": entry.subclass or "",
                "subclass_choices": copy.deepcopy(entry.subclass_choices),
                "hit_dice": entry.hit_dice,
                "hit_points": list(entry.hit_points),
                "features": list(entry.features),
                "spell_slots": dict(entry.spell_slots),
            }
            for entry in tracker.classes
        ],
        "experience_points": tracker.experience_points,
        "level_ups": [asdict(record) for record in tracker.level_ups],
    }


def _inventory(character: Character) -> Dict[str, Any]:
    inventory = copy.deepcopy(character.inventory)
    currency = inventory.get("currency") or {}
    inventory["currency"] = {key: int(currency.get(key, 0) or 0) for key in CURRENCY_KEYS}
    inventory["attuned"] = list(inventory.get("attuned") or [])
    inventory["items"] = [dict(item) for item in inventory.get("items") or []]
    return inventory


def serialize(character: Optional[Character]) -> Optional[Dict[str, Any]]:
    """Flatten ``character`` into JSON-safe values, stamping a new modification time."""

    if character is None:
        return None

    data: Dict[str, Any] = {
        "id": character.id,
        "name": character.name,
        "player_name": character.player_name,
        "portrait": character.portrait or "",
        "allowed_sources": _section(
            "allowed sources", lambda: _sorted_list(character.allowed_sources), list
        ),
        "created_at": character.created_at,
        "last_modified": utc_timestamp(),
        "race": _section(
            "race",
            lambda: {
                "name": character.race.name or "",
                "source": character.race.source or "",
                "subrace": character.race.subrace or "",
                "ability_choices": [dict(choice) for choice in character.race.ability_choices],
            },
            lambda: asdict(RaceSelection()),
        ),
        "background": _section("background", lambda: copy.deepcopy(character.background), dict),
        "pending_ability_choices": _section(
            "pending ability choices",
            lambda: [dict(choice) for choice in character.pending_ability_choices],
            list,
        ),
        "size": character.size or DEFAULT_SIZE,
        "speed": _section("speed", lambda: dict(character.speed), lambda: dict(DEFAULT_SPEED)),
        "height": character.height or "",
        "weight": character.weight or "",
        "gender": character.gender or "",
        "age": character.age or "",
        "alignment": character.alignment or "",
        "deity": character.deity or "",
        "backstory": character.backstory or "",
        "notes": character.notes or "",
        "features": _section("features", lambda: _features(character), empty_features),
        "optional_proficiencies": _section(
            "optional proficiencies",
            lambda: _optional_proficiencies(character),
            lambda: {category: empty_optional_category() for category in OPTIONAL_PROFICIENCY_CATEGORIES},
        ),
        "variant_rules": _section("variant rules", lambda: dict(character.variant_rules), dict),
        "hit_points": _section("hit points", lambda: asdict(character.hit_points), lambda: asdict(HitPoints())),
        "inventory": _section("inventory", lambda: _inventory(character), default_inventory),
        "spellcasting": _section(
            "spellcasting", lambda: copy.deepcopy(character.spellcasting), default_spellcasting
        ),
        "progression": _section("progression", lambda: _progression(character), empty_progression),
    }
    data.update(
        _section(
            "ability scores",
            lambda: _abilities(character),
            lambda: {
                "ability_scores": {ability: DEFAULT_ABILITY_SCORE for ability in ABILITY_SCORES},
                "ability_bonuses": {ability: [] for ability in ABILITY_SCORES},
            },
        )
    )
    data.update(
        _section(
            "proficiencies",
            lambda: _proficiencies(character),
            lambda: {
                "proficiencies": {category: [] for category in PROFICIENCY_CATEGORIES},
                "proficiency_sources": {category: {} for category in PROFICIENCY_CATEGORIES},
            },
        )
    )
    data.update(_section("feats", lambda: _feats(character), lambda: {"feats": [], "feat_sources": {}}))
    return data


# ----------------------------------------------------------------------
def _mapping(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    return value if isinstance(value, abc.Mapping) else {}


def _list(data: Mapping[str, Any], key: str) -> List[Any]:
    value = data.get(key)
    return list(value) if isinstance(value, (list, tuple)) else []


def _text(data: Mapping[str, Any], key: str, default: str = "") -> str:
    value = data.get(key)
    return value if isinstance(value, str) else default


def _race(data: Mapping[str, Any]) -> RaceSelection:
    raw = data.get("race")
    if isinstance(raw, str):
        return RaceSelection(name=raw)
    if not isinstance(raw, abc.Mapping):
        return RaceSelection()
    return RaceSelection(
        name=_text(raw, "name"),
        source=_text(raw, "source"),
        subrace=_text(raw, "subrace"),
        ability_choices=[dict(choice) for choice in _list(raw, "ability_choices") if isinstance(choice, abc.Mapping)],
    )


def _background(data: Mapping[str, Any]) -> Dict[str, Any]:
    raw = data.get("background")
    if isinstance(raw, str):
        return {"name": raw} if raw else {}
    if isinstance(raw, abc.Mapping):
        return copy.deepcopy(dict(raw))
    return {}


def _hit_points(data: Mapping[str, Any]) -> HitPoints:
    raw = _mapping(data, "hit_points")
    values = {}
    for key in ("current", "max", "temp"):
        try:
            values[key] = int(raw.get(key) or 0)
        except (TypeError, ValueError):
            values[key] = 0
    return HitPoints(**values)


def _inventory_from(data: Mapping[str, Any]) -> Dict[str, Any]:
    inventory = default_inventory()
    raw = _mapping(data, "inventory")
    for key, value in raw.items():
        if key in inventory and isinstance(value, type(inventory[key])):
            inventory[key] = copy.deepcopy(value)
    return inventory


def _spellcasting_from(data: Mapping[str, Any]) -> Dict[str, Any]:
    spellcasting = default_spellcasting()
    for key, value in _mapping(data, "spellcasting").items():
        if key in spellcasting and isinstance(value, abc.Mapping):
            spellcasting[key] = copy.deepcopy(dict(value))
    return spellcasting


def deserialize(data: Optional[Mapping[str, Any]]) -> Character:
    """Rebuild a :class:`Character`; missing or malformed sections take their defaults."""

    if not isinstance(data, abc.Mapping):
        if data is not None:
            logger.warning("Expected a mapping of character data, got %s", type(data).__name__)
        return Character()

    features = _mapping(data, "features")
    progression = _mapping(data, "progression")
    has_proficiencies = "proficiencies" in data or "proficiency_sources" in data

    character = Character(
        id=data.get("id"),
        name=_text(data, "name"),
        player_name=_text(data, "player_name"),
        portrait=_text(data, "portrait"),
        race=_race(data),
        background=_background(data),
        allowed_sources=(
            _list(data, "allowed_sources") if "allowed_sources" in data else list(DEFAULT_ALLOWED_SOURCES)
        ),
        abilities=AbilityScoreTracker(
            scores=_mapping(data, "ability_scores"),
            bonuses=_mapping(data, "ability_bonuses"),
        ),
        pending_ability_choices=[
            dict(choice) for choice in _list(data, "pending_ability_choices") if isinstance(choice, abc.Mapping)
        ],
        proficiencies=(
            ProficiencyLedger(
                granted=_mapping(data, "proficiencies"),
                sources=_mapping(data, "proficiency_sources"),
            )
            if has_proficiencies
            else default_proficiencies()
        ),
        optional_proficiencies=OptionalProficiencyAllocator(_mapping(data, "optional_proficiencies")),
        features=FeatureRegistry(
            darkvision=features.get("darkvision") or 0,
            resistances=_list(features, "resistances"),
            traits=_mapping(features, "traits"),
        ),
        feats=FeatLedger(_list(data, "feats"), default_source=IMPORTED_SOURCE),
        progression=ProgressionTracker(
            classes=_list(progression, "classes"),
            level_ups=_list(progression, "level_ups"),
            experience_points=progression.get("experience_points") or 0,
        ),
        size=_text(data, "size", DEFAULT_SIZE) or DEFAULT_SIZE,
        speed=dict(_mapping(data, "speed")) or dict(DEFAULT_SPEED),
        height=_text(data, "height"),
        weight=_text(data, "weight"),
        gender=_text(data, "gender"),
        age=_text(data, "age"),
        alignment=_text(data, "alignment"),
        deity=_text(data, "deity"),
        backstory=_text(data, "backstory"),
        notes=_text(data, "notes"),
        hit_points=_hit_points(data),
        inventory=_inventory_from(data),
        spellcasting=_spellcasting_from(data),
    )
    variant_rules = _mapping(data, "variant_rules")
    if variant_rules:
        character.variant_rules.update(variant_rules)
    created_at = _text(data, "created_at")
    if created_at:
        character.created_at = created_at
    last_modified = _text(data, "last_modified")
    if last_modified:
        character.last_modified = last_modified
    return character


# ----------------------------------------------------------------------
def dumps(character: Character, indent: Optional[int] = 2) -> str:
    return json.dumps(serialize(character), indent=indent, ensure_ascii=False)


def loads(text: str) -> Character:
    return deserialize(json.loads(text))


__all__ = ["serialize", "deserialize", "dumps", "loads"]
