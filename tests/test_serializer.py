from __future__ import annotations

import json

import pytest

from character_engine import serializer
from character_engine.constants import ABILITY_SCORES, DEFAULT_LANGUAGE, IMPORTED_SOURCE
from character_engine.models import Character, default_inventory


def _without_timestamp(data: dict) -> dict:
    return {key: value for key, value in data.items() if key != "last_modified"}


def test_round_trip_is_stable(populated_character: Character) -> None:
    first = serializer.serialize(populated_character)
    second = serializer.serialize(serializer.deserialize(first))

    assert _without_timestamp(second) == _without_timestamp(first)


def test_round_trip_through_json_text(populated_character: Character) -> None:
    text = serializer.dumps(populated_character)
    restored = serializer.loads(text)

    assert restored.proficiencies.sources_for("skills", "Athletics") == {"Class", "Background"}
    assert restored.feats.sources_for("Alert") == {"Race", "Level 4"}
    assert restored.features.resistances == {"fire", "poison"}
    assert restored.progression.get_total_level() == 6
    assert restored.optional_proficiencies.allocation("skills", "class").selected == ["Perception"]
    assert restored.abilities.get_score("strength") == 16


def test_sets_are_sorted_lists(populated_character: Character) -> None:
    data = serializer.serialize(populated_character)

    assert data["features"]["resistances"] == ["fire", "poison"]
    assert data["proficiency_sources"]["skills"]["Athletics"] == ["Background", "Class"]
    assert data["feat_sources"]["Alert"] == ["Level 4", "Race"]
    json.dumps(data)


def test_serialize_none() -> None:
    assert serializer.serialize(None) is None


def test_serialize_stamps_last_modified(character: Character) -> None:
    character.last_modified = "2000-01-01T00:00:00+00:00"

    data = serializer.serialize(character)

    assert data["last_modified"] != "2000-01-01T00:00:00+00:00"
    assert data["created_at"] == character.created_at


def test_broken_section_falls_back(character: Character, caplog) -> None:
    character.inventory = None
    character.name = "Still here"

    data = serializer.serialize(character)

    assert data["inventory"] == default_inventory()
    assert data["name"] == "Still here"
    assert "Could not serialize inventory" in caplog.text


@pytest.mark.parametrize("payload", [None, "junk", 42, ["list"]])
def test_deserialize_non_mapping_gives_defaults(payload: object) -> None:
    restored = serializer.deserialize(payload)

    assert restored.name == ""
    assert restored.proficiencies.granted("languages") == [DEFAULT_LANGUAGE]
    assert restored.get_total_level() == 1


def test_deserialize_keeps_explicit_empty_proficiencies() -> None:
    restored = serializer.deserialize({"proficiencies": {"languages": []}})

    assert restored.proficiencies.granted("languages") == []


def test_deserialize_skips_malformed_entries() -> None:
    restored = serializer.deserialize(
        {
            "name": "Odd",
            "ability_scores": {"str": "x", "dex": 12, "luck": 3},
            "proficiencies": {"skills": ["Stealth", 5, ""]},
            "feats": ["Alert", {"source": "Race"}, None],
            "features": {"darkvision": "far", "resistances": "fire"},
            "progression": {"classes": [{"name": "Rogue", "levels": 2}, {"levels": 4}, "Fighter"]},
            "hit_points": {"current": "ten", "max": 12},
            "race": "Halfling",
            "background": "Sage",
        }
    )

    assert restored.abilities.scores["dexterity"] == 12
    assert restored.abilities.scores["strength"] == 8
    assert restored.proficiencies.granted("skills") == ["Stealth"]
    assert restored.proficiencies.sources_for("skills", "Stealth") == {IMPORTED_SOURCE}
    assert restored.feats.names() == ["Alert"]
    assert restored.feats.sources_for("Alert") == {IMPORTED_SOURCE}
    assert restored.features.darkvision == 0
    assert restored.features.resistances == set()
    assert restored.progression.get_total_level() == 2
    assert restored.hit_points.current == 0
    assert restored.hit_points.max == 12
    assert restored.race.name == "Halfling"
    assert restored.background == {"name": "Sage"}


def test_deserialize_merges_variant_rules_and_timestamps() -> None:
    restored = serializer.deserialize(
        {
            "variant_rules": {"feats": False},
            "created_at": "2024-01-01T00:00:00+00:00",
            "last_modified": "2024-02-01T00:00:00+00:00",
            "allowed_sources": ["phb", "xge"],
        }
    )

    assert restored.variant_rules == {"feats": False, "ability_score_method": "custom"}
    assert restored.created_at == "2024-01-01T00:00:00+00:00"
    assert restored.last_modified == "2024-02-01T00:00:00+00:00"
    assert restored.get_allowed_sources() == {"PHB", "XGE"}


def test_serialized_shape(character: Character) -> None:
    data = serializer.serialize(character)

    assert set(data["ability_scores"]) == set(ABILITY_SCORES)
    assert set(data["optional_proficiencies"]) == {"skills", "languages", "tools"}
    assert data["optional_proficiencies"]["skills"]["class"] == {"allowed": 0, "options": [], "selected": []}
    assert data["progression"] == {"classes": [], "experience_points": 0, "level_ups": []}


def test_loads_rejects_invalid_json() -> None:
    with pytest.raises(json.JSONDecodeError):
        serializer.loads("{not json")


def test_deserialize_tolerates_malformed_progression() -> None:
    restored = serializer.deserialize(
        {
            "progression": {
                "classes": [
                    {
                        "name": "Fighter",
                        "levels": 3,
                        "subclass": 7,
                        "subclass_choices": ["bad"],
                        "hit_dice": None,
                        "hit_points": 7,
                        "features": "Second Wind",
                        "spell_slots": "none",
                    }
                ],
                "level_ups": [
                    {
                        "from_level": 2,
                        "to_level": 3,
                        "applied_feats": "Alert",
                        "applied_features": 4,
                        "changed_abilities": "str",
                        "timestamp": 12,
                    }
                ],
            }
        }
    )

    (fighter,) = restored.progression.classes
    assert (fighter.name, fighter.levels) == ("Fighter", 3)
    assert fighter.subclass == ""
    assert fighter.subclass_choices == {}
    assert fighter.hit_dice == ""
    assert fighter.hit_points == []
    assert fighter.features == []
    assert fighter.spell_slots == {}

    (record,) = restored.progression.level_ups
    assert (record.from_level, record.to_level) == (2, 3)
    assert record.applied_feats == []
    assert record.applied_features == []
    assert record.changed_abilities == {}
    assert record.timestamp == ""


def test_unsourced_trait_and_bonus_survive_round_trip(character: Character) -> None:
    character.abilities.add_bonus("str", 2, None)
    character.features.add_trait("Menacing", None, "Race")

    first = serializer.serialize(character)
    second = serializer.serialize(serializer.deserialize(first))

    assert first["ability_bonuses"]["strength"] == []
    assert first["features"]["traits"]["Menacing"] == {"description": "", "source": "Race"}
    assert _without_timestamp(second) == _without_timestamp(first)
