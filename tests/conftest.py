"""Shared fixtures: a blank character and one with every ledger populated."""

from __future__ import annotations

import pytest

from character_engine.models import Character, RaceSelection


@pytest.fixture()
def character() -> Character:
    return Character(id="char-1", name="Brakka")


@pytest.fixture()
def populated_character() -> Character:
    c = Character(id="char-2", name="Ilsa", player_name="Dee")
    c.race = RaceSelection(name="Human", source="PHB", subrace="Variant")
    c.abilities.set_base_score("strength", 15)
    c.abilities.set_base_score("dex", 14)
    c.abilities.add_bonus("STR", 1, "Race")
    c.abilities.add_bonus("constitution", 1, "Feat: Tough")

    c.add_proficiency("skills", "Athletics", "Class")
    c.add_proficiency("skills", "Athletics", "Background")
    c.add_proficiency("armor", "Light Armor", "Class")
    c.add_proficiency("languages", "Elvish", "Race")

    c.optional_proficiencies.configure("skills", "class", 2, ["Perception", "Survival", "Intimidation"])
    c.select_optional_proficiency("skills", "class", "Perception")

    c.features.set_darkvision(60)
    c.features.add_resistance("poison")
    c.features.add_resistance("fire")
    c.features.add_trait("Stonecunning", "History checks on stonework.", "Race")

    c.set_feats(
        [
            {"name": "Alert", "origin": "Race"},
            {"name": "Alert", "origin": "Level 4"},
            "Tough",
        ],
        default_source="Class",
    )
    c.progression.set_class_level("Fighter", 5)
    c.progression.add_class_level("Wizard")
    c.progression.record_level_up(5, 6, applied_features=["Spellcasting"])
    return c
