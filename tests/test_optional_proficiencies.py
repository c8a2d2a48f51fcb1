from __future__ import annotations

from character_engine.ledgers import OptionalAllocation, OptionalProficiencyAllocator
from character_engine.models import Character


def test_aggregate_is_derived_from_origins() -> None:
    allocator = OptionalProficiencyAllocator()
    allocator.configure("skills", "class", 2, ["Athletics", "Perception"])
    allocator.configure("skills", "background", 1, ["Perception", "Insight"])

    aggregate = allocator.aggregate("skills")
    assert aggregate.allowed == 3
    assert aggregate.options == ["Athletics", "Perception", "Insight"]

    assert allocator.select("skills", "class", "Athletics")
    assert allocator.select("skills", "background", "Insight")
    assert allocator.aggregate("skills").selected == ["Athletics", "Insight"]


def test_select_rules() -> None:
    allocator = OptionalProficiencyAllocator()
    allocator.configure("skills", "class", 1, ["Athletics", "Perception"])

    assert not allocator.select("skills", "class", "Arcana")
    assert allocator.select("skills", "class", "Athletics")
    assert not allocator.select("skills", "class", "Athletics")
    assert not allocator.select("skills", "class", "Perception")
    assert not allocator.select("skills", "deity", "Perception")


def test_clear_returns_released_and_resets_origin() -> None:
    allocator = OptionalProficiencyAllocator()
    allocator.configure("languages", "Race", 1, ["Dwarvish"])
    allocator.select("languages", "race", "Dwarvish")

    assert allocator.clear("languages", "race") == ["Dwarvish"]
    assert allocator.allocation("languages", "race") == OptionalAllocation()
    assert allocator.aggregate("languages") == OptionalAllocation()


def test_reset_origin_touches_every_category() -> None:
    allocator = OptionalProficiencyAllocator()
    allocator.configure("skills", "race", 1, ["Stealth"])
    allocator.configure("tools", "race", 1, ["Smith's Tools"])
    allocator.select("skills", "race", "Stealth")

    released = allocator.reset_origin("race")

    assert released["skills"] == ["Stealth"]
    assert released["tools"] == []
    assert allocator.aggregate("tools").allowed == 0


def test_unknown_category_is_created_on_configure() -> None:
    allocator = OptionalProficiencyAllocator()
    allocator.configure("instruments", "background", 1, ["Lute"])

    assert "instruments" in allocator.categories
    assert allocator.aggregate("instruments").options == ["Lute"]


def test_constructor_reads_persisted_shape() -> None:
    allocator = OptionalProficiencyAllocator(
        {"skills": {"class": {"allowed": 2, "options": ["Arcana", "History"], "selected": ["Arcana"]}}}
    )

    assert allocator.aggregate("skills") == OptionalAllocation(2, ["Arcana", "History"], ["Arcana"])


def test_character_grants_selection_as_choice(character: Character) -> None:
    character.optional_proficiencies.configure("skills", "class", 2, ["Athletics", "Survival"])

    assert character.select_optional_proficiency("skills", "class", "Survival")
    assert character.proficiencies.sources_for("skills", "Survival") == {"Class Choice"}

    assert character.deselect_optional_proficiency("skills", "class", "Survival")
    assert not character.proficiencies.has("skills", "Survival")


def test_available_excludes_fixed_grants(character: Character) -> None:
    character.optional_proficiencies.configure("skills", "class", 2, ["Athletics", "Survival", "Insight"])
    character.add_proficiency("skills", "Insight", "Background")
    character.select_optional_proficiency("skills", "class", "Athletics")

    assert character.optional_proficiency_options("skills", "class") == ["Survival"]


def test_fixed_grant_refunds_optional_skill(character: Character) -> None:
    character.optional_proficiencies.configure("skills", "class", 2, ["Athletics", "Perception"])
    character.select_optional_proficiency("skills", "class", "Perception")

    character.add_proficiency("skills", "Perception", "Background")

    assert character.optional_proficiencies.allocation("skills", "class").selected == []
    assert character.proficiencies.sources_for("skills", "Perception") == {"Background"}
