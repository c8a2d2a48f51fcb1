from __future__ import annotations

from character_engine.constants import IMPORTED_SOURCE, PROFICIENCY_CATEGORIES
from character_engine.ledgers import ProficiencyLedger


def test_multi_source_union() -> None:
    ledger = ProficiencyLedger()
    assert ledger.add("skills", "Athletics", "Class")
    assert not ledger.add("skills", "Athletics", "Background")

    assert ledger.granted("skills") == ["Athletics"]
    assert ledger.sources_for("skills", "Athletics") == {"Class", "Background"}


def test_partial_removal_keeps_survivor() -> None:
    ledger = ProficiencyLedger()
    ledger.add("skills", "Athletics", "Class")
    ledger.add("skills", "Athletics", "Background")

    removed = ledger.remove_by_source("Class")

    assert ledger.granted("skills") == ["Athletics"]
    assert ledger.sources_for("skills", "Athletics") == {"Background"}
    assert removed["skills"] == []


def test_full_removal_deletes_entry() -> None:
    ledger = ProficiencyLedger()
    ledger.add("skills", "Athletics", "Class")
    ledger.add("armor", "Shields", "Class")
    ledger.add("armor", "Light Armor", "Race")

    removed = ledger.remove_by_source("Class")

    assert ledger.granted("skills") == []
    assert ledger.sources_for("skills", "Athletics") == set()
    assert removed["skills"] == ["Athletics"]
    assert removed["armor"] == ["Shields"]
    assert set(removed) == set(PROFICIENCY_CATEGORIES)
    assert ledger.granted("armor") == ["Light Armor"]


def test_case_insensitive_matching_keeps_first_casing() -> None:
    ledger = ProficiencyLedger()
    ledger.add("tools", "Thieves' Tools", "Class")
    ledger.add("tools", "thieves' tools", "Background")

    assert ledger.granted("tools") == ["Thieves' Tools"]
    assert ledger.has("tools", "THIEVES' TOOLS")


def test_invalid_grants_are_ignored() -> None:
    ledger = ProficiencyLedger()

    assert not ledger.add("skills", "", "Class")
    assert not ledger.add("skills", "Stealth", "")
    assert not ledger.add("cooking", "Baking", "Class")
    assert "cooking" not in ledger.categories
    assert ledger.remove_by_source("") == {category: [] for category in PROFICIENCY_CATEGORIES}


def test_remove_single_source() -> None:
    ledger = ProficiencyLedger()
    ledger.add("languages", "Elvish", "Race")
    ledger.add("languages", "Elvish", "Background")

    assert not ledger.remove("languages", "elvish", "Race")
    assert ledger.remove("languages", "Elvish", "Background")
    assert not ledger.has("languages", "Elvish")
    assert not ledger.remove("languages", "Elvish", "Background")


def test_constructor_repairs_visibility() -> None:
    ledger = ProficiencyLedger(
        granted={"skills": ["Stealth", "Arcana"]},
        sources={"skills": {"Arcana": ["Class"], "History": ["Background"]}},
    )

    assert ledger.granted("skills") == ["Stealth", "Arcana", "History"]
    assert ledger.sources_for("skills", "Stealth") == {IMPORTED_SOURCE}
    assert ledger.sources_for("skills", "History") == {"Background"}


def test_with_sources_returns_copies() -> None:
    ledger = ProficiencyLedger()
    ledger.add("weapons", "Longsword", "Class")
    ((name, sources),) = ledger.with_sources("weapons")
    sources.add("Tampered")

    assert name == "Longsword"
    assert ledger.sources_for("weapons", "Longsword") == {"Class"}
