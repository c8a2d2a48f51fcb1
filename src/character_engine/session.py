from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, TypeVar

from PySide6 import QtCore

from .constants import DEFAULT_FEAT_SOURCE
from .models import Character, RaceSelection
from .schema import validate_character_data
from . import serializer

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class RaceGrants:
    """Everything a race choice grants, resolved from rule data by the caller."""

    name: str
    source: str = ""
    subrace: str = ""
    ability_bonuses: Dict[str, int] = field(default_factory=dict)
    subrace_ability_bonuses: Dict[str, int] = field(default_factory=dict)
    proficiencies: Dict[str, List[str]] = field(default_factory=dict)
    traits: Dict[str, str] = field(default_factory=dict)
    resistances: List[str] = field(default_factory=list)
    darkvision: int = 0
    optional_proficiencies: Dict[str, Tuple[int, List[str]]] = field(default_factory=dict)


class CharacterSession(QtCore.QObject):
    """Owns the active character and tells the UI when it changes.

    Mutations made inside :meth:`batch` are coalesced into a single
    ``characterChanged`` emission when the outermost batch exits.
    """

    characterChanged = QtCore.Signal()
    characterLoaded = QtCore.Signal()
    messageEmitted = QtCore.Signal(str)

    def __init__(self, character: Character, parent: Optional[QtCore.QObject] = None) -> None:
        super().__init__(parent)
        self.character = character
        self._signal_suppression = 0
        self._pending_change = False

    # ------------------------------------------------------------------
    def load(self, data: Optional[Mapping[str, object]]) -> Character:
        if data is not None:
            validate_character_data(data)
        self.character = serializer.deserialize(data)
        self._pending_change = False
        logger.info("Loaded character %r", self.character.name or self.character.id)
        self.characterLoaded.emit()
        return self.character

    def new_character(self) -> Character:
        return self.load(None)

    def snapshot(self) -> Dict[str, object]:
        data = serializer.serialize(self.character)
        self.character.last_modified = data["last_modified"]
        return data

    # ------------------------------------------------------------------
    @contextmanager
    def batch(self) -> Iterator[Character]:
        self._signal_suppression += 1
        try:
            yield self.character
        finally:
            self._signal_suppression = max(0, self._signal_suppression - 1)
            self._pending_change = True
            self._emit_character_changed()

    def mutate(self, change: Callable[[Character], T]) -> T:
        result = change(self.character)
        self._pending_change = True
        self._emit_character_changed()
        return result

    # ------------------------------------------------------------------
    def change_race(self, grants: Optional[RaceGrants]) -> None:
        """Swap the race: withdraw every racial grant, then apply ``grants``."""

        with self.batch() as character:
            character.clear_racial_benefits()
            if grants is None:
                character.race = RaceSelection()
                return
            character.race = RaceSelection(name=grants.name, source=grants.source, subrace=grants.subrace)
            for ability, value in grants.ability_bonuses.items():
                character.abilities.add_bonus(ability, value, "Race")
            for ability, value in grants.subrace_ability_bonuses.items():
                character.abilities.add_bonus(ability, value, "Subrace")
            for category, names in grants.proficiencies.items():
                for name in names:
                    character.add_proficiency(category, name, "Race")
            for name, description in grants.traits.items():
                character.features.add_trait(name, description, "Race")
            for kind in grants.resistances:
                character.features.add_resistance(kind)
            character.features.set_darkvision(grants.darkvision)
            for category, (allowed, options) in grants.optional_proficiencies.items():
                character.optional_proficiencies.configure(category, "race", allowed, options)

    def set_feats(self, feats: Iterable[object], default_source: str = DEFAULT_FEAT_SOURCE) -> None:
        self.mutate(lambda character: character.set_feats(feats, default_source))
        availability = self.character.get_feat_availability()
        if availability.used > availability.max:
            self.messageEmitted.emit(
                availability.blocked_reason
                or f"{availability.used} feats selected but only {availability.max} available."
            )

    def level_up(
        self,
        class_name: str,
        applied_feats: Optional[Iterable[str]] = None,
        applied_features: Optional[Iterable[str]] = None,
        changed_abilities: Optional[Dict[str, int]] = None,
    ) -> bool:
        progression = self.character.progression
        from_level = progression.get_total_level() if progression.classes else 0
        with self.batch():
            entry = progression.add_class_level(class_name)
            if entry is None:
                self.messageEmitted.emit(f"Cannot add a level of {class_name or 'an unnamed class'}.")
                return False
            progression.record_level_up(
                from_level,
                progression.get_total_level(),
                applied_feats=applied_feats,
                applied_features=applied_features,
                changed_abilities=changed_abilities,
            )
        return True

    def set_allowed_sources(self, sources: Iterable[str]) -> None:
        self.mutate(lambda character: character.set_allowed_sources(sources))

    def _emit_character_changed(self) -> None:
        if self._signal_suppression == 0 and self._pending_change:
            self._pending_change = False
            self.characterChanged.emit()


def create_session(
    data: Optional[Mapping[str, object]] = None,
    parent: Optional[QtCore.QObject] = None,
) -> CharacterSession:
    """Build a session around a fresh or previously saved character."""

    session = CharacterSession(serializer.deserialize(data), parent=parent)
    logger.debug("Created session for %r", session.character.name or session.character.id)
    return session
