from __future__ import annotations

import logging
from collections import abc
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Set

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Trait:
    description: str
    source: str


class FeatureRegistry:
    """Darkvision, damage resistances and named traits.

    Traits remember their source and can be cleared per source. Resistances
    are not source-tagged, so clearing them is all-or-nothing.
    """

    def __init__(
        self,
        darkvision: int = 0,
        resistances: Optional[Iterable[str]] = None,
        traits: Optional[Mapping[str, object]] = None,
    ) -> None:
        self.darkvision = 0
        self.set_darkvision(darkvision)
        self.resistances: Set[str] = {kind for kind in resistances or [] if isinstance(kind, str) and kind}
        self.traits: Dict[str, Trait] = {}
        for name, payload in (traits or {}).items():
            if isinstance(payload, Trait):
                self.add_trait(name, payload.description, payload.source)
            elif isinstance(payload, abc.Mapping):
                self.add_trait(name, payload.get("description") or "", payload.get("source") or "")
            elif isinstance(payload, str):
                self.add_trait(name, payload, "")

    def set_darkvision(self, distance: int) -> None:
        try:
            self.darkvision = max(0, int(distance or 0))
        except (TypeError, ValueError):
            logger.warning("Ignoring non-numeric darkvision distance %r", distance)

    # Traits -----------------------------------------------------------
    def add_trait(self, name: str, description: str, source: str) -> None:
        if not name:
            logger.warning("Ignoring trait without a name from %s", source)
            return
        self.traits[name] = Trait(
            description=description if isinstance(description, str) else "",
            source=source if isinstance(source, str) else "",
        )

    def clear_traits_by_source(self, source: str) -> List[str]:
        removed = [name for name, trait in self.traits.items() if trait.source == source]
        for name in removed:
            del self.traits[name]
        return removed

    # Resistances ------------------------------------------------------
    def add_resistance(self, kind: str) -> None:
        if not kind:
            return
        self.resistances.add(kind)

    def remove_resistance(self, kind: str) -> None:
        self.resistances.discard(kind)

    def has_resistance(self, kind: str) -> bool:
        return kind in self.resistances

    def clear_resistances(self) -> None:
        self.resistances.clear()
