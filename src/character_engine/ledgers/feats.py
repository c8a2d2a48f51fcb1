from __future__ import annotations

import logging
from collections import abc
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set

from ..constants import DEFAULT_FEAT_SOURCE

logger = logging.getLogger(__name__)

FEAT_NAME_FIELDS = ("name", "id", "feat")
# Where the feat came from in this character, checked before the rulebook source.
FEAT_SOURCE_FIELDS = ("origin", "granted_by", "grantedBy", "from", "source_type", "sourceType", "source")


@dataclass(frozen=True, slots=True)
class FeatGrant:
    name: str
    source: str


def normalize_feat(entry: object, default_source: str = DEFAULT_FEAT_SOURCE) -> Optional[FeatGrant]:
    """Resolve a bare name, a mapping or a FeatGrant into a canonical FeatGrant."""

    if isinstance(entry, FeatGrant):
        return entry
    if isinstance(entry, str):
        return FeatGrant(entry, default_source) if entry else None
    if not isinstance(entry, abc.Mapping):
        return None
    name = next((entry[key] for key in FEAT_NAME_FIELDS if entry.get(key)), None)
    if not isinstance(name, str):
        return None
    source = next((entry[key] for key in FEAT_SOURCE_FIELDS if entry.get(key)), None)
    return FeatGrant(name, source if isinstance(source, str) else default_source)


class FeatLedger:
    def __init__(self, feats: Optional[Iterable[object]] = None, default_source: str = DEFAULT_FEAT_SOURCE) -> None:
        self._feats: List[FeatGrant] = []
        self._sources: Dict[str, Set[str]] = {}
        self.set_feats(feats or [], default_source)

    def set_feats(self, feats: Iterable[object], default_source: str = DEFAULT_FEAT_SOURCE) -> None:
        """Replace every feat; the same feat may be granted by several sources."""

        self._feats = []
        self._sources = {}
        if isinstance(feats, (str, bytes)) or not isinstance(feats, abc.Iterable):
            logger.warning("Expected a list of feats, got %r", type(feats).__name__)
            return
        for entry in feats:
            grant = normalize_feat(entry, default_source)
            if grant is None:
                logger.debug("Skipping unrecognised feat entry %r", entry)
                continue
            self._feats.append(grant)
            self._sources.setdefault(grant.name, set()).add(grant.source)

    def remove_by_source(self, source: str) -> List[str]:
        removed = [grant.name for grant in self._feats if grant.source == source]
        self._feats = [grant for grant in self._feats if grant.source != source]
        for name in set(removed):
            sources = self._sources.get(name)
            if sources is None:
                continue
            sources.discard(source)
            if not sources:
                del self._sources[name]
        return removed

    # ------------------------------------------------------------------
    @property
    def feats(self) -> List[FeatGrant]:
        return list(self._feats)

    def names(self) -> List[str]:
        return list(dict.fromkeys(grant.name for grant in self._feats))

    def has(self, name: str) -> bool:
        return name in self._sources

    def sources_for(self, name: str) -> Set[str]:
        return set(self._sources.get(name, set()))

    def provenance(self) -> Dict[str, Set[str]]:
        return {name: set(sources) for name, sources in self._sources.items()}

    def __len__(self) -> int:
        return len(self._feats)
