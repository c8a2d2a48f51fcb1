from .abilities import AbilityBonus, AbilityScoreTracker, normalize_ability
from .feats import FeatGrant, FeatLedger, normalize_feat
from .features import FeatureRegistry, Trait
from .optional import OptionalAllocation, OptionalCategory, OptionalProficiencyAllocator
from .proficiencies import ProficiencyLedger
from .progression import ClassProgression, FeatAvailability, LevelUpRecord, ProgressionTracker

__all__ = [
    "AbilityBonus",
    "AbilityScoreTracker",
    "ClassProgression",
    "FeatAvailability",
    "FeatGrant",
    "FeatLedger",
    "FeatureRegistry",
    "LevelUpRecord",
    "OptionalAllocation",
    "OptionalCategory",
    "OptionalProficiencyAllocator",
    "ProficiencyLedger",
    "ProgressionTracker",
    "Trait",
    "normalize_ability",
    "normalize_feat",
]
