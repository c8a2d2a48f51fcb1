from __future__ import annotations

import logging
from collections import abc
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from .constants import ABILITY_SCORES

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_character_data(data: Optional[Mapping[str, object]]) -> ValidationResult:
    """Check a serialized snapshot for the fields a saved character must carry."""

    errors: List[str] = []
    if not isinstance(data, abc.Mapping):
        return ValidationResult(valid=False, errors=["Character object is required"])

    if not data.get("id"):
        errors.append("Missing character ID")
    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append("Missing character name")
    if not isinstance(data.get("allowed_sources"), list):
        errors.append("allowed_sources must be a list")

    scores = data.get("ability_scores")
    if not isinstance(scores, abc.Mapping):
        errors.append("Missing or invalid ability_scores")
    else:
        for ability in ABILITY_SCORES:
            if not _is_number(scores.get(ability)):
                errors.append(f"Missing or invalid ability score: {ability}")

    if not isinstance(data.get("proficiencies"), abc.Mapping):
        errors.append("Missing or invalid proficiencies")

    hit_points = data.get("hit_points")
    if not isinstance(hit_points, abc.Mapping):
        errors.append("Missing or invalid hit_points")
    else:
        for key in ("current", "max", "temp"):
            if not _is_number(hit_points.get(key)):
                errors.append(f"Missing or invalid hit_points.{key}")

    result = ValidationResult(valid=not errors, errors=errors)
    if result.valid:
        logger.debug("Validation passed for character %s", data.get("id"))
    else:
        logger.warning("Validation failed for character %s: %s", data.get("id"), "; ".join(errors))
    return result
