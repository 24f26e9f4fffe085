"""
Rule matching — picks the first rule, by priority, whose every condition holds.

Rules reason about some attributes on a 0–100 scale while the profile keeps
discrete levels; derive_scoring_view() is the one place those derived
fields are computed.
"""

import logging
from typing import Any

from skinplan.schemas import (
    ContainsAny,
    Equals,
    MatchStatus,
    OneOf,
    RangeGte,
    RangeLte,
    RiskLevel,
    RuleCondition,
    RuleMatchResult,
    RuleSet,
    SensitivityLevel,
    SkinProfile,
    SkinType,
)

logger = logging.getLogger(__name__)

_OILINESS_BY_TYPE = {
    SkinType.OILY: 90,
    SkinType.COMBINATION_OILY: 75,
    SkinType.NORMAL: 50,
    SkinType.COMBINATION_DRY: 45,
    SkinType.DRY: 20,
}

_PIGMENTATION_BY_RISK = {
    RiskLevel.NONE: 0,
    RiskLevel.MEDIUM: 50,
    RiskLevel.HIGH: 90,
}

# camelCase names used by rule authors -> view keys
_FIELD_ALIASES = {
    "skinType": "skin_type",
    "sensitivityLevel": "sensitivity",
    "sensitivity_level": "sensitivity",
    "acneLevel": "acne_level",
    "dehydrationLevel": "dehydration_level",
    "rosaceaRisk": "rosacea_risk",
    "pigmentationRisk": "pigmentation_risk",
    "ageGroup": "age_group",
    "age": "age_group",
    "hasPregnancy": "has_pregnancy",
    "pregnant": "has_pregnancy",
}

_BARRIER_DIAGNOSES = ("atopic", "eczema", "dermatitis")


def _clamp_100(value: float) -> int:
    return int(max(0, min(100, value)))


def derive_scoring_view(profile: SkinProfile) -> dict[str, Any]:
    """Flat field view of a profile: stored fields plus derived 0–100 axes."""
    concerns = [c.lower() for c in profile.concerns]
    diagnoses = [d.lower() for d in profile.markers.diagnoses]

    inflammation = profile.acne_level * 8
    if "acne" in concerns:
        inflammation += 50
    if "acne" in diagnoses:
        inflammation += 40

    barrier = 100
    if profile.sensitivity == SensitivityLevel.HIGH:
        barrier -= 30
    elif profile.sensitivity == SensitivityLevel.MEDIUM:
        barrier -= 15
    if any(marker in d for d in diagnoses for marker in _BARRIER_DIAGNOSES):
        barrier -= 50
    if profile.markers.allergies:
        barrier -= 25

    return {
        "skin_type": profile.skin_type.value,
        "sensitivity": profile.sensitivity.value,
        "acne_level": profile.acne_level,
        "dehydration_level": profile.dehydration_level,
        "rosacea_risk": profile.rosacea_risk.value,
        "pigmentation_risk": profile.pigmentation_risk.value,
        "age_group": profile.age_group,
        "has_pregnancy": profile.has_pregnancy,
        "concerns": list(profile.concerns),
        "diagnoses": list(profile.markers.diagnoses),
        "allergies": list(profile.markers.allergies),
        "contraindications": (["pregnant"] if profile.has_pregnancy else [])
        + list(profile.markers.prescription_creams),
        # Derived axes
        "inflammation": _clamp_100(inflammation),
        "barrier": _clamp_100(barrier),
        "hydration": _clamp_100(100 - profile.dehydration_level * 20),
        "oiliness": _OILINESS_BY_TYPE[profile.skin_type],
        "pigmentation": _PIGMENTATION_BY_RISK[profile.pigmentation_risk],
    }


def _lookup(view: dict[str, Any], field: str) -> Any:
    return view.get(_FIELD_ALIASES.get(field, field))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _same(left: Any, right: Any) -> bool:
    # Flags only equal flags: True must not match 1
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    return left == right


def _skin_type_labels(skin_type: str) -> set[str]:
    """Labels a canonical skin type answers to; combination subtypes also match combo."""
    if skin_type.startswith("combination_"):
        return {skin_type, "combo", "combination"}
    return {skin_type}


def evaluate_condition(rule_condition: RuleCondition, view: dict[str, Any]) -> bool:
    key = _FIELD_ALIASES.get(rule_condition.field, rule_condition.field)
    value = _lookup(view, rule_condition.field)
    condition = rule_condition.condition

    if key == "skin_type" and isinstance(condition, (Equals, OneOf)) and isinstance(value, str):
        labels = _skin_type_labels(value)
        wanted = [condition.value] if isinstance(condition, Equals) else condition.values
        return any(isinstance(w, str) and w.lower() in labels for w in wanted)
    if isinstance(condition, Equals):
        return _same(value, condition.value)
    if isinstance(condition, OneOf):
        return any(_same(value, v) for v in condition.values)
    if isinstance(condition, ContainsAny):
        present = value if isinstance(value, list) else []
        return any(_same(item, p) for item in condition.values for p in present)
    if isinstance(condition, RangeGte):
        return _is_number(value) and value >= condition.bound
    if isinstance(condition, RangeLte):
        return _is_number(value) and value <= condition.bound
    raise TypeError(f"Unknown condition variant: {type(condition).__name__}")


def match_first(profile: SkinProfile, rule_set: RuleSet) -> RuleMatchResult:
    """Return the highest-priority rule whose every condition holds."""
    view = derive_scoring_view(profile)

    for rule in rule_set.rules:
        failed = next((c for c in rule.conditions if not evaluate_condition(c, view)), None)
        if failed is None:
            logger.info(f"Rule matched | Rule: {rule.id} | Priority: {rule.priority}")
            return RuleMatchResult(status=MatchStatus.MATCHED, rule=rule)
        logger.debug(f"Rule {rule.id} rejected on {failed.field}")

    logger.warning(
        f"No matching rule | Skin type: {profile.skin_type.value} | Rules checked: {len(rule_set.rules)}"
    )
    return RuleMatchResult(status=MatchStatus.NO_MATCH)
