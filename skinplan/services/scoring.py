"""
Profile scoring — turns weighted answer scores into a SkinProfile.

Every selected option of an answer contributes its score map. Numeric
fields are summed, string/boolean fields are last-write-wins and list
fields accumulate as an ordered union. Broken score data is skipped.
"""

import logging
import math
from typing import Any, Iterable, Optional

from skinplan.schemas import (
    MedicalMarkers,
    Question,
    RiskLevel,
    SensitivityLevel,
    SkinProfile,
    SkinType,
    SubmittedAnswer,
)

logger = logging.getLogger(__name__)

AnswerScore = dict[str, Any]


# ── Aggregation ─────────────────────────────────────────────────────────────


def resolve_answer_scores(
    answers: Iterable[SubmittedAnswer], questions: Iterable[Question]
) -> list[AnswerScore]:
    """Look up the score map of every selected option, in answer order."""
    by_code = {q.code: q for q in questions}
    resolved: list[AnswerScore] = []

    for answer in answers:
        question = by_code.get(answer.question_code)
        if question is None:
            logger.warning(f"Answer for unknown question skipped | Code: {answer.question_code}")
            continue

        # An option stored in both value and values still counts once
        selected = list(dict.fromkeys(([answer.value] if answer.value else []) + list(answer.values)))
        options = {opt.value: opt for opt in question.options}
        for value in selected:
            option = options.get(value)
            if option is None or option.score is None:
                continue
            if not isinstance(option.score, dict):
                logger.warning(
                    f"Malformed score skipped | Question: {question.code} | Option: {value}"
                )
                continue
            resolved.append(option.score)

    return resolved


def _is_number(value: Any) -> bool:
    # bool is an int subclass; flags must not be summed
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def aggregate_scores(answer_scores: Iterable[AnswerScore]) -> dict[str, Any]:
    aggregated: dict[str, Any] = {}

    for score in answer_scores:
        for key, value in score.items():
            if _is_number(value):
                current = aggregated.get(key)
                aggregated[key] = (current if _is_number(current) else 0) + value
            elif isinstance(value, (str, bool)):
                aggregated[key] = value
            elif isinstance(value, list):
                current = aggregated.get(key)
                merged = list(current) if isinstance(current, list) else []
                merged.extend(v for v in value if v not in merged)
                aggregated[key] = merged
            else:
                logger.warning(f"Unsupported score value skipped | Field: {key} | Value: {value!r}")

    return aggregated


# ── Derivation ──────────────────────────────────────────────────────────────


def _num(scores: dict[str, Any], key: str) -> float:
    value = scores.get(key)
    return value if _is_number(value) else 0


def determine_skin_type(scores: dict[str, Any]) -> str:
    """Preliminary label from oiliness/dehydration: oily, dry, combo or normal."""
    oiliness = _num(scores, "oiliness")
    dehydration = _num(scores, "dehydration")

    if oiliness >= 4 and dehydration >= 3:
        return "combo"
    if oiliness >= 4:
        return "oily"
    if dehydration >= 4:
        return "dry"
    if oiliness >= 2 or dehydration >= 2:
        return "combo"
    return "normal"


def canonical_skin_type(
    label: Optional[str], oiliness: float = 0, dehydration: float = 0
) -> SkinType:
    """Single point where every skin-type label becomes a SkinType.

    "combo" splits by whichever of oiliness/dehydration dominates; a tie
    leans dry. "sensitive" as a type means dry sensitive skin. Anything
    unrecognised falls back to normal.
    """
    if not label:
        return SkinType.NORMAL

    lowered = str(label).strip().lower()
    if lowered in ("combo", "combination"):
        return SkinType.COMBINATION_OILY if oiliness > dehydration else SkinType.COMBINATION_DRY
    if lowered == "sensitive":
        return SkinType.DRY
    try:
        return SkinType(lowered)
    except ValueError:
        logger.warning(f"Unknown skin type, using normal | Label: {label}")
        return SkinType.NORMAL


def determine_sensitivity(scores: dict[str, Any]) -> SensitivityLevel:
    sensitivity = _num(scores, "sensitivity")
    if sensitivity >= 4:
        return SensitivityLevel.HIGH
    if sensitivity >= 2:
        return SensitivityLevel.MEDIUM
    return SensitivityLevel.LOW


def clamp_level(value: float) -> int:
    """Round half up and clamp to 0..5."""
    return min(max(math.floor(value + 0.5), 0), 5)


def risk_level(value: float) -> RiskLevel:
    if value >= 3:
        return RiskLevel.HIGH
    if value >= 1:
        return RiskLevel.MEDIUM
    return RiskLevel.NONE


def _string_list(scores: dict[str, Any], key: str) -> list[str]:
    value = scores.get(key)
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [str(v) for v in value]
    return []


def profile_notes(
    skin_type: SkinType,
    sensitivity: SensitivityLevel,
    acne_level: int,
    dehydration_level: int,
    rosacea_risk: RiskLevel,
    pigmentation_risk: RiskLevel,
) -> str:
    parts = [
        f"Skin type: {skin_type.value.replace('_', ' ')}",
        f"Sensitivity: {sensitivity.value}",
    ]
    if acne_level > 0:
        parts.append(f"Acne: level {acne_level}/5")
    if dehydration_level > 0:
        parts.append(f"Dehydration: level {dehydration_level}/5")
    if rosacea_risk != RiskLevel.NONE:
        parts.append(f"Rosacea risk: {rosacea_risk.value}")
    if pigmentation_risk != RiskLevel.NONE:
        parts.append(f"Pigmentation risk: {pigmentation_risk.value}")
    return ". ".join(parts) + "."


# ── Entry points ────────────────────────────────────────────────────────────


def profile_from_scores(scores: dict[str, Any], version: int = 1) -> SkinProfile:
    oiliness = _num(scores, "oiliness")
    dehydration = _num(scores, "dehydration")

    skin_type = canonical_skin_type(determine_skin_type(scores), oiliness, dehydration)
    sensitivity = determine_sensitivity(scores)
    acne_level = clamp_level(_num(scores, "acne"))
    dehydration_level = clamp_level(dehydration)
    rosacea_risk = risk_level(_num(scores, "rosacea"))
    pigmentation_risk = risk_level(_num(scores, "pigmentation"))

    age_group = scores.get("age_group")
    return SkinProfile(
        skin_type=skin_type,
        sensitivity=sensitivity,
        acne_level=acne_level,
        dehydration_level=dehydration_level,
        rosacea_risk=rosacea_risk,
        pigmentation_risk=pigmentation_risk,
        age_group=age_group if isinstance(age_group, str) else None,
        has_pregnancy=scores.get("has_pregnancy") is True or scores.get("pregnancy") is True,
        concerns=_string_list(scores, "concerns"),
        markers=MedicalMarkers(
            diagnoses=_string_list(scores, "diagnoses"),
            allergies=_string_list(scores, "allergies"),
            prescription_creams=_string_list(scores, "prescription_creams"),
        ),
        notes=profile_notes(
            skin_type, sensitivity, acne_level, dehydration_level, rosacea_risk, pigmentation_risk
        ),
        version=version,
    )


def score_profile(
    answers: Iterable[SubmittedAnswer], questions: Iterable[Question], version: int = 1
) -> SkinProfile:
    """Build a profile from submitted answers. Never raises on bad score data."""
    scores = aggregate_scores(resolve_answer_scores(answers, questions))
    return profile_from_scores(scores, version=version)


def rescore(
    previous: SkinProfile, answers: Iterable[SubmittedAnswer], questions: Iterable[Question]
) -> SkinProfile:
    """Recompute a profile after a questionnaire retake."""
    return score_profile(answers, questions, version=previous.version + 1)
