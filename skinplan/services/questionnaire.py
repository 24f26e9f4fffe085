"""
Questionnaire normalization for the goal-driven path.

Maps raw answer keys (goals, skin type, reactivity, safety flags, budget,
time and formulation preferences) to the vocabulary the selector and the
scheduler work with, and derives the active-ingredient pool.
"""

import logging
from dataclasses import dataclass, field

from skinplan.schemas import ActiveIngredientPick, ActiveTiming, PriceTier, QuestionnaireAnswers, QuickSkinType

logger = logging.getLogger(__name__)

NONE_ANSWER = "none"

GOAL_CONCERNS: dict[str, str] = {
    "acne": "texture",
    "postacne": "pigmentation",
    "redness": "rosacea",
    "oil": "texture",
    "dry": "dehydration",
    "tone": "pigmentation",
    "antiage": "aging",
}

BUDGET_ANSWERS: dict[str, PriceTier] = {
    "min": PriceTier.LOW,
    "opt": PriceTier.MID,
    "prem": PriceTier.HIGH,
    "low": PriceTier.LOW,
    "mid": PriceTier.MID,
    "high": PriceTier.HIGH,
}

PREFERENCE_FLAGS: dict[str, str] = {
    "ff": "fragrance_free",
    "light": "light_texture",
    "noalcoeo": "no_alcohol_eo",
    "vegan": "vegan",
}

SAFETY_CONTRAINDICATIONS: dict[str, str] = {
    "preg": "pregnant",
    "iso_oral": "isotretinoin",
    "rx_topical": "rx_topical",
}

COMPACT_TIME = "1_3"
RICH_TIME = "8p"


@dataclass
class QuestionnaireContext:
    """Normalized view of the short questionnaire."""

    skin_type: QuickSkinType
    sensitivity: bool
    goals: list[str]
    concerns: list[str]
    budget: PriceTier
    preferences: set[str] = field(default_factory=set)
    contraindications: set[str] = field(default_factory=set)
    safety: list[str] = field(default_factory=list)
    compact_am: bool = False
    compact_pm: bool = False
    rich_pm: bool = False

    @property
    def pregnant(self) -> bool:
        return "pregnant" in self.contraindications

    @property
    def wants_mild(self) -> bool:
        return self.sensitivity or self.pregnant or bool(self.safety)


def _real(values: list[str]) -> list[str]:
    return [v for v in values if v and v != NONE_ANSWER]


def detect_skin_type(answers: QuestionnaireAnswers) -> QuickSkinType:
    """Self-reported type; "unknown" or missing answers mean normal."""
    try:
        return QuickSkinType(answers.skin_type)
    except ValueError:
        return QuickSkinType.NORMAL


def derive_concerns(goals: list[str], safety: list[str]) -> list[str]:
    concerns: list[str] = []
    for goal in goals:
        concern = GOAL_CONCERNS.get(goal)
        if concern and concern not in concerns:
            concerns.append(concern)
    if "rosacea" in safety and "rosacea" not in concerns:
        concerns.append("rosacea")
    return concerns


def normalize_answers(
    answers: QuestionnaireAnswers, default_budget: PriceTier = PriceTier.MID
) -> QuestionnaireContext:
    goals = _real(answers.goals)
    safety = _real(answers.safety)

    budget = BUDGET_ANSWERS.get(answers.budget or "")
    if budget is None:
        if answers.budget:
            logger.warning(f"Unknown budget answer, using default | Budget: {answers.budget}")
        budget = default_budget

    preferences = {PREFERENCE_FLAGS[p] for p in _real(answers.preferences) if p in PREFERENCE_FLAGS}
    contraindications = {SAFETY_CONTRAINDICATIONS[s] for s in safety if s in SAFETY_CONTRAINDICATIONS}

    am_time = answers.am_time or "4_7"
    pm_time = answers.pm_time or "4_7"

    return QuestionnaireContext(
        skin_type=detect_skin_type(answers),
        sensitivity=answers.reactivity == "often",
        goals=goals,
        concerns=derive_concerns(goals, safety),
        budget=budget,
        preferences=preferences,
        contraindications=contraindications,
        safety=safety,
        compact_am=am_time == COMPACT_TIME,
        compact_pm=pm_time == COMPACT_TIME,
        rich_pm=pm_time == RICH_TIME,
    )


def build_active_pool(ctx: QuestionnaireContext) -> tuple[list[ActiveIngredientPick], int]:
    """Actives the concerns call for, plus the number of duplicates collapsed."""
    mild = ctx.wants_mild
    candidates: list[ActiveIngredientPick] = []

    if "dehydration" in ctx.concerns:
        candidates.append(
            ActiveIngredientPick(id="ha", name="Hyaluronic acid serum", when=ActiveTiming.AM_PM, strength=0)
        )
    if "pigmentation" in ctx.concerns:
        if mild:
            candidates.append(
                ActiveIngredientPick(id="azelaic", name="Azelaic acid 10%", when=ActiveTiming.AM, strength=2)
            )
        else:
            candidates.append(
                ActiveIngredientPick(id="vitc", name="Vitamin C 8-15%", when=ActiveTiming.AM, strength=1)
            )
    if "acne" in ctx.goals or "texture" in ctx.concerns:
        if mild:
            candidates.append(
                ActiveIngredientPick(id="azelaic", name="Azelaic acid 10%", when=ActiveTiming.PM_ALT, strength=2)
            )
        else:
            candidates.append(
                ActiveIngredientPick(
                    id="bha", name="Salicylic acid (BHA) 1-2%", when=ActiveTiming.PM_ALT, strength=3
                )
            )
    if "aging" in ctx.concerns and not ctx.pregnant:
        name = "Retinal/retinol 0.1-0.3%" if ctx.sensitivity else "Retinoid (retinal/retinol)"
        candidates.append(ActiveIngredientPick(id="retinoid", name=name, when=ActiveTiming.PM, strength=4))
    if "rosacea" in ctx.concerns:
        candidates.append(
            ActiveIngredientPick(id="niacin", name="Niacinamide 4-10%", when=ActiveTiming.AM_PM, strength=1)
        )

    pool: list[ActiveIngredientPick] = []
    duplicates = 0
    for active in candidates:
        index = next((i for i, a in enumerate(pool) if a.id == active.id), None)
        if index is None:
            pool.append(active)
            continue
        # Same ingredient asked for twice: one product, used at both times
        duplicates += 1
        kept = pool[index]
        if kept.when != active.when:
            pool[index] = kept.model_copy(
                update={"when": ActiveTiming.AM_PM, "strength": max(kept.strength, active.strength)}
            )
    return pool, duplicates
