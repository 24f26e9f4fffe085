"""
PlanEngine — the recommendation pipeline.

Two entry points share one product selector:
  build_plan(answers)       goal-driven path, returns the 28-day PlanResult
  recommend(answers, ...)   rule-driven path: score → match → select

Pure and synchronous: catalogs are materialized up front and nothing here
performs I/O or keeps per-user state.
"""

import logging
from typing import Iterable, Optional, Union

from skinplan.catalog import default_products, default_rules
from skinplan.schemas import (
    ActiveIngredientPick,
    MatchStatus,
    PlanPicks,
    PlanResult,
    PriceTier,
    ProductCatalog,
    Question,
    QuestionnaireAnswers,
    RuleRecommendation,
    RuleSet,
    SelectionContext,
    SkinProfile,
    StepConfig,
    SubmittedAnswer,
)
from skinplan.services.cart import build_cart
from skinplan.services.conflicts import ConflictTags, check_conflicts, tags_from_products
from skinplan.services.questionnaire import QuestionnaireContext, build_active_pool, normalize_answers
from skinplan.services.rules import match_first
from skinplan.services.schedule import build_routine, generate_schedule, routine_am_active
from skinplan.services.scoring import rescore, score_profile
from skinplan.services.selection import ProductSelector, StepSelection

logger = logging.getLogger(__name__)

# Base slots of the goal-driven path, in cart order
BASE_STEPS: dict[str, StepConfig] = {
    "cleanser": StepConfig(category=["cleanser"]),
    "moisturizer": StepConfig(category=["moisturizer"]),
    "spf": StepConfig(category=["spf"]),
    "barrier": StepConfig(category=["barrier"]),
}


# ── Helpers ─────────────────────────────────────────────────────────────────


def _selection_notes(selections: Iterable[StepSelection]) -> list[str]:
    notes: list[str] = []
    for selection in selections:
        if not selection.products:
            notes.append(f"No suitable product found for {selection.step}; this step is left out.")
        elif selection.relaxed_preferences:
            notes.append(f"No {selection.step} matched every preference; the closest match was used.")
    return notes


def _care_notes(q: QuestionnaireContext, pool: list[ActiveIngredientPick]) -> list[str]:
    notes: list[str] = []
    if q.sensitivity:
        notes.append("Start actives every other day and patch-test before the first use.")
        if any(a.id == "azelaic" for a in pool):
            notes.append("Sensitive skin: introduce azelaic acid gradually.")
    if "rosacea" in q.safety:
        notes.append("Avoid hot water, alcohol, fragrance and harsh acids.")
    if "acne" in q.goals:
        notes.append("Exfoliating active 1-2 times a week to start; do not squeeze breakouts.")
    if q.pregnant:
        notes.append("Retinoids are left out while pregnant or breastfeeding.")
    return notes


def _plan_tags(
    q: QuestionnaireContext,
    supplied: list[ActiveIngredientPick],
    picked: list[ActiveIngredientPick],
    duplicates: int,
    has_spf: bool,
) -> ConflictTags:
    tags = ConflictTags(am_has_spf=has_spf, duplicates=duplicates)

    am_active = routine_am_active(supplied)
    if am_active and not q.compact_am:
        tags.am.add(am_active.id)

    tags.pm = {a.id for a in picked if a.when.in_pm}
    # Schedule nights A and B carry the first two picks regardless of timing
    tags.pm |= {a.id for a in picked[:2]}
    return tags


# ── Engine ──────────────────────────────────────────────────────────────────


class PlanEngine:
    """Builds regimens from questionnaire answers and in-memory catalogs."""

    def __init__(
        self,
        products: Optional[ProductCatalog] = None,
        rules: Optional[RuleSet] = None,
        default_budget: PriceTier = PriceTier.MID,
    ):
        self.products = products if products is not None else default_products()
        self.rules = rules if rules is not None else default_rules()
        self.default_budget = default_budget
        self.selector = ProductSelector(self.products)

    def build_plan(self, answers: Union[QuestionnaireAnswers, dict]) -> PlanResult:
        """Goal-driven path: answers → concerns → actives → picks → schedule/cart/conflicts."""
        if not isinstance(answers, QuestionnaireAnswers):
            answers = QuestionnaireAnswers.model_validate(answers)

        q = normalize_answers(answers, self.default_budget)
        pool, duplicates = build_active_pool(q)
        ctx = SelectionContext(
            skin_type=q.skin_type.value,
            budget=q.budget,
            contraindications=frozenset(q.contraindications),
            preferences=frozenset(q.preferences),
        )

        base = self.selector.select_steps(BASE_STEPS, ctx)

        # Strongest active first: it becomes the A-night product
        ranked = sorted(pool, key=lambda a: -a.strength)
        active_selections = [
            self.selector.select(a.id, StepConfig(active_ingredients=[a.id]), ctx) for a in ranked
        ]
        picked = [a for a, sel in zip(ranked, active_selections) if sel.first]
        names = {a.id: sel.first.name for a, sel in zip(ranked, active_selections) if sel.first}
        # Pool order, limited to actives the catalog can actually supply
        supplied = [a for a in pool if a.id in names]

        def _name(step: str) -> Optional[str]:
            first = base[step].first
            return first.name if first else None

        picks = PlanPicks(
            cleanser=_name("cleanser"),
            moisturizer=_name("moisturizer"),
            barrier=_name("barrier"),
            spf=_name("spf"),
            actives=[names[a.id] for a in picked],
        )

        am_active = routine_am_active(supplied)
        schedule = generate_schedule(
            picks,
            am_active=names.get(am_active.id) if am_active else None,
            compact_am=q.compact_am,
            compact_pm=q.compact_pm,
            rich_pm=q.rich_pm,
        )
        cart, coverage = build_cart(picks)
        conflicts = check_conflicts(_plan_tags(q, supplied, picked, duplicates, picks.spf is not None))

        notes = _care_notes(q, pool) + _selection_notes(list(base.values()) + active_selections)

        logger.info(
            f"Plan built | Type: {q.skin_type.value} | Budget: {q.budget.value} | "
            f"Cart: {len(cart)} | Conflicts: {len(conflicts)}"
        )
        return PlanResult(
            detected_type=q.skin_type.value,
            sensitivity=q.sensitivity,
            goals=q.goals,
            budget=q.budget,
            routine=build_routine(supplied, q.compact_am, q.compact_pm, q.rich_pm),
            picks=picks,
            schedule28=schedule,
            cart=cart,
            coverage=coverage,
            conflict_rules=conflicts,
            notes=notes,
        )

    def recommend(
        self,
        answers: Iterable[SubmittedAnswer],
        questions: Iterable[Question],
        budget: Optional[PriceTier] = None,
        preferences: Iterable[str] = (),
        contraindications: Iterable[str] = (),
        rules: Optional[RuleSet] = None,
        previous: Optional[SkinProfile] = None,
    ) -> RuleRecommendation:
        """Rule-driven path. A missing match is reported, never papered over."""
        answers = list(answers)
        questions = list(questions)
        profile = rescore(previous, answers, questions) if previous else score_profile(answers, questions)

        match = match_first(profile, rules if rules is not None else self.rules)
        if not match.matched:
            return RuleRecommendation(profile=profile, status=MatchStatus.NO_MATCH)

        rule = match.rule
        blocked = set(contraindications)
        if profile.has_pregnancy:
            blocked.add("pregnant")
        ctx = SelectionContext(
            skin_type=profile.skin_type.value,
            budget=budget or self.default_budget,
            contraindications=frozenset(blocked),
            preferences=frozenset(preferences),
        )
        selections = self.selector.select_steps(rule.steps, ctx)

        picks: dict[str, list[str]] = {}
        product_ids: list[str] = []
        placed = []
        for step, selection in selections.items():
            if not selection.products:
                continue
            picks[step] = [p.name for p in selection.products]
            for product in selection.products:
                placed.append((product, rule.steps[step].timing))
                if product.id not in product_ids:
                    product_ids.append(product.id)

        missing = [step for step, selection in selections.items() if not selection.products]
        if missing:
            logger.warning(f"Steps left without products | Rule: {rule.id} | Steps: {missing}")

        return RuleRecommendation(
            profile=profile,
            status=MatchStatus.MATCHED,
            rule_id=rule.id,
            rule_name=rule.name,
            priority=rule.priority,
            picks=picks,
            product_ids=product_ids,
            missing_steps=missing,
            conflict_rules=check_conflicts(tags_from_products(placed)),
        )
