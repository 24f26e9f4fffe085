"""
Product selection — filters the catalog for one routine step and ranks the
survivors by the user's budget preference, then by product priority.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from skinplan.schemas import PriceTier, Product, ProductCatalog, SelectionContext, StepConfig

logger = logging.getLogger(__name__)

_BUDGET_ORDER: dict[PriceTier, tuple[PriceTier, ...]] = {
    PriceTier.LOW: (PriceTier.LOW, PriceTier.MID, PriceTier.HIGH),
    PriceTier.MID: (PriceTier.MID, PriceTier.LOW, PriceTier.HIGH),
    PriceTier.HIGH: (PriceTier.HIGH, PriceTier.MID, PriceTier.LOW),
}

_TIER_RANK: dict[PriceTier, dict[PriceTier, int]] = {
    preference: {tier: rank for rank, tier in enumerate(order)}
    for preference, order in _BUDGET_ORDER.items()
}

# Rule authors say "cream" where the catalog says "moisturizer"
_CATEGORY_ALIASES = {"cream": "moisturizer"}

_SKIN_TYPE_FAMILY = {
    "combo": {"combo", "combination", "combination_oily", "combination_dry"},
    "combination": {"combo", "combination", "combination_oily", "combination_dry"},
    "combination_oily": {"combination_oily", "combo", "combination"},
    "combination_dry": {"combination_dry", "combo", "combination"},
}


def tier_rank(tier: PriceTier, preference: PriceTier) -> int:
    """Position of a price tier in the user's budget preference (0 = best)."""
    return _TIER_RANK[preference][tier]


@dataclass
class StepSelection:
    step: str
    products: list[Product] = field(default_factory=list)
    relaxed_preferences: bool = False

    @property
    def first(self) -> Optional[Product]:
        return self.products[0] if self.products else None


def _accepts_skin_type(product: Product, skin_type: str) -> bool:
    if "any" in product.skin_types:
        return True
    return bool(product.skin_types & _SKIN_TYPE_FAMILY.get(skin_type, {skin_type}))


def _matches_category(product: Product, categories: list[str]) -> bool:
    for category in categories:
        wanted = _CATEGORY_ALIASES.get(category, category)
        if product.step == wanted or product.step.startswith(f"{wanted}_"):
            return True
    return False


def _passes_hard_filters(product: Product, step: StepConfig, ctx: SelectionContext) -> bool:
    if not product.published:
        return False
    if step.category and not _matches_category(product, step.category):
        return False
    if not _accepts_skin_type(product, ctx.skin_type):
        return False
    if step.skin_types and "any" not in product.skin_types and not product.skin_types & set(step.skin_types):
        return False
    if step.concerns and not product.concerns & set(step.concerns):
        return False
    if step.active_ingredients and not product.ingredients & set(step.active_ingredients):
        return False
    if product.avoid_if & ctx.contraindications:
        return False
    if step.fragrance_free and "fragrance_free" not in product.flags:
        return False
    if step.non_comedogenic and "non_comedogenic" not in product.flags:
        return False
    return True


class ProductSelector:
    """Picks catalog products for routine steps. Never raises on empty results."""

    def __init__(self, catalog: ProductCatalog):
        self.catalog = catalog

    def rank(self, candidates: list[Product], budget: PriceTier) -> list[Product]:
        return sorted(candidates, key=lambda p: (tier_rank(p.price_tier, budget), -p.priority))

    def select(self, step_name: str, step: StepConfig, ctx: SelectionContext) -> StepSelection:
        candidates = [p for p in self.catalog.products if _passes_hard_filters(p, step, ctx)]

        relaxed = False
        if ctx.preferences and candidates:
            preferred = [p for p in candidates if ctx.preferences <= p.flags]
            if preferred:
                candidates = preferred
            else:
                relaxed = True
                logger.warning(
                    f"Preference filter relaxed | Step: {step_name} | "
                    f"Preferences: {sorted(ctx.preferences)}"
                )

        if not candidates:
            logger.warning(
                f"No eligible product | Step: {step_name} | Skin type: {ctx.skin_type} | "
                f"Budget: {ctx.budget.value}"
            )
            return StepSelection(step=step_name)

        ranked = self.rank(candidates, ctx.budget)
        return StepSelection(
            step=step_name, products=ranked[: step.max_items], relaxed_preferences=relaxed
        )

    def select_steps(
        self, steps: dict[str, StepConfig], ctx: SelectionContext
    ) -> dict[str, StepSelection]:
        """Select every step, keeping the step order of the input mapping."""
        return {name: self.select(name, config, ctx) for name, config in steps.items()}
