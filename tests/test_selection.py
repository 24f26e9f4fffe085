"""
Unit tests for product selection — hard filters, budget ranking and soft
preference handling.
"""

import pytest

from skinplan.catalog import default_products
from skinplan.schemas import PriceTier, Product, ProductCatalog, SelectionContext, StepConfig
from skinplan.services.selection import ProductSelector, tier_rank


def _product(id: str, **overrides) -> Product:
    defaults = dict(id=id, name=id.title(), price_tier="mid", step="cleanser")
    defaults.update(overrides)
    return Product(**defaults)


def _ctx(**overrides) -> SelectionContext:
    defaults = dict(skin_type="normal", budget=PriceTier.MID)
    defaults.update(overrides)
    return SelectionContext(**defaults)


def _selector(*products: Product) -> ProductSelector:
    return ProductSelector(ProductCatalog(products=products))


CLEANSER = StepConfig(category=["cleanser"])


# ── Budget ordering ─────────────────────────────────────────────────────────


class TestBudgetOrder:
    @pytest.mark.parametrize("budget, order", [
        (PriceTier.LOW, ["low", "mid", "high"]),
        (PriceTier.MID, ["mid", "low", "high"]),
        (PriceTier.HIGH, ["high", "mid", "low"]),
    ])
    def test_tier_rank(self, budget, order):
        ranked = sorted(PriceTier, key=lambda t: tier_rank(t, budget))
        assert [t.value for t in ranked] == order

    def test_low_budget_prefers_low_tier(self):
        selector = _selector(_product("fancy", price_tier="high"), _product("cheap", price_tier="low"))
        assert selector.select("cleanser", CLEANSER, _ctx(budget=PriceTier.LOW)).first.id == "cheap"

    def test_missing_tier_falls_through_preference_order(self):
        selector = _selector(_product("fancy", price_tier="high"), _product("cheap", price_tier="low"))
        assert selector.select("cleanser", CLEANSER, _ctx(budget=PriceTier.MID)).first.id == "cheap"

    def test_priority_breaks_ties_within_tier(self):
        selector = _selector(_product("a", priority=1), _product("b", priority=9))
        assert selector.select("cleanser", CLEANSER, _ctx()).first.id == "b"

    def test_equal_priority_keeps_catalog_order(self):
        selector = _selector(_product("a"), _product("b"))
        assert selector.select("cleanser", CLEANSER, _ctx()).first.id == "a"

    def test_tier_synonyms(self):
        assert _product("x", price_tier="mass").price_tier == PriceTier.LOW
        assert _product("y", price_tier="Premium").price_tier == PriceTier.HIGH


# ── Hard filters ────────────────────────────────────────────────────────────


class TestHardFilters:
    def test_skin_type_or_wildcard(self):
        selector = _selector(
            _product("oily-only", skin_types=["oily"], priority=9),
            _product("any"),
        )
        assert selector.select("cleanser", CLEANSER, _ctx(skin_type="dry")).first.id == "any"
        assert selector.select("cleanser", CLEANSER, _ctx(skin_type="oily")).first.id == "oily-only"

    def test_combo_family(self):
        selector = _selector(_product("combo", skin_types=["combo"]))
        assert selector.select("cleanser", CLEANSER, _ctx(skin_type="combination_oily")).first.id == "combo"

    def test_category_and_cream_alias(self):
        selector = _selector(_product("c"), _product("m", step="moisturizer"))
        selection = selector.select("moisturizer", StepConfig(category=["cream"]), _ctx())
        assert selection.first.id == "m"

    def test_category_prefix(self):
        selector = _selector(_product("t", step="treatment_pm"))
        assert selector.select("t", StepConfig(category=["treatment"]), _ctx()).first.id == "t"

    def test_concerns_must_intersect(self):
        selector = _selector(
            _product("plain", priority=9),
            _product("acne", concerns=["acne"]),
        )
        step = StepConfig(category=["cleanser"], concerns=["acne"])
        assert selector.select("cleanser", step, _ctx()).first.id == "acne"

    def test_active_ingredients(self):
        selector = _selector(
            _product("ha", step="serum", ingredients=["ha"]),
            _product("vitc", step="serum", ingredients=["vitc"]),
        )
        step = StepConfig(active_ingredients=["vitc"])
        assert selector.select("vitc", step, _ctx()).first.id == "vitc"

    def test_contraindications_exclude(self):
        selector = _selector(
            _product("retinol", avoid_if=["pregnant"], priority=9),
            _product("safe"),
        )
        ctx = _ctx(contraindications=frozenset({"pregnant"}))
        assert selector.select("cleanser", CLEANSER, ctx).first.id == "safe"

    def test_flag_requirements(self):
        selector = _selector(
            _product("scented", priority=9),
            _product("ff", flags=["fragrance_free"]),
        )
        step = StepConfig(category=["cleanser"], fragrance_free=True)
        assert selector.select("cleanser", step, _ctx()).first.id == "ff"

    def test_unpublished_skipped(self):
        selector = _selector(_product("draft", published=False))
        assert selector.select("cleanser", CLEANSER, _ctx()).products == []

    def test_no_candidate_is_empty_not_error(self):
        selection = _selector().select("cleanser", CLEANSER, _ctx())
        assert selection.first is None
        assert selection.step == "cleanser"


# ── Preferences and multi-pick ──────────────────────────────────────────────


class TestPreferences:
    def test_preferred_products_win(self):
        selector = _selector(
            _product("plain", priority=9),
            _product("vegan", flags=["vegan"]),
        )
        selection = selector.select("cleanser", CLEANSER, _ctx(preferences=frozenset({"vegan"})))
        assert selection.first.id == "vegan"
        assert not selection.relaxed_preferences

    def test_preferences_relaxed_when_nothing_matches(self):
        selector = _selector(_product("plain"))
        selection = selector.select("cleanser", CLEANSER, _ctx(preferences=frozenset({"vegan"})))
        assert selection.first.id == "plain"
        assert selection.relaxed_preferences

    def test_max_items(self):
        selector = _selector(_product("a", priority=3), _product("b", priority=2), _product("c", priority=1))
        step = StepConfig(category=["cleanser"], max_items=2)
        assert [p.id for p in selector.select("cleanser", step, _ctx()).products] == ["a", "b"]

    def test_select_steps_keeps_order(self):
        selector = ProductSelector(default_products())
        steps = {"spf": StepConfig(category=["spf"]), "cleanser": CLEANSER}
        selections = selector.select_steps(steps, _ctx())
        assert list(selections) == ["spf", "cleanser"]
        assert selections["spf"].first.name == "Bioderma Photoderm SPF50+"
