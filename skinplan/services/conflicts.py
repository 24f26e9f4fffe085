"""
Ingredient-safety conflict checks over the final routine.

A fixed, ordered rule table is evaluated against tag sets describing which
active categories end up in the morning and evening routines.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Iterable

from skinplan.schemas import ActiveTiming, ConflictFinding, Product

logger = logging.getLogger(__name__)

# Ingredient spellings seen in catalogs -> conflict category
_CANONICAL_TAGS = {
    "retinol": "retinoid",
    "retinal": "retinoid",
    "adapalene": "retinoid",
    "tretinoin": "retinoid",
    "salicylic_acid": "bha",
    "glycolic_acid": "aha",
    "lactic_acid": "aha",
    "mandelic_acid": "aha",
    "gluconolactone": "pha",
    "vitamin_c": "vitc",
    "ascorbic_acid": "vitc",
    "benzoyl_peroxide": "bpo",
    "azelaic_acid": "azelaic",
    "niacinamide": "niacin",
    "hyaluronic_acid": "ha",
}

ACID_TAGS = frozenset({"aha", "bha", "pha"})

# Actives whose doubling up is worth flagging; support ingredients are not
DUPLICATE_SENSITIVE = frozenset({"retinoid", "aha", "bha", "pha", "vitc", "bpo", "azelaic"})


def canonical_tag(tag: str) -> str:
    lowered = tag.strip().lower()
    return _CANONICAL_TAGS.get(lowered, lowered)


@dataclass
class ConflictTags:
    am: set[str] = field(default_factory=set)
    pm: set[str] = field(default_factory=set)
    am_has_spf: bool = False
    duplicates: int = 0

    @property
    def all(self) -> set[str]:
        return self.am | self.pm


@dataclass(frozen=True)
class ConflictRule:
    id: str
    trigger: str
    message: str
    test: Callable[[ConflictTags], bool]


CONFLICT_RULES: tuple[ConflictRule, ...] = (
    ConflictRule(
        id="retinoid+acidsPM",
        trigger="retinoid and AHA/BHA in the evening routine",
        message="Do not combine a retinoid with AHA/BHA on the same night. Split them across nights.",
        test=lambda t: "retinoid" in t.pm and bool(t.pm & {"aha", "bha"}),
    ),
    ConflictRule(
        id="bpo+vitcAM",
        trigger="benzoyl peroxide and vitamin C in the morning without SPF",
        message="Benzoyl peroxide with vitamin C in the morning without SPF risks irritation and oxidation.",
        test=lambda t: "bpo" in t.am and "vitc" in t.am and not t.am_has_spf,
    ),
    ConflictRule(
        id="multiAcids",
        trigger="two or more acid categories in the routine",
        message="Two acids at the same time. Cut back to one.",
        test=lambda t: len(t.all & ACID_TAGS) >= 2,
    ),
    ConflictRule(
        id="dupActives",
        trigger="several active products of the same group",
        message="Duplicate actives from the same group. Keep one product per role.",
        test=lambda t: t.duplicates > 0,
    ),
)


def check_conflicts(tags: ConflictTags) -> list[ConflictFinding]:
    """Evaluate the rule table in order. An empty list means no conflicts."""
    findings = [
        ConflictFinding(id=rule.id, message=rule.message) for rule in CONFLICT_RULES if rule.test(tags)
    ]
    if findings:
        logger.info(f"Conflicts found | Rules: {[f.id for f in findings]}")
    return findings


def tags_from_products(placed: Iterable[tuple[Product, ActiveTiming]]) -> ConflictTags:
    """Tags for selected catalog products, each placed at a time of day."""
    tags = ConflictTags()
    per_category: Counter = Counter()

    for product, timing in placed:
        categories = {canonical_tag(t) for t in product.ingredients}
        per_category.update(categories & DUPLICATE_SENSITIVE)
        if timing.in_am:
            tags.am |= categories
            if product.step == "spf":
                tags.am_has_spf = True
        if timing.in_pm:
            tags.pm |= categories

    tags.duplicates = sum(count - 1 for count in per_category.values() if count > 1)
    return tags
