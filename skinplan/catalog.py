"""
Built-in product and rule catalogs, plus JSON loaders for hosted catalogs.

The engine never reads files itself: the host loads a catalog once at
start-up and hands the materialized objects to PlanEngine.
"""

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from skinplan.schemas import Product, ProductCatalog, RuleSet

logger = logging.getLogger(__name__)


class CatalogError(ValueError):
    """A catalog file could not be read or failed validation."""


# ── Products ─────────────────────────────────────────────────────────────────

# Within one step/skin-type group the earlier entry carries the higher
# priority, so equal-tier ties keep the listed order.
_PRODUCTS: list[dict] = [
    # Cleansers
    dict(id="cerave-hydrating-cleanser", name="CeraVe Hydrating Cleanser", brand="CeraVe",
         price_tier="low", step="cleanser", skin_types=["dry"], concerns=["dehydration", "barrier"],
         flags=["fragrance_free", "non_comedogenic"], priority=20),
    dict(id="lrp-toleriane-cleanser", name="La Roche-Posay Toleriane Dermo-Cleanser", brand="La Roche-Posay",
         price_tier="mid", step="cleanser", skin_types=["dry"], concerns=["barrier"],
         flags=["fragrance_free"], priority=10),
    dict(id="cerave-hydrating-foaming", name="CeraVe Hydrating/Foaming Cleanser", brand="CeraVe",
         price_tier="low", step="cleanser", skin_types=["normal"],
         flags=["fragrance_free", "non_comedogenic"], priority=20),
    dict(id="cerave-foaming-cleanser", name="CeraVe Foaming Cleanser", brand="CeraVe",
         price_tier="low", step="cleanser", skin_types=["combo"], concerns=["texture"],
         flags=["fragrance_free", "non_comedogenic", "light_texture"], priority=20),
    dict(id="lrp-effaclar-gel", name="La Roche-Posay Effaclar Gel", brand="La Roche-Posay",
         price_tier="mid", step="cleanser", skin_types=["combo"], concerns=["acne", "texture"],
         flags=["light_texture", "non_comedogenic"], priority=10),
    dict(id="bioderma-sebium-gel", name="Bioderma Sebium Gel", brand="Bioderma",
         price_tier="mid", step="cleanser", skin_types=["oily"], concerns=["acne", "texture"],
         flags=["fragrance_free", "light_texture", "non_comedogenic"], priority=20),
    dict(id="cerave-sa-cleanser", name="CeraVe SA Cleanser", brand="CeraVe",
         price_tier="mid", step="cleanser", skin_types=["oily"], concerns=["acne", "texture"],
         flags=["fragrance_free", "non_comedogenic"], priority=10),
    # Moisturizers
    dict(id="cerave-moisturizing-cream", name="CeraVe Moisturizing Cream", brand="CeraVe",
         price_tier="low", step="moisturizer", skin_types=["dry"], concerns=["dehydration", "barrier"],
         flags=["fragrance_free"], priority=20),
    dict(id="lrp-lipikar-ap", name="La Roche-Posay Lipikar AP+M", brand="La Roche-Posay",
         price_tier="mid", step="moisturizer", skin_types=["dry"], concerns=["barrier", "dehydration"],
         flags=["fragrance_free"], priority=10),
    dict(id="cerave-pm", name="CeraVe PM Facial Moisturizing Lotion", brand="CeraVe",
         price_tier="low", step="moisturizer", skin_types=["normal"], concerns=["barrier"],
         flags=["fragrance_free", "non_comedogenic", "light_texture"], priority=20),
    dict(id="lrp-toleriane-sensitive", name="La Roche-Posay Toleriane Sensitive", brand="La Roche-Posay",
         price_tier="mid", step="moisturizer", skin_types=["normal"], concerns=["barrier", "rosacea"],
         flags=["fragrance_free"], priority=10),
    dict(id="uriage-eau-thermale-light", name="Uriage Eau Thermale Light Water Cream", brand="Uriage",
         price_tier="mid", step="moisturizer", skin_types=["combo"], concerns=["dehydration"],
         flags=["light_texture"], priority=20),
    dict(id="lrp-effaclar-h-mat", name="La Roche-Posay Effaclar H/Mat", brand="La Roche-Posay",
         price_tier="mid", step="moisturizer", skin_types=["combo"], concerns=["texture"],
         flags=["light_texture", "non_comedogenic"], priority=10),
    dict(id="bioderma-sebium-hydra", name="Bioderma Sebium Hydra", brand="Bioderma",
         price_tier="mid", step="moisturizer", skin_types=["oily"], concerns=["acne"],
         flags=["fragrance_free", "non_comedogenic"], priority=20),
    dict(id="lrp-effaclar-mat", name="La Roche-Posay Effaclar Mat", brand="La Roche-Posay",
         price_tier="mid", step="moisturizer", skin_types=["oily"], concerns=["texture"],
         flags=["light_texture", "non_comedogenic"], priority=10),
    # Sunscreen
    dict(id="bioderma-photoderm", name="Bioderma Photoderm SPF50+", brand="Bioderma",
         price_tier="mid", step="spf", flags=["fragrance_free"], priority=30),
    dict(id="lrp-anthelios-uvmune", name="La Roche-Posay Anthelios UVMune 400", brand="La Roche-Posay",
         price_tier="high", step="spf", flags=["light_texture"], priority=20),
    dict(id="garnier-ambre-solaire", name="Garnier Ambre Solaire SPF50", brand="Garnier",
         price_tier="low", step="spf", priority=10),
    # Barrier
    dict(id="lrp-cicaplast-b5", name="La Roche-Posay Cicaplast Baume B5", brand="La Roche-Posay",
         price_tier="mid", step="barrier", concerns=["barrier", "rosacea"],
         ingredients=["panthenol"], flags=["fragrance_free"], priority=20),
    dict(id="bepanthen-derma-repair", name="Bepanthen Derma Repair", brand="Bepanthen",
         price_tier="low", step="barrier", concerns=["barrier"],
         ingredients=["panthenol"], flags=["fragrance_free"], priority=10),
    # Actives
    dict(id="to-azelaic-10", name="The Ordinary Azelaic Acid 10%", brand="The Ordinary",
         price_tier="low", step="treatment", concerns=["acne", "pigmentation", "rosacea"],
         ingredients=["azelaic"], flags=["vegan", "fragrance_free"], priority=20),
    dict(id="gg-stress-less", name="Geek & Gorgeous Stress Less", brand="Geek & Gorgeous",
         price_tier="mid", step="treatment", concerns=["acne", "pigmentation", "rosacea"],
         ingredients=["azelaic"], flags=["vegan", "fragrance_free"], priority=10),
    dict(id="pc-bha-2", name="Paula's Choice 2% BHA Liquid", brand="Paula's Choice",
         price_tier="high", step="treatment", concerns=["acne", "texture"],
         avoid_if=["pregnant"], ingredients=["bha"], flags=["fragrance_free"], priority=20),
    dict(id="cosrx-bha", name="COSRX BHA Blackhead Power Liquid", brand="COSRX",
         price_tier="mid", step="treatment", concerns=["acne", "texture"],
         avoid_if=["pregnant"], ingredients=["bha"], flags=["light_texture"], priority=10),
    dict(id="lrp-pure-vitamin-c10", name="La Roche-Posay Pure Vitamin C10", brand="La Roche-Posay",
         price_tier="high", step="treatment", concerns=["pigmentation"],
         ingredients=["vitc"], priority=20),
    dict(id="to-aa-8", name="The Ordinary Ascorbic Acid 8% + Alpha Arbutin 2%", brand="The Ordinary",
         price_tier="low", step="treatment", concerns=["pigmentation"],
         ingredients=["vitc"], flags=["vegan"], priority=10),
    dict(id="to-niacinamide-10", name="The Ordinary Niacinamide 10% + Zinc 1%", brand="The Ordinary",
         price_tier="low", step="treatment", concerns=["rosacea", "texture", "pigmentation"],
         ingredients=["niacin"], flags=["vegan", "fragrance_free"], priority=20),
    dict(id="gg-b-bomb", name="Geek & Gorgeous B-Bomb", brand="Geek & Gorgeous",
         price_tier="mid", step="treatment", concerns=["rosacea", "texture"],
         ingredients=["niacin"], flags=["vegan"], priority=10),
    dict(id="gg-a-game", name="Geek & Gorgeous A-Game (retinal)", brand="Geek & Gorgeous",
         price_tier="mid", step="treatment", concerns=["aging", "acne"],
         avoid_if=["pregnant", "isotretinoin", "rx_topical"], ingredients=["retinoid"],
         flags=["vegan"], priority=20),
    dict(id="lrp-retinol-b3", name="La Roche-Posay Retinol B3", brand="La Roche-Posay",
         price_tier="high", step="treatment", concerns=["aging"],
         avoid_if=["pregnant", "isotretinoin", "rx_topical"], ingredients=["retinoid"], priority=10),
    dict(id="to-ha-b5", name="The Ordinary Hyaluronic Acid 2% + B5", brand="The Ordinary",
         price_tier="low", step="serum", concerns=["dehydration"],
         ingredients=["ha"], flags=["vegan", "fragrance_free", "light_texture"], priority=20),
    dict(id="lrp-hyalu-b5", name="La Roche-Posay Hyalu B5 Serum", brand="La Roche-Posay",
         price_tier="high", step="serum", concerns=["dehydration"],
         ingredients=["ha"], flags=["fragrance_free"], priority=10),
]


# ── Rules ────────────────────────────────────────────────────────────────────

_RULES: list[dict] = [
    dict(
        id=1, name="Pregnancy-safe regimen", priority=200,
        conditions={"hasPregnancy": True},
        steps={
            "cleanser": {"category": ["cleanser"]},
            "treatment": {"category": ["treatment"], "active_ingredients": ["azelaic"], "timing": "PM"},
            "moisturizer": {"category": ["cream"]},
            "spf": {"category": ["spf"], "timing": "AM"},
        },
    ),
    dict(
        id=2, name="Oily skin with severe acne", priority=150,
        conditions={"skinType": ["oily", "combination_oily"], "acneLevel": {"gte": 3}},
        steps={
            "cleanser": {"category": ["cleanser"], "concerns": ["acne"]},
            "treatment": {"category": ["treatment"], "concerns": ["acne"], "timing": "PM", "max_items": 2},
            "moisturizer": {"category": ["cream"], "non_comedogenic": True},
            "spf": {"category": ["spf"], "timing": "AM"},
        },
    ),
    dict(
        id=3, name="Dry skin with high sensitivity", priority=140,
        conditions={"skinType": "dry", "sensitivityLevel": "high"},
        steps={
            "cleanser": {"category": ["cleanser"], "concerns": ["barrier"], "fragrance_free": True},
            "moisturizer": {"category": ["cream"], "concerns": ["barrier"], "fragrance_free": True},
            "barrier": {"category": ["barrier"], "timing": "PM"},
            "spf": {"category": ["spf"], "timing": "AM"},
        },
    ),
    dict(
        id=4, name="Compromised barrier", priority=130,
        conditions={"barrier": {"lte": 50}},
        steps={
            "cleanser": {"category": ["cleanser"]},
            "barrier": {"category": ["barrier"], "timing": "PM"},
            "moisturizer": {"category": ["cream"]},
            "spf": {"category": ["spf"], "timing": "AM"},
        },
    ),
    dict(
        id=5, name="Rosacea-prone skin", priority=125,
        conditions={"rosaceaRisk": {"oneOf": ["medium", "high"]}},
        steps={
            "cleanser": {"category": ["cleanser"], "fragrance_free": True},
            "treatment": {"category": ["treatment"], "active_ingredients": ["azelaic", "niacin"], "timing": "PM"},
            "moisturizer": {"category": ["cream"]},
            "spf": {"category": ["spf"], "timing": "AM"},
        },
    ),
    dict(
        id=6, name="Pigmentation", priority=120,
        conditions={"pigmentation": {"gte": 50}},
        steps={
            "cleanser": {"category": ["cleanser"]},
            "treatment_am": {
                "category": ["treatment"], "concerns": ["pigmentation"],
                "active_ingredients": ["vitc"], "timing": "AM",
            },
            "moisturizer": {"category": ["cream"]},
            "spf": {"category": ["spf"], "timing": "AM"},
        },
    ),
    dict(
        id=7, name="Dehydrated skin", priority=110,
        conditions={"hydration": {"lte": 60}},
        steps={
            "cleanser": {"category": ["cleanser"]},
            "serum": {"category": ["serum"], "active_ingredients": ["ha"]},
            "moisturizer": {"category": ["cream"], "concerns": ["dehydration"]},
            "spf": {"category": ["spf"], "timing": "AM"},
        },
    ),
    dict(
        id=8, name="Mature skin", priority=100,
        conditions={"ageGroup": ["35_44", "45_plus"]},
        steps={
            "cleanser": {"category": ["cleanser"]},
            "treatment": {"category": ["treatment"], "active_ingredients": ["retinoid"], "timing": "PM"},
            "moisturizer": {"category": ["cream"]},
            "spf": {"category": ["spf"], "timing": "AM"},
        },
    ),
    dict(
        id=9, name="Basic care", priority=1,
        conditions={},
        steps={
            "cleanser": {"category": ["cleanser"]},
            "moisturizer": {"category": ["cream"]},
            "spf": {"category": ["spf"], "timing": "AM"},
        },
    ),
]


def default_products() -> ProductCatalog:
    return ProductCatalog(products=tuple(Product.model_validate(p) for p in _PRODUCTS))


def default_rules() -> RuleSet:
    return RuleSet.from_rules(_RULES)


# ── Loaders ──────────────────────────────────────────────────────────────────


def _read_json_list(path: Path) -> list:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogError(f"Cannot read catalog {path}: {e}") from e
    if isinstance(raw, dict):
        # Admin exports wrap the list: {"products": [...]} / {"rules": [...]}
        raw = raw.get("products", raw.get("rules"))
    if not isinstance(raw, list):
        raise CatalogError(f"Catalog {path} must contain a JSON list")
    return raw


def load_products(path: Optional[str]) -> ProductCatalog:
    """Load a product catalog from JSON, or the built-in one when path is None."""
    if not path:
        return default_products()
    raw = _read_json_list(Path(path))
    try:
        catalog = ProductCatalog(products=tuple(Product.model_validate(p) for p in raw))
    except ValidationError as e:
        raise CatalogError(f"Invalid product in {path}: {e}") from e
    logger.info(f"Loaded product catalog | Path: {path} | Products: {len(catalog.products)}")
    return catalog


def load_rules(path: Optional[str]) -> RuleSet:
    """Load a rule catalog from JSON, or the built-in one when path is None."""
    if not path:
        return default_rules()
    raw = _read_json_list(Path(path))
    try:
        rule_set = RuleSet.from_rules(raw)
    except ValidationError as e:
        raise CatalogError(f"Invalid rule in {path}: {e}") from e
    logger.info(f"Loaded rule catalog | Path: {path} | Rules: {len(rule_set.rules)}")
    return rule_set
