"""
Unit tests for the ingredient conflict table.
"""

from skinplan.schemas import ActiveTiming, Product
from skinplan.services.conflicts import (
    CONFLICT_RULES,
    ConflictTags,
    canonical_tag,
    check_conflicts,
    tags_from_products,
)


def _ids(tags: ConflictTags) -> list[str]:
    return [f.id for f in check_conflicts(tags)]


def _product(id: str, ingredients: list[str], step: str = "treatment") -> Product:
    return Product(id=id, name=id, step=step, ingredients=ingredients)


class TestConflictRules:
    def test_table_order(self):
        assert [r.id for r in CONFLICT_RULES] == ["retinoid+acidsPM", "bpo+vitcAM", "multiAcids", "dupActives"]

    def test_clean_routine(self):
        assert check_conflicts(ConflictTags(am={"vitc"}, pm={"retinoid"}, am_has_spf=True)) == []

    def test_retinoid_with_acid_at_night(self):
        assert _ids(ConflictTags(pm={"retinoid", "bha"})) == ["retinoid+acidsPM"]
        assert _ids(ConflictTags(pm={"retinoid", "aha"})) == ["retinoid+acidsPM"]

    def test_retinoid_and_acid_on_different_times_is_fine(self):
        assert _ids(ConflictTags(am={"bha"}, pm={"retinoid"})) == []

    def test_bpo_vitc_only_without_spf(self):
        assert _ids(ConflictTags(am={"bpo", "vitc"})) == ["bpo+vitcAM"]
        assert _ids(ConflictTags(am={"bpo", "vitc"}, am_has_spf=True)) == []

    def test_multiple_acids_across_day(self):
        assert _ids(ConflictTags(am={"aha"}, pm={"bha"})) == ["multiAcids"]

    def test_duplicates(self):
        assert _ids(ConflictTags(duplicates=1)) == ["dupActives"]

    def test_findings_keep_table_order(self):
        tags = ConflictTags(pm={"retinoid", "bha", "aha"}, duplicates=2)
        assert _ids(tags) == ["retinoid+acidsPM", "multiAcids", "dupActives"]

    def test_findings_carry_messages(self):
        [finding] = check_conflicts(ConflictTags(duplicates=1))
        assert finding.message


class TestProductTags:
    def test_canonical_tags(self):
        assert canonical_tag("Retinol") == "retinoid"
        assert canonical_tag("salicylic_acid") == "bha"
        assert canonical_tag("panthenol") == "panthenol"

    def test_placement_by_timing(self):
        tags = tags_from_products([
            (_product("r", ["retinol"]), ActiveTiming.PM),
            (_product("c", ["vitamin_c"]), ActiveTiming.AM),
            (_product("n", ["niacinamide"]), ActiveTiming.AM_PM),
        ])
        assert tags.am == {"vitc", "niacin"}
        assert tags.pm == {"retinoid", "niacin"}
        assert not tags.am_has_spf

    def test_spf_in_the_morning(self):
        tags = tags_from_products([(_product("s", [], step="spf"), ActiveTiming.AM)])
        assert tags.am_has_spf

    def test_duplicate_categories_counted(self):
        tags = tags_from_products([
            (_product("r1", ["retinol"]), ActiveTiming.PM),
            (_product("r2", ["adapalene"]), ActiveTiming.PM),
            (_product("h1", ["ha"]), ActiveTiming.AM),
            (_product("h2", ["hyaluronic_acid"]), ActiveTiming.AM),
        ])
        assert tags.duplicates == 1

    def test_retinoid_product_with_acid_product(self):
        tags = tags_from_products([
            (_product("r", ["retinal"]), ActiveTiming.PM),
            (_product("b", ["salicylic_acid"]), ActiveTiming.PM_ALT),
        ])
        assert _ids(tags) == ["retinoid+acidsPM"]
