"""
Unit tests for rule parsing and first-match rule evaluation.
"""

import pytest
from pydantic import ValidationError

from skinplan.catalog import default_rules
from skinplan.schemas import (
    ContainsAny,
    Equals,
    MedicalMarkers,
    OneOf,
    RangeGte,
    RangeLte,
    RecommendationRule,
    RiskLevel,
    RuleCondition,
    RuleSet,
    SensitivityLevel,
    SkinProfile,
    SkinType,
    parse_conditions,
)
from skinplan.services.rules import derive_scoring_view, evaluate_condition, match_first


def _profile(**overrides) -> SkinProfile:
    defaults = dict(skin_type=SkinType.NORMAL)
    defaults.update(overrides)
    return SkinProfile(**defaults)


def _rule(id: int, priority: int, conditions=None, **extra) -> RecommendationRule:
    return RecommendationRule(
        id=id,
        name=f"rule {id}",
        priority=priority,
        conditions=conditions or {},
        steps={"cleanser": {"category": ["cleanser"]}},
        **extra,
    )


# ── Condition parsing ───────────────────────────────────────────────────────


class TestParseConditions:
    def test_scalar_is_equality(self):
        [cond] = parse_conditions({"hasPregnancy": True})
        assert cond.field == "hasPregnancy"
        assert cond.condition == Equals(value=True)

    def test_list_is_one_of(self):
        [cond] = parse_conditions({"skinType": ["oily", "combination_oily"]})
        assert isinstance(cond.condition, OneOf)
        assert cond.condition.values == ["oily", "combination_oily"]

    def test_range_bounds_combine(self):
        conds = parse_conditions({"acneLevel": {"gte": 1, "lte": 2}})
        assert [type(c.condition) for c in conds] == [RangeGte, RangeLte]
        assert all(c.field == "acneLevel" for c in conds)

    def test_has_some(self):
        [cond] = parse_conditions({"concerns": {"hasSome": ["acne"]}})
        assert isinstance(cond.condition, ContainsAny)

    def test_unknown_shape_rejected(self):
        with pytest.raises(ValueError):
            parse_conditions({"acneLevel": {"between": [1, 2]}})

    def test_empty_dict_rejected(self):
        with pytest.raises(ValueError):
            parse_conditions({"acneLevel": {}})

    def test_rule_accepts_loose_conditions(self):
        rule = _rule(1, 10, {"skinType": "dry", "acneLevel": {"gte": 3}})
        assert len(rule.conditions) == 2

    def test_bad_rule_condition_is_validation_error(self):
        with pytest.raises(ValidationError):
            _rule(1, 10, {"acneLevel": {"near": 3}})


class TestRuleSet:
    def test_sorted_by_descending_priority(self):
        rule_set = RuleSet.from_rules([_rule(1, 5), _rule(2, 50), _rule(3, 20)])
        assert [r.id for r in rule_set.rules] == [2, 3, 1]

    def test_equal_priority_breaks_on_id(self):
        rule_set = RuleSet.from_rules([_rule(7, 10), _rule(3, 10)])
        assert [r.id for r in rule_set.rules] == [3, 7]

    def test_inactive_rules_dropped(self):
        rule_set = RuleSet.from_rules([_rule(1, 10), _rule(2, 99, is_active=False)])
        assert [r.id for r in rule_set.rules] == [1]


# ── Derived view ────────────────────────────────────────────────────────────


class TestScoringView:
    def test_defaults(self):
        view = derive_scoring_view(_profile())
        assert view["barrier"] == 100
        assert view["hydration"] == 100
        assert view["inflammation"] == 0
        assert view["oiliness"] == 50
        assert view["pigmentation"] == 0

    def test_inflammation_from_acne(self):
        view = derive_scoring_view(_profile(acne_level=4, concerns=["acne"]))
        assert view["inflammation"] == 82

    def test_inflammation_clamped(self):
        view = derive_scoring_view(
            _profile(acne_level=5, concerns=["acne"], markers=MedicalMarkers(diagnoses=["acne"]))
        )
        assert view["inflammation"] == 100

    def test_barrier_from_sensitivity_and_diagnoses(self):
        view = derive_scoring_view(_profile(
            sensitivity=SensitivityLevel.HIGH,
            markers=MedicalMarkers(diagnoses=["Atopic dermatitis"], allergies=["nickel"]),
        ))
        assert view["barrier"] == 0

    def test_hydration_inverts_dehydration(self):
        assert derive_scoring_view(_profile(dehydration_level=3))["hydration"] == 40

    def test_oiliness_and_pigmentation_mapped(self):
        view = derive_scoring_view(
            _profile(skin_type=SkinType.COMBINATION_OILY, pigmentation_risk=RiskLevel.MEDIUM)
        )
        assert view["oiliness"] == 75
        assert view["pigmentation"] == 50


# ── Evaluation ──────────────────────────────────────────────────────────────


class TestEvaluateCondition:
    def test_camel_case_field_names(self):
        view = derive_scoring_view(_profile(acne_level=3))
        cond = RuleCondition(field="acneLevel", condition=RangeGte(bound=3))
        assert evaluate_condition(cond, view)

    def test_range_fails_on_missing_value(self):
        view = derive_scoring_view(_profile())
        cond = RuleCondition(field="ageGroup", condition=RangeGte(bound=1))
        assert not evaluate_condition(cond, view)

    def test_contains_any(self):
        view = derive_scoring_view(_profile(concerns=["acne", "redness"]))
        hit = RuleCondition(field="concerns", condition=ContainsAny(values=["redness"]))
        miss = RuleCondition(field="concerns", condition=ContainsAny(values=["aging"]))
        assert evaluate_condition(hit, view)
        assert not evaluate_condition(miss, view)

    def test_contains_any_on_scalar_field_fails(self):
        view = derive_scoring_view(_profile())
        cond = RuleCondition(field="skinType", condition=ContainsAny(values=["normal"]))
        assert not evaluate_condition(cond, view)


class TestMatchFirst:
    def test_highest_priority_full_match_wins(self):
        rule_set = RuleSet.from_rules([
            _rule(1, 10),
            _rule(2, 100, {"skinType": "dry"}),
            _rule(3, 50, {"skinType": "normal"}),
        ])
        result = match_first(_profile(), rule_set)
        assert result.matched
        assert result.rule.id == 3

    def test_partial_match_is_not_a_match(self):
        rule_set = RuleSet.from_rules([_rule(1, 10, {"skinType": "normal", "acneLevel": {"gte": 3}})])
        result = match_first(_profile(acne_level=2), rule_set)
        assert not result.matched
        assert result.rule is None

    def test_empty_rule_set_reports_no_match(self):
        assert match_first(_profile(), RuleSet()).status.value == "no_match"

    def test_default_catalog_always_has_a_fallback(self):
        result = match_first(_profile(), default_rules())
        assert result.rule.name == "Basic care"

    @pytest.mark.parametrize("overrides, rule_id", [
        (dict(has_pregnancy=True, skin_type=SkinType.OILY, acne_level=5), 1),
        (dict(skin_type=SkinType.OILY, acne_level=3), 2),
        (dict(skin_type=SkinType.DRY, sensitivity=SensitivityLevel.HIGH), 3),
        (dict(markers=MedicalMarkers(diagnoses=["eczema"])), 4),
        (dict(rosacea_risk=RiskLevel.MEDIUM), 5),
        (dict(pigmentation_risk=RiskLevel.HIGH), 6),
        (dict(dehydration_level=2), 7),
        (dict(age_group="45_plus"), 8),
        (dict(), 9),
    ])
    def test_default_catalog(self, overrides, rule_id):
        assert match_first(_profile(**overrides), default_rules()).rule.id == rule_id


class TestConditionVocabulary:
    @pytest.mark.parametrize("skin_type", [SkinType.COMBINATION_OILY, SkinType.COMBINATION_DRY])
    def test_combo_rule_matches_combination_subtypes(self, skin_type):
        rule_set = RuleSet.from_rules([_rule(1, 5, {"skinType": "combo"})])
        assert match_first(_profile(skin_type=skin_type), rule_set).matched

    def test_combo_in_one_of(self):
        rule_set = RuleSet.from_rules([_rule(1, 5, {"skinType": ["oily", "combination"]})])
        assert match_first(_profile(skin_type=SkinType.COMBINATION_DRY), rule_set).matched

    def test_combo_rule_skips_other_types(self):
        rule_set = RuleSet.from_rules([_rule(1, 5, {"skinType": "combo"})])
        assert not match_first(_profile(skin_type=SkinType.OILY), rule_set).matched

    def test_subtype_rule_stays_specific(self):
        rule_set = RuleSet.from_rules([_rule(1, 5, {"skinType": "combination_oily"})])
        assert not match_first(_profile(skin_type=SkinType.COMBINATION_DRY), rule_set).matched

    def test_number_never_equals_flag(self):
        rule_set = RuleSet.from_rules([_rule(1, 5, {"hasPregnancy": 1})])
        assert not match_first(_profile(has_pregnancy=True), rule_set).matched

    def test_flag_never_equals_number(self):
        rule_set = RuleSet.from_rules([_rule(1, 5, {"acneLevel": True})])
        assert not match_first(_profile(acne_level=1), rule_set).matched

    def test_flag_not_in_numeric_one_of(self):
        rule_set = RuleSet.from_rules([_rule(1, 5, {"acneLevel": [True, False]})])
        assert not match_first(_profile(acne_level=0), rule_set).matched

    def test_flag_equality_still_holds(self):
        rule_set = RuleSet.from_rules([_rule(1, 5, {"hasPregnancy": True})])
        assert match_first(_profile(has_pregnancy=True), rule_set).matched
