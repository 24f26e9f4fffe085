"""
Pydantic schemas — the single source of truth for all data contracts.

PlanResult is the handoff contract to whatever delivers the regimen (bot,
mini-app). Its serialized shape is relied upon downstream, so field names
and aliases here must not drift.
"""

from __future__ import annotations

import enum
from typing import Any, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


# ── Enums ────────────────────────────────────────────────────────────────────


class SkinType(str, enum.Enum):
    NORMAL = "normal"
    OILY = "oily"
    DRY = "dry"
    COMBINATION_OILY = "combination_oily"
    COMBINATION_DRY = "combination_dry"


class QuickSkinType(str, enum.Enum):
    """Four-way label used by the goal-driven path."""

    NORMAL = "normal"
    OILY = "oily"
    COMBO = "combo"
    DRY = "dry"


class SensitivityLevel(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RiskLevel(str, enum.Enum):
    NONE = "none"
    MEDIUM = "medium"
    HIGH = "high"


class PriceTier(str, enum.Enum):
    LOW = "low"
    MID = "mid"
    HIGH = "high"


class ActiveTiming(str, enum.Enum):
    AM = "AM"
    PM = "PM"
    PM_ALT = "PM-alt"
    AM_PM = "AM/PM"

    @property
    def in_am(self) -> bool:
        return self in (ActiveTiming.AM, ActiveTiming.AM_PM)

    @property
    def in_pm(self) -> bool:
        return self in (ActiveTiming.PM, ActiveTiming.PM_ALT, ActiveTiming.AM_PM)


class PmPhase(str, enum.Enum):
    ACTIVE = "A"
    BARRIER = "B"
    REST = "Rest"


class MatchStatus(str, enum.Enum):
    MATCHED = "matched"
    NO_MATCH = "no_match"


# ── Questionnaire input ──────────────────────────────────────────────────────


class QuestionnaireAnswers(BaseModel):
    """Answers of the short questionnaire, keyed by question code.

    The legacy short codes (q1_goals, q2_skin, ...) are accepted too.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    goals: list[str] = Field(default_factory=list, validation_alias=AliasChoices("goals", "q1_goals"))
    skin_type: Optional[str] = Field(default=None, validation_alias=AliasChoices("skin_type", "q2_skin"))
    reactivity: Optional[str] = Field(default=None, validation_alias=AliasChoices("reactivity", "q3_react"))
    zones: list[str] = Field(default_factory=list, validation_alias=AliasChoices("zones", "q4_zones"))
    current_base: list[str] = Field(default_factory=list, validation_alias=AliasChoices("current_base", "q5_base"))
    current_actives: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("current_actives", "q6_act")
    )
    safety: list[str] = Field(default_factory=list, validation_alias=AliasChoices("safety", "q7_safe"))
    procedures: list[str] = Field(default_factory=list, validation_alias=AliasChoices("procedures", "q8_proc"))
    am_time: Optional[str] = Field(default=None, validation_alias=AliasChoices("am_time", "q9_am"))
    pm_time: Optional[str] = Field(default=None, validation_alias=AliasChoices("pm_time", "q9_pm"))
    budget: Optional[str] = Field(default=None, validation_alias=AliasChoices("budget", "q10_budget"))
    preferences: list[str] = Field(default_factory=list, validation_alias=AliasChoices("preferences", "q11_prefs"))

    @field_validator(
        "goals", "zones", "current_base", "current_actives", "safety", "procedures", "preferences",
        mode="before",
    )
    @classmethod
    def _listify(cls, v: Any) -> list:
        # Single-choice clients sometimes send a bare string
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v


class AnswerOption(BaseModel):
    value: str
    score: Optional[Any] = None


class Question(BaseModel):
    code: str
    options: list[AnswerOption] = Field(default_factory=list)


class SubmittedAnswer(BaseModel):
    """One stored answer: single-choice ``value`` or multi-choice ``values``."""

    question_code: str
    value: Optional[str] = None
    values: list[str] = Field(default_factory=list)


# ── Profile ──────────────────────────────────────────────────────────────────


class MedicalMarkers(BaseModel):
    diagnoses: list[str] = Field(default_factory=list)
    allergies: list[str] = Field(default_factory=list)
    prescription_creams: list[str] = Field(default_factory=list)


class SkinProfile(BaseModel):
    """Canonical scoring output. Frozen: a retake produces a new version."""

    model_config = ConfigDict(frozen=True)

    skin_type: SkinType = SkinType.NORMAL
    sensitivity: SensitivityLevel = SensitivityLevel.LOW
    acne_level: int = Field(default=0, ge=0, le=5)
    dehydration_level: int = Field(default=0, ge=0, le=5)
    rosacea_risk: RiskLevel = RiskLevel.NONE
    pigmentation_risk: RiskLevel = RiskLevel.NONE
    age_group: Optional[str] = None
    has_pregnancy: bool = False
    concerns: list[str] = Field(default_factory=list)
    markers: MedicalMarkers = Field(default_factory=MedicalMarkers)
    notes: str = ""
    version: int = 1


# ── Rules ────────────────────────────────────────────────────────────────────


class Equals(BaseModel):
    kind: Literal["equals"] = "equals"
    value: Any


class OneOf(BaseModel):
    kind: Literal["one_of"] = "one_of"
    values: list[Any]


class RangeGte(BaseModel):
    kind: Literal["gte"] = "gte"
    bound: float


class RangeLte(BaseModel):
    kind: Literal["lte"] = "lte"
    bound: float


class ContainsAny(BaseModel):
    kind: Literal["contains_any"] = "contains_any"
    values: list[Any]


Condition = Union[Equals, OneOf, RangeGte, RangeLte, ContainsAny]


class RuleCondition(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    condition: Condition = Field(discriminator="kind")


def parse_conditions(raw: dict[str, Any]) -> list[RuleCondition]:
    """Expand the loose JSON condition map into explicit variants.

    ``{"acneLevel": {"gte": 1, "lte": 2}}`` becomes two conditions on the
    same field, both of which must hold.
    """
    parsed: list[RuleCondition] = []
    for field_name, cond in raw.items():
        if isinstance(cond, list):
            parsed.append(RuleCondition(field=field_name, condition=OneOf(values=cond)))
        elif isinstance(cond, dict):
            known = {"oneOf", "hasSome", "gte", "lte"}
            unknown = set(cond) - known
            if unknown or not cond:
                raise ValueError(f"Unsupported condition shape for {field_name!r}: {cond!r}")
            if "oneOf" in cond:
                parsed.append(RuleCondition(field=field_name, condition=OneOf(values=list(cond["oneOf"]))))
            if "hasSome" in cond:
                parsed.append(RuleCondition(field=field_name, condition=ContainsAny(values=list(cond["hasSome"]))))
            if "gte" in cond:
                parsed.append(RuleCondition(field=field_name, condition=RangeGte(bound=cond["gte"])))
            if "lte" in cond:
                parsed.append(RuleCondition(field=field_name, condition=RangeLte(bound=cond["lte"])))
        else:
            parsed.append(RuleCondition(field=field_name, condition=Equals(value=cond)))
    return parsed


class StepConfig(BaseModel):
    category: list[str] = Field(default_factory=list)
    concerns: list[str] = Field(default_factory=list)
    skin_types: list[str] = Field(default_factory=list)
    active_ingredients: list[str] = Field(default_factory=list)
    fragrance_free: Optional[bool] = None
    non_comedogenic: Optional[bool] = None
    timing: ActiveTiming = ActiveTiming.AM_PM
    max_items: int = Field(default=1, ge=1)


class RecommendationRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str = ""
    priority: int
    conditions: list[RuleCondition] = Field(default_factory=list)
    steps: dict[str, StepConfig] = Field(default_factory=dict)
    is_active: bool = True

    @field_validator("conditions", mode="before")
    @classmethod
    def _parse_loose_conditions(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return parse_conditions(v)
        return v


class RuleSet(BaseModel):
    """Immutable, priority-sorted rule catalog (highest priority first)."""

    model_config = ConfigDict(frozen=True)

    rules: tuple[RecommendationRule, ...] = ()

    @field_validator("rules")
    @classmethod
    def _priority_order(cls, v: tuple[RecommendationRule, ...]) -> tuple[RecommendationRule, ...]:
        # Equal priorities fall back to id so the order stays total
        return tuple(sorted((r for r in v if r.is_active), key=lambda r: (-r.priority, r.id)))

    @classmethod
    def from_rules(cls, rules: list) -> "RuleSet":
        return cls(rules=tuple(RecommendationRule.model_validate(r) for r in rules))


class RuleMatchResult(BaseModel):
    status: MatchStatus
    rule: Optional[RecommendationRule] = None

    @property
    def matched(self) -> bool:
        return self.status == MatchStatus.MATCHED


# ── Products ─────────────────────────────────────────────────────────────────


_TIER_SYNONYMS = {"mass": "low", "budget": "low", "premium": "high"}


class Product(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    brand: str = ""
    price_tier: PriceTier = PriceTier.MID
    step: str
    skin_types: frozenset[str] = frozenset({"any"})
    concerns: frozenset[str] = frozenset()
    avoid_if: frozenset[str] = frozenset()
    ingredients: frozenset[str] = frozenset()
    flags: frozenset[str] = frozenset()
    priority: int = 0
    published: bool = True

    @field_validator("price_tier", mode="before")
    @classmethod
    def _tier_synonyms(cls, v: Any) -> Any:
        if isinstance(v, str):
            return _TIER_SYNONYMS.get(v.lower(), v.lower())
        return v


class ProductCatalog(BaseModel):
    model_config = ConfigDict(frozen=True)

    products: tuple[Product, ...] = ()

    def published(self) -> list[Product]:
        return [p for p in self.products if p.published]


class SelectionContext(BaseModel):
    """Everything about the user the selector needs to filter a catalog."""

    skin_type: str = SkinType.NORMAL.value
    budget: PriceTier = PriceTier.MID
    contraindications: frozenset[str] = frozenset()
    preferences: frozenset[str] = frozenset()


# ── Plan building blocks ─────────────────────────────────────────────────────


class ActiveIngredientPick(BaseModel):
    id: str
    name: str
    when: ActiveTiming
    strength: int = 0


class PlanPicks(BaseModel):
    cleanser: Optional[str] = None
    moisturizer: Optional[str] = None
    barrier: Optional[str] = None
    spf: Optional[str] = None
    actives: list[str] = Field(default_factory=list)


class Routine(BaseModel):
    am: list[str] = Field(default_factory=list)
    pm: list[str] = Field(default_factory=list)


class DaySlot(BaseModel):
    phase: str
    steps: list[str] = Field(default_factory=list)


class ScheduleDay(BaseModel):
    day: int = Field(ge=1, le=28)
    am: DaySlot
    pm: DaySlot


class CartItem(BaseModel):
    role: str
    name: str


class ConflictFinding(BaseModel):
    id: str
    message: str


class PlanResult(BaseModel):
    """Output contract of the goal-driven path."""

    model_config = ConfigDict(populate_by_name=True)

    detected_type: str
    sensitivity: bool
    goals: list[str]
    budget: PriceTier
    routine: Routine
    picks: PlanPicks
    schedule28: list[ScheduleDay]
    cart: list[CartItem]
    coverage: dict[str, bool]
    conflict_rules: list[ConflictFinding] = Field(default_factory=list, alias="conflictRules")
    notes: list[str] = Field(default_factory=list)


class RuleRecommendation(BaseModel):
    """Output of the rule-driven path."""

    model_config = ConfigDict(populate_by_name=True)

    profile: SkinProfile
    status: MatchStatus
    rule_id: Optional[int] = None
    rule_name: Optional[str] = None
    priority: Optional[int] = None
    picks: dict[str, list[str]] = Field(default_factory=dict)
    product_ids: list[str] = Field(default_factory=list)
    missing_steps: list[str] = Field(default_factory=list)
    conflict_rules: list[ConflictFinding] = Field(default_factory=list, alias="conflictRules")
