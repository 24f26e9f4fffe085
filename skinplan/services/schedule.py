"""
28-day schedule — a stable AM routine and a 3-night PM rotation
(A = active night, B = barrier/soft night, Rest).
"""

from typing import Optional

from skinplan.schemas import ActiveIngredientPick, DaySlot, PlanPicks, PmPhase, Routine, ScheduleDay

SCHEDULE_DAYS = 28
PHASE_CYCLE = (PmPhase.ACTIVE, PmPhase.BARRIER, PmPhase.REST)
AM_PHASE = "Base"

# Step labels, also used when a step has no product
CLEANSE = "Cleanse"
GENTLE_CLEANSE = "Gentle cleanse"
MOISTURIZE = "Moisturize"
SPF = "SPF 30-50"
MAKEUP_REMOVAL = "Makeup removal / cleansing oil"
CREAM_OR_BALM = "Cream/balm"
BARRIER = "Barrier balm"


def phase_for_day(day: int) -> PmPhase:
    return PHASE_CYCLE[(day - 1) % len(PHASE_CYCLE)]


def routine_am_active(pool: list[ActiveIngredientPick]) -> Optional[ActiveIngredientPick]:
    """First active that can go on in the morning (never a retinoid or BHA)."""
    return next((a for a in pool if a.when.in_am and a.id not in ("retinoid", "bha")), None)


def routine_pm_active(pool: list[ActiveIngredientPick]) -> Optional[ActiveIngredientPick]:
    """First evening active; hyaluronic acid alone does not make an active night."""
    return next((a for a in pool if a.when.in_pm and a.id != "ha"), None)


def build_routine(
    pool: list[ActiveIngredientPick], compact_am: bool, compact_pm: bool, rich_pm: bool
) -> Routine:
    am = [GENTLE_CLEANSE if compact_am else CLEANSE]
    am_active = routine_am_active(pool)
    if am_active and not compact_am:
        am.append(am_active.name)
    am.extend([MOISTURIZE, SPF])

    pm: list[str] = []
    if rich_pm and not compact_pm:
        pm.append(MAKEUP_REMOVAL)
    pm.append(CLEANSE)
    pm_active = routine_pm_active(pool)
    if pm_active and not compact_pm:
        pm.append(pm_active.name)
    pm.append(CREAM_OR_BALM)

    return Routine(am=am, pm=pm)


def am_steps(picks: PlanPicks, am_active: Optional[str], compact_am: bool) -> list[str]:
    steps = [picks.cleanser or (GENTLE_CLEANSE if compact_am else CLEANSE)]
    if am_active and not compact_am:
        steps.append(am_active)
    steps.append(picks.moisturizer or MOISTURIZE)
    steps.append(picks.spf or SPF)
    return steps


def pm_steps(phase: PmPhase, picks: PlanPicks, compact_pm: bool, rich_pm: bool) -> list[str]:
    cleanser = picks.cleanser or CLEANSE
    barrier = picks.barrier or BARRIER
    primary = picks.actives[0] if picks.actives else None
    secondary = picks.actives[1] if len(picks.actives) > 1 else None

    steps = [MAKEUP_REMOVAL] if rich_pm and not compact_pm else []
    if phase == PmPhase.ACTIVE:
        steps.extend([cleanser, primary or barrier, picks.moisturizer or MOISTURIZE])
    elif phase == PmPhase.BARRIER:
        steps.extend([cleanser, secondary or barrier, picks.moisturizer or CREAM_OR_BALM])
    else:
        steps.extend([cleanser, barrier])
    return steps


def generate_schedule(
    picks: PlanPicks,
    am_active: Optional[str] = None,
    compact_am: bool = False,
    compact_pm: bool = False,
    rich_pm: bool = False,
) -> list[ScheduleDay]:
    """Exactly SCHEDULE_DAYS entries; a pure function of its arguments."""
    am = DaySlot(phase=AM_PHASE, steps=am_steps(picks, am_active, compact_am))
    return [
        ScheduleDay(
            day=day,
            am=am.model_copy(deep=True),
            pm=DaySlot(
                phase=phase_for_day(day).value,
                steps=pm_steps(phase_for_day(day), picks, compact_pm, rich_pm),
            ),
        )
        for day in range(1, SCHEDULE_DAYS + 1)
    ]
