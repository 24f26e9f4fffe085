import pytest

from skinplan.schemas import AnswerOption, Question
from skinplan.services.engine import PlanEngine


@pytest.fixture
def engine() -> PlanEngine:
    return PlanEngine()


@pytest.fixture
def questions() -> list[Question]:
    """A small scored questionnaire covering every score shape."""
    return [
        Question(code="skin_feel", options=[
            AnswerOption(value="shiny", score={"oiliness": 3}),
            AnswerOption(value="tight", score={"dehydration": 3}),
            AnswerOption(value="very_tight", score={"dehydration": 4}),
            AnswerOption(value="fine", score={}),
        ]),
        Question(code="pores", options=[
            AnswerOption(value="large", score={"oiliness": 2}),
            AnswerOption(value="small", score=None),
        ]),
        Question(code="breakouts", options=[
            AnswerOption(value="often", score={"acne": 4, "concerns": ["acne"]}),
            AnswerOption(value="rare", score={"acne": 1}),
        ]),
        Question(code="reactions", options=[
            AnswerOption(value="burning", score={"sensitivity": 4}),
            AnswerOption(value="mild", score={"sensitivity": 2}),
        ]),
        Question(code="pregnancy", options=[
            AnswerOption(value="yes", score={"has_pregnancy": True}),
            AnswerOption(value="no", score={"has_pregnancy": False}),
        ]),
        Question(code="age", options=[
            AnswerOption(value="18_25", score={"age_group": "18_25"}),
            AnswerOption(value="35_44", score={"age_group": "35_44"}),
        ]),
        Question(code="conditions", options=[
            AnswerOption(value="rosacea", score={"rosacea": 3, "diagnoses": ["rosacea"]}),
            AnswerOption(value="eczema", score={"diagnoses": ["atopic eczema"], "sensitivity": 1}),
            AnswerOption(value="melasma", score={"pigmentation": 3}),
        ]),
        Question(code="broken", options=[
            AnswerOption(value="x", score="not-a-score-map"),
            AnswerOption(value="y", score={"oiliness": float("nan"), "acne": None}),
        ]),
    ]
