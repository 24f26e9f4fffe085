from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from skinplan.catalog import load_products, load_rules
from skinplan.config import get_settings
from skinplan.schemas import (
    PlanResult,
    PriceTier,
    Question,
    QuestionnaireAnswers,
    RecommendationRule,
    RuleRecommendation,
    RuleSet,
    SubmittedAnswer,
)
from skinplan.services.engine import PlanEngine
import logging

settings = get_settings()

# Set up logging
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="SkinPlan")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Catalogs are materialized once; the engine never goes back to storage
engine = PlanEngine(
    products=load_products(settings.product_catalog_path),
    rules=load_rules(settings.rule_catalog_path),
    default_budget=settings.default_budget,
)


class PlanRequest(BaseModel):
    answers: QuestionnaireAnswers


class RecommendationRequest(BaseModel):
    answers: list[SubmittedAnswer]
    questions: list[Question]
    budget: Optional[PriceTier] = None
    preferences: list[str] = Field(default_factory=list)
    contraindications: list[str] = Field(default_factory=list)
    rules: Optional[list[RecommendationRule]] = None


@app.get("/")
async def health_check():
    return {"status": "healthy", "service": "SkinPlan"}


@app.post("/plan", response_model=PlanResult, response_model_by_alias=True)
async def build_plan(request: PlanRequest):
    try:
        return engine.build_plan(request.answers)
    except Exception as e:
        logger.error(f"Error building plan: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to build plan")


@app.post("/recommendations", response_model=RuleRecommendation, response_model_by_alias=True)
async def recommend(request: RecommendationRequest):
    try:
        rules = RuleSet(rules=tuple(request.rules)) if request.rules is not None else None
        return engine.recommend(
            request.answers,
            request.questions,
            budget=request.budget,
            preferences=request.preferences,
            contraindications=request.contraindications,
            rules=rules,
        )
    except Exception as e:
        logger.error(f"Error building recommendations: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to build recommendations")
