#!/usr/bin/env python3
"""
Quick smoke run — builds a plan for a sample questionnaire and prints it.

Uses the catalogs configured in .env (built-in ones when unset).
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import logging

from dotenv import load_dotenv

from skinplan.catalog import load_products, load_rules
from skinplan.config import Settings
from skinplan.schemas import QuestionnaireAnswers
from skinplan.services.engine import PlanEngine

load_dotenv()
logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger(__name__)

sample_answers = QuestionnaireAnswers(
    goals=["acne", "postacne", "dry"],
    skin_type="combo",
    reactivity="some",
    safety=["none"],
    am_time="4_7",
    pm_time="8p",
    budget="opt",
    preferences=["ff"],
)


def main():
    settings = Settings()
    engine = PlanEngine(
        products=load_products(settings.product_catalog_path),
        rules=load_rules(settings.rule_catalog_path),
        default_budget=settings.default_budget,
    )

    print("=" * 60)
    print(f"Answers: {sample_answers.model_dump_json(indent=2)}")
    print("=" * 60)

    try:
        plan = engine.build_plan(sample_answers)
        print("\nSUCCESS — Plan built:")
        print(f"  detected_type: {plan.detected_type}")
        print(f"  AM: {' → '.join(plan.routine.am)}")
        print(f"  PM: {' → '.join(plan.routine.pm)}")
        print(f"  cart: {len(plan.cart)} items")
        print(f"  conflicts: {[c.id for c in plan.conflict_rules]}")
        print("\nFull output:")
        print(plan.model_dump_json(indent=2, by_alias=True))
    except Exception as e:
        logger.error(f"FAILED — {type(e).__name__}: {e}", exc_info=True)
        raise


if __name__ == "__main__":
    main()
