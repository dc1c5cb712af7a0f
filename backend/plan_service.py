from __future__ import annotations

import datetime as dt
import logging
import math
import typing as t

from ai_util import SQLPrepGenerator

from .errors import GenerationFailure, NotFound, ValidationError
from .models import DIFFICULTY_LEVELS, PrepPlan, Question
from .plan_store import PlanStore

JsonDict = dict[str, t.Any]

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("yearsOfExperience", "currentCTC", "targetCompanies", "timeCommitment")
NO_AI_RESPONSE = "No AI response available"


def _is_present(value: t.Any) -> bool:
    if value is None or isinstance(value, bool):
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple)):
        return len(value) > 0
    return True


def _split_companies(value: t.Any) -> list[str]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        return []
    return [str(c).strip() for c in value if str(c).strip()]


def _coerce_years(value: t.Any) -> int | float:
    try:
        years = float(value)
        if not math.isfinite(years):
            raise ValueError(value)
    except (TypeError, ValueError):
        raise ValidationError(
            "Invalid input parameters",
            details={"yearsOfExperience": "must be a number"},
        )
    if years < 0:
        raise ValidationError(
            "Invalid input parameters",
            details={"yearsOfExperience": "must not be negative"},
        )
    return int(years) if years.is_integer() else years


def validate_answers(answers: t.Mapping[str, t.Any] | None) -> JsonDict:
    """Check the questionnaire and return a cleaned copy.

    Missing fields raise ValidationError whose details map each required
    field to whether it was supplied.
    """
    if answers is None:
        answers = {}
    if not isinstance(answers, t.Mapping):
        raise ValidationError("Invalid request body", details={"body": "must be a JSON object"})
    companies = _split_companies(answers.get("targetCompanies"))
    presence = {
        "yearsOfExperience": _is_present(answers.get("yearsOfExperience")),
        "currentCTC": _is_present(answers.get("currentCTC")),
        "targetCompanies": bool(companies),
        "timeCommitment": _is_present(answers.get("timeCommitment")),
    }
    if not all(presence.values()):
        raise ValidationError("Missing required input parameters", details=presence)

    return {
        "yearsOfExperience": _coerce_years(answers["yearsOfExperience"]),
        "currentCTC": str(answers["currentCTC"]).strip(),
        "targetCompanies": companies,
        "timeCommitment": str(answers["timeCommitment"]).strip(),
    }


class PlanService:
    def __init__(self, store: PlanStore, generator: SQLPrepGenerator) -> None:
        self.store = store
        self.generator = generator

    def generate_plan(self, user_id: str, answers: t.Mapping[str, t.Any] | None) -> JsonDict:
        cleaned = validate_answers(answers)
        logger.info("Generate plan request for user %s: %s", user_id, cleaned)

        result = self.generator.generate(cleaned)
        if not result.questions:
            logger.error("No questions generated for user %s", user_id)
            raise GenerationFailure("Failed to generate SQL prep questions")

        questions = [Question.normalized(q) for q in result.questions]
        unknown = {q.difficulty for q in questions} - set(DIFFICULTY_LEVELS)
        if unknown:
            # kept as-is, only reported
            logger.warning("Unrecognised difficulty values: %s", sorted(unknown))
        logger.info("Validated questions count: %d (fallback=%s)", len(questions), result.used_fallback)

        generated_at = dt.datetime.now(dt.timezone.utc)
        plan = self.store.find_latest(user_id)
        if plan is not None:
            plan.yearsOfExperience = cleaned["yearsOfExperience"]
            plan.currentCTC = cleaned["currentCTC"]
            plan.targetCompanies = cleaned["targetCompanies"]
            plan.timeCommitment = cleaned["timeCommitment"]
            plan.questions = questions
            plan.generatedAt = generated_at
        else:
            plan = PrepPlan(
                user=user_id,
                questions=questions,
                generatedAt=generated_at,
                **cleaned,
            )

        plan = self.store.save(plan)
        logger.info("SQL prep plan saved: %s", plan.id)
        self.store.link_user(user_id, plan.id)

        return {
            "questions": [q.to_json() for q in plan.questions],
            "metadata": plan.metadata(),
            "aiResponse": result.ai_response or NO_AI_RESPONSE,
        }

    def get_saved_plan(self, user_id: str) -> PrepPlan:
        plan = self.store.find_latest(user_id)
        logger.info("Fetched SQL prep plan for user %s: %s", user_id, "found" if plan else "not found")
        if plan is None:
            raise NotFound("No SQL prep plan found")
        return plan

    def update_progress(self, user_id: str, question_id: t.Any, completed: bool) -> PrepPlan:
        if not question_id:
            raise ValidationError("Question ID is required", details={"questionId": False})
        if not isinstance(completed, bool):
            raise ValidationError("completed must be a boolean", details={"completed": False})

        plan = self.get_saved_plan(user_id)
        question = plan.find_question(question_id)
        if question is None or plan.id is None:
            raise NotFound("Question not found")

        if not self.store.set_question_completed(plan.id, question.id, completed):
            # the plan was regenerated between our read and write
            raise NotFound("Question not found")

        question.completed = completed
        logger.info("Question %s of plan %s marked completed=%s", question.id, plan.id, completed)
        return plan

    def get_progress(self, user_id: str) -> JsonDict:
        return self.get_saved_plan(user_id).progress()
