from .gemini_client import GeminiClient
from .plan_generator import GenerationResult, SQLPrepGenerator
from .plan_parser import MarkdownPlanParser, PlanParser, default_questions
from .prompt_builder import QUESTION_COUNT, build_prompt

__all__ = [
    "GeminiClient",
    "GenerationResult",
    "MarkdownPlanParser",
    "PlanParser",
    "QUESTION_COUNT",
    "SQLPrepGenerator",
    "build_prompt",
    "default_questions",
]
