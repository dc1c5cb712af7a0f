from __future__ import annotations

import dataclasses
import json
import logging
import typing as t

from .gemini_client import GeminiClient
from .plan_parser import MarkdownPlanParser, PlanParser, default_questions
from .prompt_builder import build_prompt

JsonDict = dict[str, t.Any]

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class GenerationResult:
    questions: list[JsonDict]
    ai_response: str | None
    used_fallback: bool = False


class SQLPrepGenerator:
    """Prompt -> Gemini -> parser, falling back to the default questions.

    ``generate`` never raises for model problems: missing credentials, HTTP
    errors, empty output and unparseable output all end in the fallback list.
    """

    def __init__(
        self,
        *,
        gemini: GeminiClient | None = None,
        parser: PlanParser | None = None,
        client_factory: t.Callable[[], GeminiClient] = GeminiClient,
    ) -> None:
        self._gemini = gemini
        self._client_factory = client_factory
        self.parser = parser or MarkdownPlanParser()

    @property
    def gemini(self) -> GeminiClient:
        if self._gemini is None:
            self._gemini = self._client_factory()
        return self._gemini

    def generate(self, answers: t.Mapping[str, t.Any]) -> GenerationResult:
        ai_response: str | None = None
        try:
            prompt = build_prompt(answers)
            logger.info("Generated prompt:\n%s", prompt)

            ai_response = self.gemini.generate_text(prompt)
            logger.debug("Gemini response text:\n%s", ai_response)

            if not ai_response or not ai_response.strip():
                raise RuntimeError("Received empty response from Gemini.")

            parsed = self.parser.parse(ai_response)
            if not parsed:
                logger.warning("Failed to parse Gemini response (%d chars), using default questions", len(ai_response))
                return GenerationResult(default_questions(), ai_response, used_fallback=True)

            return GenerationResult(parsed, ai_response)

        except Exception:
            logger.exception(
                "SQL prep generation failed, using default questions. Input: %s",
                json.dumps(dict(answers), default=str),
            )
            return GenerationResult(default_questions(), ai_response, used_fallback=True)
