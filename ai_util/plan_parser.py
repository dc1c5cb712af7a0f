from __future__ import annotations

import copy
import logging
import re
import typing as t

JsonDict = dict[str, t.Any]

logger = logging.getLogger(__name__)

_DEFAULT_QUESTIONS: list[JsonDict] = [
    {
        "title": "Advanced SQL Join Techniques",
        "difficulty": "Hard",
        "concepts": ["Joins", "Complex Aggregations"],
        "description": "Solve complex data integration problems using advanced join strategies.",
        "category": "Problem Solving",
        "completed": False,
    },
    {
        "title": "Indexing and Performance Optimization",
        "difficulty": "Medium",
        "concepts": ["Indexes", "Query Optimization"],
        "description": "Improve query performance by analyzing different indexing strategies.",
        "category": "Performance Tuning",
        "completed": False,
    },
]


def default_questions() -> list[JsonDict]:
    """The fixed fallback list used when Gemini gives us nothing usable."""
    return copy.deepcopy(_DEFAULT_QUESTIONS)


class PlanParser(t.Protocol):
    def parse(self, text: str) -> list[JsonDict]:
        ...


class MarkdownPlanParser:
    """Reads numbered ``**N. Title:** ... **Description:** ...`` blocks.

    Each block runs until the next ``**N.`` marker or the end of the text.
    Marker spelling and field order are fixed. Anything that does not follow
    the template is skipped, so free prose yields an empty list.
    """

    BLOCK_RE = re.compile(
        r"\*\*(\d+)\.\s*Title:\*\*\s*(.*?)"
        r"\s*\*\*Difficulty:\*\*\s*(.*?)"
        r"\s*\*\*Concepts:\*\*\s*(.*?)"
        r"\s*\*\*Description:\*\*\s*(.*?)"
        r"(?=\*\*\d+\.|\Z)",
        re.DOTALL,
    )

    def parse(self, text: str) -> list[JsonDict]:
        questions: list[JsonDict] = []
        for m in self.BLOCK_RE.finditer(text or ""):
            questions.append(
                {
                    "title": m.group(2).strip(),
                    "difficulty": m.group(3).strip(),
                    "concepts": [c.strip() for c in m.group(4).split(",")],
                    "description": m.group(5).strip(),
                    "category": "Problem Solving",
                    "completed": False,
                }
            )
        logger.info("Found %d questions using markdown blocks", len(questions))
        return questions
