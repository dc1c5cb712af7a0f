from __future__ import annotations

import dataclasses
import datetime as dt
import typing as t

from bson import ObjectId
from bson.errors import InvalidId

JsonDict = dict[str, t.Any]

DIFFICULTY_LEVELS = ("Easy", "Medium", "Hard")
PROGRESS_FILTERS = ("all", "completed", "incomplete")

DEFAULT_TITLE = "Untitled Question"
DEFAULT_DIFFICULTY = "Medium"
DEFAULT_CONCEPTS = ("SQL",)
DEFAULT_DESCRIPTION = "No description provided"
DEFAULT_CATEGORY = "Problem Solving"


def as_object_id(value: t.Any) -> ObjectId | None:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def _json_value(value: t.Any) -> t.Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dt.datetime):
        return value.isoformat()
    return value


@dataclasses.dataclass
class Question:
    title: str = DEFAULT_TITLE
    difficulty: str = DEFAULT_DIFFICULTY
    concepts: list[str] = dataclasses.field(default_factory=lambda: list(DEFAULT_CONCEPTS))
    description: str = DEFAULT_DESCRIPTION
    category: str = DEFAULT_CATEGORY
    completed: bool = False
    id: ObjectId | None = None

    @staticmethod
    def normalized(data: JsonDict) -> "Question":
        """Build a fresh, not-yet-completed question, filling defaults for
        anything missing or empty. Echoed ``completed`` values are ignored."""
        concepts = data.get("concepts")
        if isinstance(concepts, (list, tuple)):
            concepts = [str(c).strip() for c in concepts if str(c).strip()]
        if not concepts or not isinstance(concepts, list):
            concepts = list(DEFAULT_CONCEPTS)
        return Question(
            title=data.get("title") or DEFAULT_TITLE,
            difficulty=data.get("difficulty") or DEFAULT_DIFFICULTY,
            concepts=concepts,
            description=data.get("description") or DEFAULT_DESCRIPTION,
            category=data.get("category") or DEFAULT_CATEGORY,
            completed=False,
        )

    def to_dict(self) -> JsonDict:
        doc: JsonDict = {
            "title": self.title,
            "difficulty": self.difficulty,
            "concepts": list(self.concepts),
            "description": self.description,
            "category": self.category,
            "completed": self.completed,
        }
        if self.id is not None:
            doc["_id"] = self.id
        return doc

    def to_json(self) -> JsonDict:
        return {k: _json_value(v) for k, v in self.to_dict().items()}

    @staticmethod
    def from_dict(data: JsonDict) -> "Question":
        return Question(
            title=data.get("title", DEFAULT_TITLE),
            difficulty=data.get("difficulty", DEFAULT_DIFFICULTY),
            concepts=list(data.get("concepts") or []),
            description=data.get("description", DEFAULT_DESCRIPTION),
            category=data.get("category", DEFAULT_CATEGORY),
            completed=bool(data.get("completed", False)),
            id=data.get("_id"),
        )


@dataclasses.dataclass
class PrepPlan:
    user: str
    yearsOfExperience: int | float
    currentCTC: str
    targetCompanies: list[str]
    timeCommitment: str
    questions: list[Question]
    generatedAt: dt.datetime | None
    id: ObjectId | None = None

    def find_question(self, question_id: t.Any) -> Question | None:
        wanted = str(question_id)
        for q in self.questions:
            if q.id is not None and str(q.id) == wanted:
                return q
        return None

    def filter_questions(self, status: str = "all") -> list[Question]:
        if status == "completed":
            return [q for q in self.questions if q.completed]
        if status == "incomplete":
            return [q for q in self.questions if not q.completed]
        return list(self.questions)

    def progress(self) -> JsonDict:
        by_difficulty: dict[str, JsonDict] = {}
        for q in self.questions:
            entry = by_difficulty.setdefault(q.difficulty, {"total": 0, "completed": 0})
            entry["total"] += 1
            if q.completed:
                entry["completed"] += 1
        done = sum(1 for q in self.questions if q.completed)
        return {
            "total": len(self.questions),
            "completed": done,
            "pending": len(self.questions) - done,
            "byDifficulty": by_difficulty,
        }

    def metadata(self) -> JsonDict:
        return {
            "yearsOfExperience": self.yearsOfExperience,
            "currentCTC": self.currentCTC,
            "targetCompanies": list(self.targetCompanies),
            "timeCommitment": self.timeCommitment,
            "generatedAt": _json_value(self.generatedAt),
        }

    def to_dict(self) -> JsonDict:
        doc: JsonDict = {
            "user": self.user,
            "yearsOfExperience": self.yearsOfExperience,
            "currentCTC": self.currentCTC,
            "targetCompanies": list(self.targetCompanies),
            "timeCommitment": self.timeCommitment,
            "questions": [q.to_dict() for q in self.questions],
            "generatedAt": self.generatedAt,
        }
        if self.id is not None:
            doc["_id"] = self.id
        return doc

    def to_json(self, status: str = "all") -> JsonDict:
        out = {k: _json_value(v) for k, v in self.to_dict().items() if k != "questions"}
        out["questions"] = [q.to_json() for q in self.filter_questions(status)]
        return out

    @staticmethod
    def from_dict(data: JsonDict) -> "PrepPlan":
        generated_at = data.get("generatedAt")
        if not isinstance(generated_at, dt.datetime):
            # missing in storage, reported as unknown
            generated_at = None
        return PrepPlan(
            user=str(data.get("user")),
            yearsOfExperience=data.get("yearsOfExperience", 0),
            currentCTC=data.get("currentCTC", ""),
            targetCompanies=list(data.get("targetCompanies") or []),
            timeCommitment=data.get("timeCommitment", ""),
            questions=[Question.from_dict(q) for q in data.get("questions") or []],
            generatedAt=generated_at,
            id=data.get("_id"),
        )
