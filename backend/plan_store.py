from __future__ import annotations

import functools
import logging
import typing as t

from bson import ObjectId
from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from .errors import PersistenceFailure
from .models import PrepPlan, as_object_id

logger = logging.getLogger(__name__)

PLANS_COLLECTION = "sql_prep_plans"
USERS_COLLECTION = "users"

F = t.TypeVar("F", bound=t.Callable[..., t.Any])


def _storage_errors(fn: F) -> F:
    @functools.wraps(fn)
    def wrapper(*args: t.Any, **kwargs: t.Any) -> t.Any:
        try:
            return fn(*args, **kwargs)
        except PyMongoError as exc:
            logger.exception("MongoDB operation %s failed", fn.__name__)
            raise PersistenceFailure("Database operation failed") from exc

    return t.cast(F, wrapper)


class PlanStore:
    """Reads and writes PrepPlan documents, one per user."""

    def __init__(self, db: t.Any) -> None:
        self.plans = db[PLANS_COLLECTION]
        self.users = db[USERS_COLLECTION]

    @_storage_errors
    def find_latest(self, user_id: str) -> PrepPlan | None:
        doc = self.plans.find_one({"user": user_id}, sort=[("generatedAt", DESCENDING)])
        if not doc:
            return None
        return PrepPlan.from_dict(doc)

    @_storage_errors
    def save(self, plan: PrepPlan) -> PrepPlan:
        for q in plan.questions:
            if q.id is None:
                q.id = ObjectId()

        if plan.id is None:
            result = self.plans.insert_one(plan.to_dict())
            plan.id = result.inserted_id
        else:
            self.plans.replace_one({"_id": plan.id}, plan.to_dict())
        return plan

    @_storage_errors
    def set_question_completed(self, plan_id: ObjectId, question_id: t.Any, completed: bool) -> bool:
        qid = as_object_id(question_id)
        if qid is None:
            return False
        result = self.plans.update_one(
            {"_id": plan_id, "questions._id": qid},
            {"$set": {"questions.$.completed": completed}},
        )
        return result.matched_count > 0

    @_storage_errors
    def link_user(self, user_id: str, plan_id: ObjectId) -> None:
        key: t.Any = as_object_id(user_id) or user_id
        result = self.users.update_one({"_id": key}, {"$set": {"sqlPrepPlan": plan_id}})
        if result.matched_count == 0:
            logger.info("No user document for %s, plan reference not recorded", user_id)
