import datetime as dt
import json
import unittest
from unittest.mock import MagicMock

from bson import ObjectId

import main
from ai_util import SQLPrepGenerator, default_questions
from backend.errors import NotFound, PersistenceFailure, ValidationError
from backend.models import PrepPlan, Question
from backend.plan_service import PlanService
from backend.plan_store import PLANS_COLLECTION, USERS_COLLECTION, PlanStore

HEADERS = {"X-User-Id": "user-1"}

ANSWERS = {
    "yearsOfExperience": "3",
    "currentCTC": "5-10L",
    "targetCompanies": ["Google", "Amazon"],
    "timeCommitment": "5-10 hours",
}

RESPONSE = (
    "**1. Title:** Consecutive Logins\n**Difficulty:** Hard\n**Concepts:** Window Functions, Gaps and Islands\n"
    "**Description:** Find users who logged in on three consecutive days.\n"
    "**2. Title:** Customers Without Orders\n**Difficulty:** Easy\n**Concepts:** LEFT JOIN\n"
    "**Description:** List customers who never placed an order."
)


def make_plan():
    return PrepPlan(
        user="user-1",
        yearsOfExperience=3,
        currentCTC="5-10L",
        targetCompanies=["Google"],
        timeCommitment="5-10 hours",
        questions=[
            Question(title="Done", completed=True, id=ObjectId()),
            Question(title="Todo", id=ObjectId()),
        ],
        generatedAt=dt.datetime(2024, 5, 1, tzinfo=dt.timezone.utc),
        id=ObjectId(),
    )


class TestRoutes(unittest.TestCase):
    def setUp(self):
        self.app = main.server.test_client()
        self.mock_service = MagicMock()
        main.plan_service = self.mock_service

    def tearDown(self):
        main.plan_service = None

    def test_hello(self):
        response = self.app.get("/api/hello")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(json.loads(response.data), {"message": "API Working!"})

    def test_requests_without_identity_are_rejected(self):
        response = self.app.get("/api/sql-prep/saved-plan")

        self.assertEqual(response.status_code, 401)
        self.mock_service.get_saved_plan.assert_not_called()

    def test_generate(self):
        self.mock_service.generate_plan.return_value = {"questions": [], "metadata": {}, "aiResponse": "text"}

        response = self.app.post("/api/sql-prep/generate", json=ANSWERS, headers=HEADERS)

        self.assertEqual(response.status_code, 201)
        self.assertEqual(json.loads(response.data)["aiResponse"], "text")
        self.mock_service.generate_plan.assert_called_once_with("user-1", ANSWERS)

    def test_generate_validation_error(self):
        self.mock_service.generate_plan.side_effect = ValidationError(
            "Missing required input parameters", details={"currentCTC": False}
        )

        response = self.app.post("/api/sql-prep/generate", json={}, headers=HEADERS)

        self.assertEqual(response.status_code, 400)
        data = json.loads(response.data)
        self.assertEqual(data["message"], "Missing required input parameters")
        self.assertEqual(data["details"], {"currentCTC": False})

    def test_saved_plan(self):
        plan = make_plan()
        self.mock_service.get_saved_plan.return_value = plan

        response = self.app.get("/api/sql-prep/saved-plan", headers=HEADERS)

        self.assertEqual(response.status_code, 200)
        data = json.loads(response.data)
        self.assertEqual(data["_id"], str(plan.id))
        self.assertEqual([q["title"] for q in data["questions"]], ["Done", "Todo"])

    def test_saved_plan_status_filter(self):
        self.mock_service.get_saved_plan.return_value = make_plan()

        response = self.app.get("/api/sql-prep/saved-plan?status=incomplete", headers=HEADERS)
        self.assertEqual([q["title"] for q in json.loads(response.data)["questions"]], ["Todo"])

        response = self.app.get("/api/sql-prep/saved-plan?status=later", headers=HEADERS)
        self.assertEqual(response.status_code, 400)

    def test_saved_plan_not_found(self):
        self.mock_service.get_saved_plan.side_effect = NotFound("No SQL prep plan found")

        response = self.app.get("/api/sql-prep/saved-plan", headers=HEADERS)

        self.assertEqual(response.status_code, 404)
        self.assertEqual(json.loads(response.data), {"message": "No SQL prep plan found"})

    def test_update_progress(self):
        plan = make_plan()
        self.mock_service.update_progress.return_value = plan
        qid = str(plan.questions[1].id)

        response = self.app.patch(
            "/api/sql-prep/update-progress", json={"questionId": qid, "completed": True}, headers=HEADERS
        )

        self.assertEqual(response.status_code, 200)
        self.mock_service.update_progress.assert_called_once_with("user-1", qid, True)
        self.assertEqual(len(json.loads(response.data)["questions"]), 2)

    def test_progress(self):
        self.mock_service.get_progress.return_value = {"total": 2, "completed": 1, "pending": 1, "byDifficulty": {}}

        response = self.app.get("/api/sql-prep/progress", headers=HEADERS)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(json.loads(response.data)["completed"], 1)

    def test_persistence_failure_is_a_server_error(self):
        self.mock_service.get_saved_plan.side_effect = PersistenceFailure("Database operation failed")

        response = self.app.get("/api/sql-prep/saved-plan", headers=HEADERS)

        self.assertEqual(response.status_code, 500)
        self.assertEqual(json.loads(response.data), {"message": "Database operation failed"})

    def test_unexpected_errors_hide_details(self):
        self.mock_service.generate_plan.side_effect = KeyError("secret internals")

        response = self.app.post("/api/sql-prep/generate", json=ANSWERS, headers=HEADERS)

        self.assertEqual(response.status_code, 500)
        self.assertNotIn("secret", response.get_data(as_text=True))

    def test_non_object_bodies_are_rejected(self):
        for body in (["x"], "answers", 7):
            response = self.app.post("/api/sql-prep/generate", json=body, headers=HEADERS)
            self.assertEqual(response.status_code, 400)
            self.assertEqual(json.loads(response.data)["message"], "Invalid request body")

            response = self.app.patch("/api/sql-prep/update-progress", json=body, headers=HEADERS)
            self.assertEqual(response.status_code, 400)
            self.assertEqual(json.loads(response.data)["message"], "Invalid request body")

        self.mock_service.generate_plan.assert_not_called()
        self.mock_service.update_progress.assert_not_called()

    def test_unknown_route_is_404(self):
        response = self.app.get("/api/sql-prep/nope", headers=HEADERS)
        self.assertEqual(response.status_code, 404)


class TestGenerateEndToEnd(unittest.TestCase):
    def setUp(self):
        self.app = main.server.test_client()
        self.mock_plans = MagicMock()
        self.mock_users = MagicMock()
        self.mock_plans.find_one.return_value = None
        self.mock_plans.insert_one.return_value.inserted_id = ObjectId()
        self.mock_gemini = MagicMock()

        store = PlanStore({PLANS_COLLECTION: self.mock_plans, USERS_COLLECTION: self.mock_users})
        main.plan_service = PlanService(store, SQLPrepGenerator(gemini=self.mock_gemini))

    def tearDown(self):
        main.plan_service = None

    def test_two_blocks_become_two_questions(self):
        self.mock_gemini.generate_text.return_value = RESPONSE

        response = self.app.post("/api/sql-prep/generate", json=ANSWERS, headers=HEADERS)

        self.assertEqual(response.status_code, 201)
        data = json.loads(response.data)
        self.assertEqual(len(data["questions"]), 2)
        self.assertEqual(data["questions"][0]["title"], "Consecutive Logins")
        self.assertEqual(data["questions"][0]["concepts"], ["Window Functions", "Gaps and Islands"])
        self.assertEqual(data["questions"][1]["description"], "List customers who never placed an order.")
        self.assertEqual(data["metadata"]["currentCTC"], "5-10L")
        self.assertEqual(data["aiResponse"], RESPONSE)

        self.mock_plans.insert_one.assert_called_once()
        self.mock_users.update_one.assert_called_once()

    def test_model_exception_still_succeeds_with_defaults(self):
        self.mock_gemini.generate_text.side_effect = RuntimeError("Gemini HTTPError 500")

        response = self.app.post("/api/sql-prep/generate", json=ANSWERS, headers=HEADERS)

        self.assertEqual(response.status_code, 201)
        data = json.loads(response.data)
        expected = default_questions()
        for got, want in zip(data["questions"], expected):
            for key in ("title", "difficulty", "concepts", "description", "category", "completed"):
                self.assertEqual(got[key], want[key])
        self.assertEqual(len(data["questions"]), len(expected))
        self.assertEqual(data["aiResponse"], "No AI response available")

    def test_missing_fields_are_rejected(self):
        response = self.app.post(
            "/api/sql-prep/generate", json={"yearsOfExperience": "3"}, headers=HEADERS
        )

        self.assertEqual(response.status_code, 400)
        details = json.loads(response.data)["details"]
        self.assertTrue(details["yearsOfExperience"])
        self.assertFalse(details["timeCommitment"])
        self.mock_gemini.generate_text.assert_not_called()

    def test_non_finite_years_are_rejected(self):
        for years in ("nan", "inf", "-Infinity"):
            response = self.app.post(
                "/api/sql-prep/generate", json=dict(ANSWERS, yearsOfExperience=years), headers=HEADERS
            )

            self.assertEqual(response.status_code, 400)
            self.assertEqual(
                json.loads(response.data)["details"], {"yearsOfExperience": "must be a number"}
            )
        self.mock_gemini.generate_text.assert_not_called()
        self.mock_plans.insert_one.assert_not_called()

    def test_update_progress_requires_question_id(self):
        response = self.app.patch("/api/sql-prep/update-progress", json={"completed": True}, headers=HEADERS)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(json.loads(response.data)["message"], "Question ID is required")

    def test_update_progress_unknown_question(self):
        self.mock_plans.find_one.return_value = make_plan().to_dict()

        response = self.app.patch(
            "/api/sql-prep/update-progress",
            json={"questionId": str(ObjectId()), "completed": True},
            headers=HEADERS,
        )

        self.assertEqual(response.status_code, 404)
        self.assertEqual(json.loads(response.data)["message"], "Question not found")
        self.mock_plans.update_one.assert_not_called()


if __name__ == "__main__":
    unittest.main()
