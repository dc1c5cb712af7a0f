import logging
import os
import json

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from ai_util import SQLPrepGenerator
from backend.errors import PlanError, Unauthorized, ValidationError
from backend.models import PROGRESS_FILTERS
from backend.mongo import connect
from backend.plan_service import PlanService
from backend.plan_store import PlanStore

logger = logging.getLogger("sqlprep")

server = Flask(__name__)

plan_service: PlanService | None = None

API_PREFIX = "/api/sql-prep"
USER_HEADER = "X-User-Id"


def configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )


def get_plan_service() -> PlanService:
    global plan_service
    if plan_service is None:
        plan_service = PlanService(PlanStore(connect()), SQLPrepGenerator())
    return plan_service


def json_object() -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid request body", details={"body": "must be a JSON object"})
    return payload


def current_user_id() -> str:
    # set by the auth proxy in front of this service
    user_id = (request.headers.get(USER_HEADER) or "").strip()
    if not user_id:
        raise Unauthorized("Not authorized")
    return user_id


@server.errorhandler(PlanError)
def handle_plan_error(e: PlanError):
    return jsonify(e.to_dict()), e.status_code


@server.errorhandler(Exception)
def handle_unexpected(e: Exception):
    if isinstance(e, HTTPException):
        return e
    logger.exception(
        "Unhandled error on %s %s, input: %s",
        request.method,
        request.path,
        json.dumps(request.get_json(silent=True), default=str),
    )
    return jsonify({"message": "Internal server error"}), 500


@server.route("/api/hello")
def hello():
    return jsonify({"message": "API Working!"})


@server.route(f"{API_PREFIX}/generate", methods=["POST"])
def generate_plan():
    """Build and store a new plan from the questionnaire.

    Responds 201 with ``questions``, ``aiResponse`` and ``metadata``. The
    metadata echoes the cleaned answers: ``yearsOfExperience`` comes back as a
    number even when sent as a string, and ``targetCompanies`` as a list.
    """
    user_id = current_user_id()
    payload = json_object()
    logger.info("Received generate plan request: %s", payload)

    result = get_plan_service().generate_plan(user_id, payload)
    return jsonify(result), 201


@server.route(f"{API_PREFIX}/saved-plan", methods=["GET"])
def get_saved_plan():
    user_id = current_user_id()
    status = request.args.get("status", "all")
    if status not in PROGRESS_FILTERS:
        raise ValidationError("Invalid status filter", details={"status": list(PROGRESS_FILTERS)})

    plan = get_plan_service().get_saved_plan(user_id)
    return jsonify(plan.to_json(status))


@server.route(f"{API_PREFIX}/update-progress", methods=["PATCH"])
def update_progress():
    user_id = current_user_id()
    payload = json_object()

    plan = get_plan_service().update_progress(
        user_id,
        payload.get("questionId"),
        payload.get("completed"),
    )
    return jsonify(plan.to_json())


@server.route(f"{API_PREFIX}/progress", methods=["GET"])
def get_progress():
    user_id = current_user_id()
    return jsonify(get_plan_service().get_progress(user_id))


if __name__ == '__main__':
    from set_env_vars import load

    load()
    configure_logging()
    server.run(port=int(os.getenv("PORT", 5000)))
