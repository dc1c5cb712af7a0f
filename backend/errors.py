from __future__ import annotations

import typing as t


class PlanError(Exception):
    status_code = 500

    def __init__(self, message: str, *, details: dict[str, t.Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, t.Any]:
        body: dict[str, t.Any] = {"message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(PlanError):
    status_code = 400


class NotFound(PlanError):
    status_code = 404


class GenerationFailure(PlanError):
    """Raised when no question list could be produced at all."""


class PersistenceFailure(PlanError):
    """Raised when a MongoDB read or write fails."""


class Unauthorized(PlanError):
    status_code = 401
