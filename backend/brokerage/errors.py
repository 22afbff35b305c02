# Overview: Typed domain errors shared by services and API routes.

"""
Rules-engine error kinds.

Services raise these; routes turn them into JSON bodies with a stable
``kind`` so the UI can render a precise message. Anything else reaching a
route is an internal error.
"""

from __future__ import annotations


class BrokerageError(Exception):
    """Base class for all rules-engine errors."""

    kind = "error"
    http_status = 400

    def __init__(self, message: str, *, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message, "kind": self.kind}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(BrokerageError):
    """400-level input problem (missing sell price, unknown CPM size, bad enum)."""

    kind = "validation"
    http_status = 400


class NotFoundError(BrokerageError):
    kind = "not_found"
    http_status = 404


class PreconditionError(BrokerageError):
    """An earlier step has not happened yet (milestone order, terminal status)."""

    kind = "precondition"
    http_status = 409


class DependencyError(BrokerageError):
    """A later step still relies on the value being removed."""

    kind = "dependency"
    http_status = 409


class ConflictError(BrokerageError):
    """A concurrent writer changed the job first."""

    kind = "conflict"
    http_status = 409


def error_response(exc: BrokerageError):
    from flask import jsonify

    return jsonify(exc.to_dict()), exc.http_status
