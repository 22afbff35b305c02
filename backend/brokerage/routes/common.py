# Overview: Request helpers shared by the API blueprints.

from __future__ import annotations

from flask import request

from ..errors import ValidationError


def request_json() -> dict:
    """JSON body as a dict; an empty or non-JSON body reads as {}."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def request_actor(data: dict | None = None) -> str | None:
    """Who is acting: body ``actor`` first, then the X-Actor header."""
    if data and data.get("actor"):
        return str(data["actor"])
    return request.headers.get("X-Actor") or None
