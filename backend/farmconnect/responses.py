# Overview: Success envelope and query-string helpers shared by route modules.

from __future__ import annotations

from typing import Any

from flask import request


def success(data: Any = None, *, message: str | None = None, status: int = 200, pagination: dict | None = None):
    body: dict = {"success": True, "data": data}
    if message:
        body["message"] = message
    if pagination is not None:
        body["pagination"] = pagination
    return body, status


def json_body() -> dict:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def page_args() -> tuple[int | None, int | None]:
    return request.args.get("page", type=int), request.args.get("limit", type=int)


def bool_arg(name: str) -> bool | None:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    return raw.strip().lower() in {"1", "true", "yes"}
