# Overview: Uniform JSON envelope and pagination helpers shared by all routes.

"""
Every API response has the same shape:

    {"success": true, "data": ..., "meta": {...}}
    {"success": false, "error": {"message": "...", "code": "...", "errors": [...]}}

Paginated listings carry meta with page, pageSize, totalCount, totalPages,
hasNextPage and hasPreviousPage.
"""

from __future__ import annotations

from flask import current_app, jsonify, request


def success(data=None, status: int = 200, meta: dict | None = None, message: str | None = None):
    body = {"success": True, "data": data}
    if meta is not None:
        body["meta"] = meta
    if message:
        body["message"] = message
    return jsonify(body), status


def error(message: str, status: int = 400, code: str | None = None, errors: list | None = None):
    err = {"message": message}
    if code:
        err["code"] = code
    if errors:
        err["errors"] = errors
    return jsonify({"success": False, "error": err}), status


def server_error(log_message: str):
    """Log the active exception and answer with a generic 500."""
    current_app.logger.exception(log_message)
    return error("Internal server error", 500, code="INTERNAL_ERROR")


def get_pagination_args() -> tuple[int, int]:
    """
    Read page / pageSize from the query string.

    Defaults to page 1 and the configured page size; pageSize is capped at
    MAX_PAGE_SIZE and both are clamped to >= 1.
    """
    default_size = current_app.config.get("DEFAULT_PAGE_SIZE", 20)
    max_size = current_app.config.get("MAX_PAGE_SIZE", 100)

    page = request.args.get("page", default=1, type=int) or 1
    page_size = request.args.get("pageSize", default=default_size, type=int) or default_size

    page = max(page, 1)
    page_size = min(max(page_size, 1), max_size)
    return page, page_size


def pagination_meta(page: int, page_size: int, total: int) -> dict:
    total_pages = (total + page_size - 1) // page_size if total > 0 else 0
    return {
        "page": page,
        "pageSize": page_size,
        "totalCount": total,
        "totalPages": total_pages,
        "hasNextPage": page < total_pages,
        "hasPreviousPage": page > 1,
    }


def paginate_query(query, page: int, page_size: int) -> tuple[list, dict]:
    """Run a counted, offset-limited query. Returns (rows, meta)."""
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * page_size).limit(page_size).all()
    return rows, pagination_meta(page, page_size, total)


def get_bool_arg(name: str) -> bool | None:
    """Read a true/false query flag; None when absent or unrecognised."""
    raw = request.args.get(name)
    if raw is None:
        return None
    raw = raw.strip().lower()
    if raw in ("true", "1", "yes"):
        return True
    if raw in ("false", "0", "no"):
        return False
    return None
