def ok(data=None):
    """Standard success envelope."""
    return {"ok": True, "data": data, "error": None}


def error(code: str = "internal_error", message: str = "An internal error occurred", fields=None):
    """Standard error envelope; `fields` carries per-field validation messages."""
    err = {"code": code, "message": message}
    if fields:
        err["fields"] = fields
    return {"ok": False, "data": None, "error": err}


def paginate(total: int, page: int, limit: int) -> dict:
    """Pagination block used by every admin list endpoint."""
    return {
        "current_page": page,
        "per_page": limit,
        "total": total,
        "total_pages": (total + limit - 1) // limit if limit else 0,
    }
