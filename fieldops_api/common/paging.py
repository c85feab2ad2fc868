# fieldops_api/common/paging.py
from flask import request

DEFAULT_PAGE = 1
DEFAULT_SIZE = 50
MAX_SIZE = 500

def page_limit():
    """
    ?page=&size= ; returns (None, None) when the caller asked for no paging,
    so list endpoints keep returning full ledgers by default.
    """
    if "page" not in request.args and "size" not in request.args:
        return None, None
    try:
        page = max(int(request.args.get("page", DEFAULT_PAGE)), 1)
    except (TypeError, ValueError):
        page = DEFAULT_PAGE
    try:
        size = int(request.args.get("size", DEFAULT_SIZE))
        size = max(1, min(size, MAX_SIZE))
    except (TypeError, ValueError):
        size = DEFAULT_SIZE
    return page, size

def paginate(q):
    """Apply page_limit() to a query; returns (rows, meta dict)."""
    page, size = page_limit()
    if page is None:
        rows = q.all()
        return rows, {"total": len(rows)}
    total = q.count()
    rows = q.offset((page - 1) * size).limit(size).all()
    return rows, {"page": page, "size": size, "total": total}
