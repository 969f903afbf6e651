"""
Taskboard blueprint helpers.
"""

from flask import request

DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 500


def _arg_int(name, default):
    try:
        return int(request.args.get(name, default))
    except (ValueError, TypeError):
        return default


def paginate_query(query, default_limit=DEFAULT_PAGE_SIZE, max_limit=MAX_PAGE_SIZE):
    """Slice a query by the ``limit`` / ``offset`` request args.

    Malformed values fall back to the defaults; ``limit`` is clamped to
    ``1..max_limit`` and ``offset`` to ``>= 0``.

    Returns:
        (items, total) where total counts the unsliced query.
    """
    limit = max(1, min(_arg_int("limit", default_limit), max_limit))
    offset = max(_arg_int("offset", 0), 0)
    return query.limit(limit).offset(offset).all(), query.count()
