import math

from errors import InvalidFilter
from serializers.common import Pagination


def total_pages(total: int, limit: int) -> int:
    if limit <= 0:
        raise InvalidFilter("limit must be greater than 0", errors={"limit": ["must be >= 1"]})
    if total < 0:
        raise InvalidFilter("total cannot be negative")
    return math.ceil(total / limit)


def page_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


def paginate(page: int, limit: int, total: int) -> Pagination:
    """Pagination block for a listing; pages past the end are valid and simply empty."""
    return Pagination(page=page, limit=limit, total=total, totalPages=total_pages(total, limit))
