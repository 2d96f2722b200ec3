"""
Turn raw ``/products`` query parameters into a validated ``ProductFilters``.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple, Union

from config.environment import settings
from errors import InvalidFilter
from services.pagination import page_offset

SORT_RELEVANCE = "relevance"
SORT_NAME_ASC = "name-asc"
SORT_NAME_DESC = "name-desc"
SORT_RECENT = "recent"

SORT_KEYS = (SORT_RELEVANCE, SORT_NAME_ASC, SORT_NAME_DESC, SORT_RECENT)

# The storefront sends Spanish sort keys
SORT_ALIASES = {
    "relevancia": SORT_RELEVANCE,
    "nombre-asc": SORT_NAME_ASC,
    "nombre-desc": SORT_NAME_DESC,
}

MultiValue = Union[None, str, Iterable[str]]


@dataclass(frozen=True)
class ProductFilters:
    """Normalized product listing filter. Empty tuples mean "no filter"."""
    categories: Tuple[str, ...] = ()
    materials: Tuple[str, ...] = ()
    tags: Tuple[str, ...] = ()
    q: Optional[str] = None
    featured: Optional[bool] = None
    sort: str = SORT_RELEVANCE
    page: int = 1
    limit: int = settings.default_page_size
    include_inactive: bool = False

    @property
    def offset(self) -> int:
        return page_offset(self.page, self.limit)


def _values(raw: MultiValue) -> Tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        raw = [raw]
    cleaned = []
    for value in raw:
        value = (value or "").strip()
        if value and value not in cleaned:
            cleaned.append(value)
    return tuple(cleaned)


def _featured(raw) -> Optional[bool]:
    if isinstance(raw, bool):
        return raw
    if raw == "true":
        return True
    if raw == "false":
        return False
    return None


def _sort(raw: Optional[str]) -> str:
    if raw is None or raw == "":
        return SORT_RELEVANCE
    key = SORT_ALIASES.get(raw, raw)
    if key not in SORT_KEYS:
        raise InvalidFilter(
            f"Unknown sort '{raw}'",
            errors={"sort": [f"must be one of: {', '.join(SORT_KEYS)}"]},
        )
    return key


def _positive_int(raw, default: int, field: str, maximum: Optional[int] = None) -> int:
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        # non-numeric input falls back to the default
        return default
    if value < 1:
        raise InvalidFilter(f"'{field}' must be >= 1", errors={field: ["must be >= 1"]})
    if maximum is not None and value > maximum:
        raise InvalidFilter(f"'{field}' must be <= {maximum}", errors={field: [f"must be <= {maximum}"]})
    return value


def parse_filters(
    categoria: MultiValue = None,
    material: MultiValue = None,
    tag: MultiValue = None,
    q: Optional[str] = None,
    featured=None,
    sort: Optional[str] = None,
    page=None,
    limit=None,
    include_inactive: bool = False,
) -> ProductFilters:
    """
    Build a ``ProductFilters`` from request parameters.

    - list parameters accept a single value or repeated values
    - ``featured`` is only applied for the literal strings ``true``/``false``
    - non-numeric ``page``/``limit`` fall back to their defaults,
      numbers below 1 (or a limit above the maximum page size) are rejected
    """
    text = (q or "").strip()
    return ProductFilters(
        categories=_values(categoria),
        materials=_values(material),
        tags=_values(tag),
        q=text or None,
        featured=_featured(featured),
        sort=_sort(sort),
        page=_positive_int(page, 1, "page"),
        limit=_positive_int(limit, settings.default_page_size, "limit", settings.max_page_size),
        include_inactive=include_inactive,
    )
