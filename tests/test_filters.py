import pytest

from errors import InvalidFilter
from services.filters import (
    SORT_NAME_ASC,
    SORT_NAME_DESC,
    SORT_RECENT,
    SORT_RELEVANCE,
    ProductFilters,
    parse_filters,
)


def test_defaults():
    filters = parse_filters()
    assert filters == ProductFilters()
    assert filters.sort == SORT_RELEVANCE
    assert filters.page == 1
    assert filters.limit == 50
    assert filters.offset == 0
    assert not filters.include_inactive


def test_single_and_repeated_values():
    filters = parse_filters(categoria="anillos", material=["plata", " oro ", "plata", ""])
    assert filters.categories == ("anillos",)
    assert filters.materials == ("plata", "oro")
    assert filters.tags == ()


@pytest.mark.parametrize("raw, expected", [
    ("true", True),
    ("false", False),
    (None, None),
    ("", None),
    ("1", None),
    ("TRUE", None),
])
def test_featured_only_accepts_literal_strings(raw, expected):
    assert parse_filters(featured=raw).featured is expected


def test_blank_search_is_no_search():
    assert parse_filters(q="   ").q is None
    assert parse_filters(q="  Collar ").q == "Collar"


@pytest.mark.parametrize("raw, expected", [
    ("relevance", SORT_RELEVANCE),
    ("relevancia", SORT_RELEVANCE),
    ("name-asc", SORT_NAME_ASC),
    ("nombre-asc", SORT_NAME_ASC),
    ("nombre-desc", SORT_NAME_DESC),
    ("recent", SORT_RECENT),
    ("", SORT_RELEVANCE),
])
def test_sort_keys_and_aliases(raw, expected):
    assert parse_filters(sort=raw).sort == expected


def test_unknown_sort_is_rejected():
    with pytest.raises(InvalidFilter) as info:
        parse_filters(sort="price")
    assert "sort" in info.value.errors


def test_non_numeric_page_falls_back_to_default():
    filters = parse_filters(page="abc", limit="xyz")
    assert filters.page == 1
    assert filters.limit == 50


def test_page_and_limit_are_parsed():
    filters = parse_filters(page="3", limit="10")
    assert (filters.page, filters.limit, filters.offset) == (3, 10, 20)


@pytest.mark.parametrize("kwargs", [
    {"page": "0"},
    {"page": "-2"},
    {"limit": "0"},
    {"limit": "101"},
])
def test_out_of_range_page_or_limit_is_rejected(kwargs):
    with pytest.raises(InvalidFilter):
        parse_filters(**kwargs)
