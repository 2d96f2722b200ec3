from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from errors import QueryFailed
from services.filters import parse_filters
from services.product_query import (
    get_product_by_id,
    get_product_by_slug,
    list_products,
)


@pytest.fixture
def catalog(db, make_product):
    make_product("anillo-luna", "Anillo Luna", materials=["plata"], tags=["nuevo"], stock=3,
                 description="Anillo fino de plata")
    make_product("anillo-sol", "Anillo Sol", materials=["oro"], featured=True, stock=0)
    make_product("collar-aurora", "Collar Aurora", category="collares", materials=["plata", "oro"],
                 tags=["regalo"], description="Cadena larga")
    make_product("collar-oculto", "Collar Oculto", category="collares", is_active=False)
    make_product("dije-100", "Dije 100%", category="collares", description="Con collar incluido")


def slugs(products):
    return [p.slug for p in products]


def run(db, **params):
    return list_products(db, parse_filters(**params))


def test_only_active_products_by_default(db, catalog):
    products, total = run(db)
    assert total == 4
    assert "collar-oculto" not in slugs(products)


def test_inactive_products_included_for_admin(db, catalog):
    products, total = run(db, include_inactive=True)
    assert total == 5


def test_category_filter(db, catalog):
    products, total = run(db, categoria="anillos", sort="name-asc")
    assert slugs(products) == ["anillo-luna", "anillo-sol"]
    assert total == 2


def test_unknown_category_matches_nothing(db, catalog):
    products, total = run(db, categoria="pulseras")
    assert products == []
    assert total == 0


def test_material_filter_is_any_of(db, catalog):
    products, total = run(db, material=["plata", "oro"], sort="name-asc")
    assert slugs(products) == ["anillo-luna", "anillo-sol", "collar-aurora"]
    # a product linked to both materials is counted once
    assert total == 3


def test_tag_filter(db, catalog):
    products, _ = run(db, tag="regalo")
    assert slugs(products) == ["collar-aurora"]


def test_featured_filter(db, catalog):
    featured, _ = run(db, featured="true")
    not_featured, _ = run(db, featured="false")
    assert slugs(featured) == ["anillo-sol"]
    assert "anillo-sol" not in slugs(not_featured)
    assert len(not_featured) == 3


def test_search_is_case_insensitive_over_name_and_description(db, catalog):
    products, total = run(db, q="COLLAR", sort="name-asc")
    assert slugs(products) == ["collar-aurora", "dije-100"]
    assert total == 2


def test_search_treats_wildcards_literally(db, catalog):
    products, _ = run(db, q="100%")
    assert slugs(products) == ["dije-100"]
    products, _ = run(db, q="_")
    assert products == []


def test_name_desc_is_reverse_of_name_asc(db, catalog):
    ascending, _ = run(db, sort="name-asc")
    descending, _ = run(db, sort="name-desc")
    assert slugs(ascending) == list(reversed(slugs(descending)))


def test_relevance_puts_featured_first_then_newest(db, catalog):
    products, _ = run(db)
    assert products[0].slug == "anillo-sol"


def test_recent_sort_uses_created_at(db, catalog):
    product, _ = run(db, q="Anillo Luna")
    product = product[0]
    product.created_at = datetime.now(timezone.utc) + timedelta(days=1)
    db.commit()
    products, _ = run(db, sort="recent")
    assert products[0].slug == "anillo-luna"


def test_second_page_of_category(db, catalog):
    products, total = run(db, categoria="anillos", limit="1", page="2")
    assert len(products) == 1
    assert total == 2


def test_page_past_the_end_is_empty_with_full_total(db, catalog):
    products, total = run(db, limit="2", page="5")
    assert products == []
    assert total == 4


@pytest.mark.parametrize("params", [
    {},
    {"categoria": "collares"},
    {"material": "plata", "limit": "1"},
    {"q": "anillo", "limit": "1", "page": "2"},
    {"tag": ["nuevo", "regalo"], "featured": "false"},
    {"include_inactive": True, "limit": "3", "page": "2"},
])
def test_row_and_count_queries_agree(db, catalog, params):
    filters = parse_filters(**params)
    products, total = list_products(db, filters)
    everything, _ = list_products(db, parse_filters(**{**params, "page": "1", "limit": "100"}))
    assert total == len(everything)
    assert len(products) == max(0, min(filters.limit, total - filters.offset))


def test_listing_loads_links_for_shaping(db, catalog):
    products, _ = run(db, q="aurora")
    aurora = products[0]
    assert aurora.category.slug == "collares"
    assert sorted(m.slug for m in aurora.materials) == ["oro", "plata"]
    assert [t.slug for t in aurora.tags] == ["regalo"]


def test_get_by_slug_hides_inactive(db, catalog):
    assert get_product_by_slug(db, "collar-aurora").name == "Collar Aurora"
    assert get_product_by_slug(db, "collar-oculto") is None
    assert get_product_by_slug(db, "no-existe") is None


def test_get_by_id_includes_inactive(db, catalog):
    hidden = run(db, include_inactive=True, q="oculto")[0][0]
    assert get_product_by_id(db, hidden.id).slug == "collar-oculto"
    assert get_product_by_id(db, 9999) is None


def test_offset_beyond_database_range_skips_row_query(db, catalog):
    products, total = run(db, page=str(10 ** 20), limit="10")
    assert products == []
    assert total == 4


def test_database_error_becomes_query_failed(db, catalog, monkeypatch):
    def broken(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection lost"))

    monkeypatch.setattr(db, "execute", broken)
    with pytest.raises(QueryFailed) as info:
        run(db)
    assert isinstance(info.value.__cause__, OperationalError)
