import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from errors import ConstraintViolation, MutationFailed, NotFound, ValidationError
from models import ProductImageModel, ProductModel, product_materials, product_tags
from serializers.product import ImageInput, ProductCreate, ProductUpdate
from services import product_mutations
from services.product_mutations import (
    create_product,
    add_product_images,
    delete_product,
    delete_product_image,
    set_product_active,
    update_product,
)
from services.shaper import to_detail

IMAGES = ["a.jpg", "b.jpg", "c.jpg"]


def count(db, table):
    return db.execute(select(func.count()).select_from(table)).scalar_one()


def gallery(product):
    return [(image.image_url, image.display_order, image.is_primary) for image in product.images]


def test_create_keeps_image_order_and_first_is_primary(make_product):
    product = make_product("anillo-luna", images=IMAGES)
    assert gallery(product) == [("a.jpg", 1, True), ("b.jpg", 2, False), ("c.jpg", 3, False)]


def test_create_honours_flagged_primary(db, taxonomy):
    data = ProductCreate(slug="collar", name="Collar", category_id=taxonomy["collares"].id)
    product = create_product(db, data, [ImageInput(url="a.jpg"), ImageInput(url="b.jpg", is_primary=True)])
    assert [image.is_primary for image in product.images] == [False, True]


def test_create_links_materials_and_tags(make_product):
    product = make_product("collar-aurora", materials=["plata", "oro", "plata"], tags=["regalo"])
    assert sorted(m.slug for m in product.materials) == ["oro", "plata"]
    assert [t.slug for t in product.tags] == ["regalo"]


def test_create_with_duplicate_slug_fails(db, make_product):
    make_product("anillo-luna")
    with pytest.raises(ConstraintViolation):
        make_product("anillo-luna")
    assert count(db, ProductModel) == 1


def test_create_with_unknown_material_leaves_nothing_behind(db, taxonomy):
    data = ProductCreate(
        slug="anillo", name="Anillo", category_id=taxonomy["anillos"].id, material_ids=[9999],
    )
    with pytest.raises(ValidationError) as info:
        create_product(db, data, [ImageInput(url="a.jpg")])
    assert "material_ids" in info.value.errors
    assert count(db, ProductModel) == 0
    assert count(db, ProductImageModel) == 0


def test_partial_update_only_touches_given_fields(db, make_product):
    product = make_product("anillo-luna", "Anillo Luna", stock=3, description="Plata")
    updated = update_product(db, product.id, ProductUpdate(stock=10))
    assert updated.stock == 10
    assert updated.name == "Anillo Luna"
    assert updated.description == "Plata"


def test_update_can_clear_description(db, make_product):
    product = make_product("anillo-luna", description="Plata")
    updated = update_product(db, product.id, ProductUpdate(description=None))
    assert updated.description is None


def test_update_replaces_link_sets(db, make_product, taxonomy):
    product = make_product("anillo-luna", materials=["plata"], tags=["nuevo", "regalo"])
    updated = update_product(db, product.id, ProductUpdate(material_ids=[taxonomy["oro"].id], tag_ids=[]))
    assert [m.slug for m in updated.materials] == ["oro"]
    assert updated.tags == []
    assert count(db, product_materials) == 1
    assert count(db, product_tags) == 0


def test_update_is_idempotent(db, make_product, taxonomy):
    product = make_product("anillo-luna", materials=["plata"], images=IMAGES)
    data = ProductUpdate(name="Anillo Luna Llena", stock=2, material_ids=[taxonomy["oro"].id])

    first = to_detail(update_product(db, product.id, data)).model_dump(exclude={"updated_at"})
    second = to_detail(update_product(db, product.id, data)).model_dump(exclude={"updated_at"})
    assert first == second


def test_update_with_taken_slug_rolls_back(db, make_product):
    make_product("anillo-luna")
    other = make_product("anillo-sol", stock=1)
    with pytest.raises(ConstraintViolation):
        update_product(db, other.id, ProductUpdate(slug="anillo-luna", stock=9))
    db.expire_all()
    assert db.get(ProductModel, other.id).stock == 1


def test_update_missing_product(db, taxonomy):
    with pytest.raises(NotFound):
        update_product(db, 9999, ProductUpdate(stock=1))


def test_removing_primary_image_promotes_next(db, make_product):
    product = make_product("anillo-luna", images=IMAGES)
    updated = update_product(db, product.id, ProductUpdate(), deleted_images=["a.jpg"])
    assert gallery(updated) == [("b.jpg", 2, True), ("c.jpg", 3, False)]


def test_new_images_are_appended_without_stealing_primary(db, make_product):
    product = make_product("anillo-luna", images=["a.jpg"])
    updated = update_product(db, product.id, ProductUpdate(), new_images=[ImageInput(url="d.jpg", is_primary=True)])
    assert gallery(updated) == [("a.jpg", 1, True), ("d.jpg", 2, False)]


def test_add_images_to_product_without_gallery(db, make_product):
    product = make_product("anillo-luna")
    updated = add_product_images(db, product.id, [ImageInput(url="x.jpg"), ImageInput(url="y.jpg")])
    assert gallery(updated) == [("x.jpg", 1, True), ("y.jpg", 2, False)]


def test_delete_single_image(db, make_product):
    product = make_product("anillo-luna", images=IMAGES)
    first_id = product.images[0].id
    assert delete_product_image(db, product.id, first_id) == "a.jpg"
    with pytest.raises(NotFound):
        delete_product_image(db, product.id, first_id)


def test_soft_delete_and_restore(db, make_product):
    product = make_product("anillo-luna")
    assert set_product_active(db, product.id, False).is_active is False
    assert set_product_active(db, product.id, True).is_active is True


def test_hard_delete_removes_images_and_links(db, make_product):
    product = make_product("anillo-luna", materials=["plata"], tags=["nuevo"], images=IMAGES)
    keep = make_product("anillo-sol", materials=["plata"], images=["z.jpg"])

    assert sorted(delete_product(db, product.id)) == IMAGES
    assert count(db, ProductModel) == 1
    assert count(db, ProductImageModel) == 1
    assert count(db, product_materials) == 1
    assert count(db, product_tags) == 0
    assert db.get(ProductModel, keep.id) is not None

    with pytest.raises(NotFound):
        delete_product(db, product.id)


def failing_on(table, error, monkeypatch):
    """Make link replacement fail for ``table`` after earlier inserts ran."""
    original = product_mutations._replace_links

    def replace_links(db, target, column, product_id, ids):
        if target is table:
            raise error
        return original(db, target, column, product_id, ids)

    monkeypatch.setattr(product_mutations, "_replace_links", replace_links)


def test_database_error_mid_create_rolls_everything_back(db, make_product, monkeypatch):
    error = OperationalError("INSERT INTO product_tags", {}, Exception("database is locked"))
    failing_on(product_tags, error, monkeypatch)

    with pytest.raises(MutationFailed) as info:
        make_product("anillo-luna", materials=["plata"], tags=["nuevo"], images=IMAGES)
    assert info.value.cause is error
    assert count(db, ProductModel) == 0
    assert count(db, ProductImageModel) == 0
    assert count(db, product_materials) == 0


def test_unexpected_error_mid_update_rolls_back(db, make_product, taxonomy, monkeypatch):
    product = make_product("anillo-luna", stock=1, tags=["nuevo"])
    failing_on(product_tags, TypeError("bad ids"), monkeypatch)

    with pytest.raises(TypeError):
        update_product(db, product.id, ProductUpdate(stock=7, tag_ids=[taxonomy["regalo"].id]))
    db.expire_all()
    assert db.get(ProductModel, product.id).stock == 1
    assert [t.slug for t in db.get(ProductModel, product.id).tags] == ["nuevo"]
