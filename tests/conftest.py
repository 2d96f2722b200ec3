import os

# Must be set before the app modules read the environment
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import get_db
from main import app
from models import Base, CategoryModel, MaterialModel, TagModel
from seed import ensure_admin
from serializers.product import ImageInput, ProductCreate
from services import mailer, uploads
from services.product_mutations import create_product

ADMIN_EMAIL = "admin@alahas.com"
ADMIN_PASSWORD = "secret123"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def admin(db):
    return ensure_admin(db, ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture
def admin_headers(admin):
    return {"Authorization": f"Bearer {admin.generate_token()}"}


@pytest.fixture(autouse=True)
def fake_storage(monkeypatch):
    """Replace Cloudinary with an in-memory record of uploads/deletions."""
    storage = {"uploaded": [], "deleted": []}

    def fake_upload(file, folder=uploads.PRODUCTS_FOLDER, name=None):
        url = f"https://res.cloudinary.com/demo/image/upload/v1/alahas/{folder}/{file.filename}"
        storage["uploaded"].append(url)
        return url

    def fake_delete(image_url):
        storage["deleted"].append(image_url)
        return True

    monkeypatch.setattr(uploads, "upload_image", fake_upload)
    monkeypatch.setattr(uploads, "delete_image", fake_delete)
    return storage


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    sent = []
    monkeypatch.setattr(mailer, "send_contact_email", sent.append)
    return sent


@pytest.fixture
def taxonomy(db):
    """Two categories, two materials and two tags, keyed by slug."""
    items = {
        "anillos": CategoryModel(name="Anillos", slug="anillos"),
        "collares": CategoryModel(name="Collares", slug="collares"),
        "plata": MaterialModel(name="Plata", slug="plata"),
        "oro": MaterialModel(name="Oro", slug="oro"),
        "nuevo": TagModel(name="Nuevo", slug="nuevo"),
        "regalo": TagModel(name="Regalo", slug="regalo"),
    }
    db.add_all(items.values())
    db.commit()
    return items


@pytest.fixture
def make_product(db, taxonomy):
    """Create a product through the mutation pipeline."""
    def factory(slug, name=None, category="anillos", materials=(), tags=(), images=(), **fields):
        data = ProductCreate(
            slug=slug,
            name=name or slug.replace("-", " ").title(),
            category_id=taxonomy[category].id,
            material_ids=[taxonomy[m].id for m in materials],
            tag_ids=[taxonomy[t].id for t in tags],
            **fields,
        )
        return create_product(db, data, [ImageInput(url=url) for url in images])
    return factory
