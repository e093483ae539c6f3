import pytest

from itmanager import create_app, db

ADMIN_EMAIL = "admin@test.local"
ADMIN_PASSWORD = "secret123"


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'test.db'}",
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
        "LOG_DIR": str(tmp_path / "logs"),
        "ADMIN_EMAIL": ADMIN_EMAIL,
        "ADMIN_PASSWORD": ADMIN_PASSWORD,
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(app):
    c = app.test_client()
    resp = c.post("/auth", data={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert resp.status_code == 302
    return c


@pytest.fixture
def user_client(app):
    c = app.test_client()
    resp = c.post("/auth/signup", data={"full_name": "Ana García", "email": "ana@x.com",
                                        "password": "secret1", "department": "Ventas"})
    assert resp.status_code == 302
    return c


@pytest.fixture
def make_asset(app):
    from itmanager.custody import create_asset

    def _make(serial="SN123", brand="Dell", model="Latitude 5520", device_type="portatil", **extra):
        with app.app_context():
            fields = {"device_type": device_type, "brand": brand, "model": model, "serial_number": serial}
            fields.update(extra)
            return create_asset(fields).id
    return _make
