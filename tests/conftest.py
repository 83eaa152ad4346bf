import time

import pytest

from app import create_app
from models import db, User, Vendor


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///" + str(tmp_path / "test.db"),
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
        "ANALYTICS_CONCURRENT_COUNTS": True,
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def owner(app):
    with app.app_context():
        db.session.add(User(id="owner-1", email="owner@example.com", first_name="Ana"))
        db.session.commit()
    return "owner-1"


@pytest.fixture
def vendor_id(app, owner):
    with app.app_context():
        vendor = Vendor(user_id=owner, business_name="Tacos Ana", whatsapp_number="5215550000")
        db.session.add(vendor)
        db.session.commit()
        return vendor.id


def login_as(client, user_id, expires_in=3600, refresh_token=None):
    with client.session_transaction() as sess:
        sess["_user_id"] = user_id
        sess["_fresh"] = True
        sess["oidc_expires_at"] = int(time.time()) + expires_in
        if refresh_token:
            sess["oidc_refresh_token"] = refresh_token


@pytest.fixture
def owner_client(client, owner):
    login_as(client, owner)
    return client
