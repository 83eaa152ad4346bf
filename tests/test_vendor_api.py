import base64
import io
import os

from PIL import Image

import config
from models import db, Vendor


def _png_bytes(size=(900, 600)):
    buf = io.BytesIO()
    Image.new("RGB", size, "#ff8800").save(buf, "PNG")
    buf.seek(0)
    return buf


def test_config_is_null_before_setup(owner_client):
    res = owner_client.get("/api/vendor/config")
    assert res.status_code == 200
    assert res.get_json() is None


def test_config_upsert_creates_then_updates_same_row(app, owner_client):
    first = owner_client.post("/api/vendor/config", json={
        "businessName": "  Cafe Luna ",
        "instagramHandle": "cafeluna",
        "gradientFrom": "#6366F1",
        "gradientTo": "#ec4899",
        "couponTitle": "2x1",
        "couponQuantity": 20,
    })
    assert first.status_code == 200
    created = first.get_json()
    assert created["businessName"] == "Cafe Luna"
    assert created["gradientFrom"] == "#6366f1"
    assert created["isActive"] is True

    second = owner_client.post("/api/vendor/config", json={
        "businessName": "Cafe Luna Centro",
        "instagramHandle": "",
        "couponQuantity": 19,
    })
    assert second.status_code == 200
    updated = second.get_json()
    assert updated["id"] == created["id"]
    assert updated["businessName"] == "Cafe Luna Centro"
    assert updated["instagramHandle"] is None
    assert updated["couponQuantity"] == 19
    with app.app_context():
        assert Vendor.query.count() == 1


def test_config_upsert_recovers_from_concurrent_insert(app, owner_client, vendor_id, monkeypatch):
    # the owner's row appears between the lookup and the insert
    monkeypatch.setattr("vendor_system.get_vendor_by_user_id", lambda user_id: None)
    res = owner_client.post("/api/vendor/config", json={"businessName": "Tacos Ana Centro"})
    assert res.status_code == 200
    body = res.get_json()
    assert body["id"] == vendor_id
    assert body["businessName"] == "Tacos Ana Centro"
    with app.app_context():
        assert Vendor.query.count() == 1
        assert db.session.get(Vendor, vendor_id).business_name == "Tacos Ana Centro"


def test_config_validation(owner_client):
    res = owner_client.post("/api/vendor/config", json={
        "businessName": "",
        "logoUrl": "not a url",
        "gradientFrom": "red",
        "couponQuantity": -1,
        "isActive": "yes",
    })
    assert res.status_code == 400
    errors = res.get_json()["errors"]
    assert set(errors) == {"businessName", "logoUrl", "gradientFrom", "couponQuantity", "isActive"}


def test_config_accepts_uploaded_paths_and_http_urls(owner_client):
    res = owner_client.post("/api/vendor/config", json={
        "businessName": "Cafe Luna",
        "logoUrl": "/uploads/logo_1.webp",
        "menuLink": "https://example.com/menu",
        "spotifyPlaylistUrl": "https://open.spotify.com/playlist/abc",
    })
    assert res.status_code == 200
    assert res.get_json()["logoUrl"] == "/uploads/logo_1.webp"


def test_config_requires_json_object(owner_client):
    res = owner_client.post("/api/vendor/config", data="x", content_type="text/plain")
    assert res.status_code == 400


def test_owner_can_deactivate_page(owner_client):
    owner_client.post("/api/vendor/config", json={"businessName": "Cafe Luna"})
    res = owner_client.post("/api/vendor/config", json={"businessName": "Cafe Luna", "isActive": False})
    vendor_id = res.get_json()["id"]
    assert owner_client.get(f"/api/client/{vendor_id}").status_code == 404


def test_logo_upload_is_reencoded_and_served(app, owner_client):
    res = owner_client.post(
        "/api/upload/logo",
        data={"logo": (_png_bytes(), "logo.png", "image/png")},
        content_type="multipart/form-data",
    )
    assert res.status_code == 200
    url = res.get_json()["url"]
    assert url.startswith("/uploads/logo_") and url.endswith(".webp")

    path = os.path.join(app.config["UPLOAD_FOLDER"], url.rsplit("/", 1)[-1])
    with Image.open(path) as img:
        assert max(img.size) <= 512

    served = owner_client.get(url)
    assert served.status_code == 200


def test_menu_pdf_upload_is_kept(owner_client):
    pdf = io.BytesIO(b"%PDF-1.4\n%fake menu\n")
    res = owner_client.post(
        "/api/upload/menu",
        data={"menu": (pdf, "menu.pdf", "application/pdf")},
        content_type="multipart/form-data",
    )
    assert res.status_code == 200
    assert res.get_json()["url"].endswith(".pdf")


def test_upload_rejects_other_types(owner_client):
    res = owner_client.post(
        "/api/upload/menu",
        data={"menu": (io.BytesIO(b"hello"), "menu.txt", "text/plain")},
        content_type="multipart/form-data",
    )
    assert res.status_code == 400


def test_upload_without_file(owner_client):
    res = owner_client.post("/api/upload/logo", data={}, content_type="multipart/form-data")
    assert res.status_code == 400
    assert res.get_json()["message"] == "No file uploaded"


def test_upload_too_large(app, owner_client):
    app.config["MAX_CONTENT_LENGTH"] = 1024
    res = owner_client.post(
        "/api/upload/menu",
        data={"menu": (io.BytesIO(b"%PDF" + b"0" * 4096), "menu.pdf", "application/pdf")},
        content_type="multipart/form-data",
    )
    assert res.status_code == 413


def test_generate_qr(app, owner_client, vendor_id, monkeypatch):
    monkeypatch.setattr("utils.PUBLIC_DOMAINS", ["menu.example.com"])
    res = owner_client.post("/api/vendor/generate-qr")
    assert res.status_code == 200
    body = res.get_json()
    assert body["url"] == f"https://menu.example.com/client/{vendor_id}"
    prefix = "data:image/png;base64,"
    assert body["qrCode"].startswith(prefix)
    with Image.open(io.BytesIO(base64.b64decode(body["qrCode"][len(prefix):]))) as img:
        assert img.size == (config.QR_SIZE, config.QR_SIZE)
    with app.app_context():
        assert db.session.get(Vendor, vendor_id).qr_code_url == body["qrCode"]


def test_generate_qr_without_vendor(owner_client):
    res = owner_client.post("/api/vendor/generate-qr")
    assert res.status_code == 404
    assert res.get_json()["message"] == "Vendor configuration not found"


def test_analytics_without_vendor(owner_client):
    res = owner_client.get("/api/vendor/analytics")
    assert res.status_code == 404


def test_analytics_rounds_average(owner_client, vendor_id):
    for ip, value in (("1.1.1.1", 5), ("2.2.2.2", 4), ("3.3.3.3", 4)):
        owner_client.post(f"/api/client/{vendor_id}/rate", json={"rating": value},
                          environ_base={"REMOTE_ADDR": ip})
    owner_client.post(f"/api/client/{vendor_id}/track", json={"eventType": "spotify_click"})
    body = owner_client.get("/api/vendor/analytics").get_json()
    assert body["averageRating"] == 4.3
    assert body["spotifyClicks"] == 1
    assert body["qrScans"] == 0
