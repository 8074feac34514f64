import io
import os

import pytest
from starlette.datastructures import UploadFile
from sqlalchemy.exc import SQLAlchemyError

from fleetops.models.models import BreakdownReport, StormAuthUser
from fleetops.routes import breakdown_reports
from fleetops.services import identity as identity_service
from fleetops.services import notifications
from fleetops.storage.local_provider import LocalStorageProvider

from .conftest import DRIVER_ID, make_settings


FORM = {
    "truck_registration_number": "TRK-1",
    "fleet_number": "F-9",
    "driver_full_names": "John Doe",
    "cellphone_number": "555-0001",
    "supervisor_name": "Sue",
    "supervisor_cellphone_number": "555-0002",
    "company_name": "Trucking Inc",
    "breakdown_location": "N1 Highway",
    "issue_description": "Engine overheating",
}

PHOTOS = {
    "slip_picture": ("slip.jpg", b"slip-bytes", "image/jpeg"),
    "seal_1_picture": ("seal1.PNG", b"seal-one", "image/png"),
    "seal_2_picture": ("seal2.png", b"seal-two", "image/png"),
}


def _create(client, headers, data=None, files=None):
    return client.post(
        "/api/breakdown_reports",
        data=data if data is not None else FORM,
        files=files if files is not None else PHOTOS,
        headers=headers,
    )


def test_create_stores_photos_and_returns_pending_report(client, driver_headers, settings):
    r = _create(client, driver_headers)
    assert r.status_code == 201
    body = r.json()
    assert body["user_id"] == DRIVER_ID
    assert body["status"] == "pending"
    assert body["notes"] == ""
    assert body["resolution_notes"] == ""
    assert body["submission_date"] > 0
    for field, value in FORM.items():
        assert body[field] == value

    assert body["slip_picture"].startswith("/uploads/slip_picture-")
    assert body["slip_picture"].endswith(".jpg")
    assert body["seal_1_picture"].endswith(".png")
    stored = sorted(os.listdir(settings.upload_dir))
    assert len(stored) == 3
    with open(os.path.join(settings.upload_dir, body["slip_picture"].rsplit("/", 1)[1]), "rb") as f:
        assert f.read() == b"slip-bytes"


def test_create_registers_submitter_profile(client, db, driver_headers):
    assert _create(client, driver_headers).status_code == 201
    profile = db.get(StormAuthUser, DRIVER_ID)
    assert profile is not None
    assert profile.name == "Driver One"
    assert profile.handle == ""
    assert profile.email == ""


def test_create_uses_cdn_base_when_configured(tmp_path):
    from fastapi.testclient import TestClient
    from fleetops.main import create_app

    app = create_app(make_settings(tmp_path, cdn_base_url="https://cdn.example.com/fleet"))
    with TestClient(app) as c:
        r = _create(c, {"x-storm-userid": "drv-cdn"})
    assert r.status_code == 201
    assert r.json()["slip_picture"].startswith("https://cdn.example.com/fleet/slip_picture-")


def test_create_accepts_existing_picture_references(client, driver_headers):
    data = dict(FORM, slip_picture="https://cdn/slip.jpg", seal_1_picture="s1.jpg", seal_2_picture="s2.jpg")
    r = _create(client, driver_headers, data=data, files={})
    assert r.status_code == 201
    assert r.json()["slip_picture"] == "https://cdn/slip.jpg"


def test_create_requires_identity(client):
    r = _create(client, {})
    assert r.status_code == 401


@pytest.mark.parametrize("field", list(FORM))
def test_each_text_field_is_required(client, driver_headers, field):
    data = dict(FORM)
    data.pop(field)
    r = _create(client, driver_headers, data=data)
    assert r.status_code == 400
    assert r.json() == {"error": f"{field} is required"}


def test_text_field_sent_as_file_is_rejected(client, driver_headers):
    data = dict(FORM)
    data.pop("fleet_number")
    files = dict(PHOTOS, fleet_number=("f.txt", b"F-9", "text/plain"))
    r = _create(client, driver_headers, data=data, files=files)
    assert r.status_code == 400
    assert r.json() == {"error": "fleet_number must be a string"}


@pytest.mark.parametrize("field", ["slip_picture", "seal_1_picture", "seal_2_picture"])
def test_each_picture_is_required(client, driver_headers, settings, field):
    files = dict(PHOTOS)
    files.pop(field)
    r = _create(client, driver_headers, files=files)
    assert r.status_code == 400
    assert r.json() == {"error": f"{field} is required"}
    # Photos written before the failure are removed again
    assert not os.path.isdir(settings.upload_dir) or os.listdir(settings.upload_dir) == []


def test_oversized_upload_is_rejected(tmp_path):
    from fastapi.testclient import TestClient
    from fleetops.main import create_app

    app = create_app(make_settings(tmp_path, max_upload_bytes=5_000_000))
    big = b"x" * 5_000_001
    with TestClient(app) as c:
        r = _create(c, {"x-storm-userid": "drv-big"}, files=dict(PHOTOS, seal_2_picture=("big.jpg", big, "image/jpeg")))
    assert r.status_code == 400
    assert r.json() == {"error": "seal_2_picture exceeds the 5MB upload limit"}


def test_identity_lookup_failure_is_bad_request(client, driver_headers, monkeypatch):
    def boom(db, external_id, display_name):
        raise SQLAlchemyError("store unavailable")

    monkeypatch.setattr(identity_service, "get_or_create", boom)
    r = _create(client, driver_headers)
    assert r.status_code == 400
    assert r.json() == {"error": "Unable to retrieve user details"}


def test_create_sends_breakdown_alert(client, driver_headers, monkeypatch):
    sent = []
    monkeypatch.setattr(
        notifications, "send_email",
        lambda settings, subject, body, html=False, **kw: sent.append((subject, body, html)) or True,
    )
    r = _create(client, driver_headers)
    assert r.status_code == 201
    assert len(sent) == 1
    subject, body, html = sent[0]
    assert subject == "URGENT: Truck Breakdown Report - TRK-1"
    assert html is True
    assert "Engine overheating" in body
    assert r.json()["slip_picture"] in body


def test_list_is_open_and_newest_first(client, db):
    for i, ts in enumerate([100, 300, 200]):
        db.add(
            BreakdownReport(
                id=f"rep-{i}", user_id="drv", submission_date=ts, status="pending",
                notes="", resolution_notes="", slip_picture="s", seal_1_picture="s1", seal_2_picture="s2",
                **FORM,
            )
        )
    db.commit()
    r = client.get("/api/breakdown_reports")
    assert r.status_code == 200
    assert [b["submission_date"] for b in r.json()["breakdown_reports"]] == [300, 200, 100]

    r = client.get("/api/breakdown_reports", params={"start_date": 200, "end_date": 300})
    assert [b["id"] for b in r.json()["breakdown_reports"]] == ["rep-1", "rep-2"]


def test_list_can_be_restricted_to_managers(tmp_path):
    from fastapi.testclient import TestClient
    from fleetops.main import create_app

    app = create_app(make_settings(tmp_path, breakdown_reports_manager_only=True))
    with TestClient(app) as c:
        assert c.get("/api/breakdown_reports").status_code == 401
        assert c.get("/api/download_reports", params={"report_type": "breakdown"}).status_code == 401


def test_resolve_round_trip(client, driver_headers, manager_headers):
    report_id = _create(client, driver_headers).json()["id"]

    r = client.put(
        f"/api/breakdown_reports/{report_id}",
        json={"status": "resolved", "resolution_notes": "Replaced radiator hose"},
        headers=manager_headers,
    )
    assert r.status_code == 200
    assert r.json()["status"] == "resolved"
    assert r.json()["resolution_notes"] == "Replaced radiator hose"
    assert r.json()["truck_registration_number"] == "TRK-1"

    listed = client.get("/api/breakdown_reports").json()["breakdown_reports"]
    match = [b for b in listed if b["id"] == report_id][0]
    assert match["status"] == "resolved"
    assert match["resolution_notes"] == "Replaced radiator hose"


def test_resolve_twice_last_write_wins(client, driver_headers, manager_headers):
    report_id = _create(client, driver_headers).json()["id"]
    url = f"/api/breakdown_reports/{report_id}"
    first = client.put(url, json={"status": "in_progress", "resolution_notes": "Mechanic dispatched"}, headers=manager_headers)
    second = client.put(url, json={"status": "resolved", "resolution_notes": "Fixed"}, headers=manager_headers)
    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json()["status"] == "resolved"
    assert second.json()["resolution_notes"] == "Fixed"


def test_resolve_unknown_report(client, manager_headers):
    r = client.put("/api/breakdown_reports/missing", json={"status": "resolved", "resolution_notes": "x"}, headers=manager_headers)
    assert r.status_code == 404
    assert r.json() == {"error": "Breakdown report not found"}


def test_resolve_requires_manager(client, driver_headers):
    r = client.put("/api/breakdown_reports/any", json={"status": "resolved", "resolution_notes": "x"}, headers=driver_headers)
    assert r.status_code == 403
    assert r.json() == {"error": "Only managers can resolve breakdown reports"}


@pytest.mark.parametrize(
    "payload,message",
    [
        ({"resolution_notes": "x"}, "Status is required"),
        ({"status": "done", "resolution_notes": "x"}, "Invalid status. Must be one of: pending, resolved, in_progress"),
        ({"status": "Resolved", "resolution_notes": "x"}, "Invalid status. Must be one of: pending, resolved, in_progress"),
        ({"status": "resolved"}, "Resolution notes are required"),
        ({"status": "resolved", "resolution_notes": ""}, "Resolution notes are required"),
    ],
)
def test_resolve_validation(client, manager_headers, payload, message):
    r = client.put("/api/breakdown_reports/any", json=payload, headers=manager_headers)
    assert r.status_code == 400
    assert r.json() == {"error": message}


def test_same_millisecond_uploads_get_distinct_keys(tmp_path, monkeypatch):
    monkeypatch.setattr(breakdown_reports.time, "time", lambda: 1700000000.123)
    storage = LocalStorageProvider(str(tmp_path / "uploads"))

    def form(content):
        return {field: UploadFile(io.BytesIO(content), filename="photo.jpg") for field in breakdown_reports.PICTURE_FIELDS}

    first, first_keys = breakdown_reports.store_pictures(form(b"first"), storage, 1_000_000)
    second, second_keys = breakdown_reports.store_pictures(form(b"second"), storage, 1_000_000)

    assert first["slip_picture"] != second["slip_picture"]
    assert first["slip_picture"].startswith("/uploads/slip_picture-1700000000123-")
    assert not set(first_keys) & set(second_keys)
    with open(tmp_path / "uploads" / first_keys[0], "rb") as f:
        assert f.read() == b"first"
    with open(tmp_path / "uploads" / second_keys[0], "rb") as f:
        assert f.read() == b"second"
