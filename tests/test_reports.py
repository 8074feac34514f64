import base64
import csv
import io

import pytest

from fleetops.models.models import BreakdownReport, BreakRequest
from fleetops.services import export


def _decode(response):
    text = base64.b64decode(response.json()).decode("utf-8")
    return list(csv.reader(io.StringIO(text)))


@pytest.fixture
def records(db):
    for i, ts in enumerate([100, 200, 300]):
        db.add(
            BreakdownReport(
                id=f"rep-{i}", user_id=f"drv-{i}", truck_registration_number=f"TRK-{i}",
                fleet_number="F", driver_full_names="D", cellphone_number="1", supervisor_name="S",
                supervisor_cellphone_number="2", company_name="Co", breakdown_location="N1, km 40",
                issue_description='Flat "front" tyre', submission_date=ts, status="pending",
                notes="", resolution_notes="", slip_picture="s", seal_1_picture="s1", seal_2_picture="s2",
            )
        )
        db.add(
            BreakRequest(
                id=f"req-{i}", user_id=f"drv-{i}", break_type="lunch", break_duration=45,
                submission_date=ts, notes="", driver_name="D", company_name="Co", location="L",
            )
        )
    db.commit()


def test_report_type_is_required(client):
    r = client.get("/api/download_reports")
    assert r.status_code == 400
    assert r.json() == {"error": "report_type is required"}


@pytest.mark.parametrize("value", ["breakdowns", "Breakdown", "break_requests", "all"])
def test_unknown_report_type(client, value):
    r = client.get("/api/download_reports", params={"report_type": value})
    assert r.status_code == 400
    assert r.json() == {"error": 'report_type must be either "breakdown" or "break_request"'}


def test_breakdown_export_header_and_rows(client, records):
    r = client.get("/api/download_reports", params={"report_type": "breakdown"})
    assert r.status_code == 200
    rows = _decode(r)
    assert rows[0] == [
        "report_details", "user_id", "truck_registration_number", "breakdown_location",
        "issue_description", "submission_date", "status", "notes", "resolution_notes",
    ]
    assert [row[0] for row in rows[1:]] == ["rep-2", "rep-1", "rep-0"]
    first = rows[1]
    assert first[2] == "TRK-2"
    assert first[3] == "N1, km 40"
    assert first[4] == 'Flat "front" tyre'
    assert first[5] == "300"


def test_break_request_export_header_and_rows(client, records):
    r = client.get("/api/download_reports", params={"report_type": "break_request"})
    rows = _decode(r)
    assert rows[0] == export.BREAK_REQUEST_COLUMNS
    assert rows[1] == ["req-2", "drv-2", "lunch", "45", "300", ""]


def test_export_date_range_is_inclusive(client, records):
    r = client.get("/api/download_reports", params={"report_type": "breakdown", "start_date": 200, "end_date": 300})
    assert [row[0] for row in _decode(r)[1:]] == ["rep-2", "rep-1"]


def test_export_rejects_inverted_range(client):
    r = client.get("/api/download_reports", params={"report_type": "breakdown", "start_date": 5, "end_date": 1})
    assert r.status_code == 400


def test_empty_export_is_header_only(client):
    r = client.get("/api/download_reports", params={"report_type": "break_request"})
    assert _decode(r) == [export.BREAK_REQUEST_COLUMNS]
