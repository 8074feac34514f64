import base64
import csv
import io
from typing import Iterable, List, Sequence

from ..models.models import BreakdownReport, BreakRequest


BREAKDOWN_COLUMNS = [
    "report_details",
    "user_id",
    "truck_registration_number",
    "breakdown_location",
    "issue_description",
    "submission_date",
    "status",
    "notes",
    "resolution_notes",
]

BREAK_REQUEST_COLUMNS = [
    "request_details",
    "user_id",
    "break_type",
    "break_duration",
    "submission_date",
    "notes",
]


def _format_number(value):
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def breakdown_rows(reports: Iterable[BreakdownReport]) -> List[list]:
    # report_details carries the record id
    return [
        [
            r.id,
            r.user_id,
            r.truck_registration_number,
            r.breakdown_location,
            r.issue_description,
            r.submission_date,
            r.status,
            r.notes,
            r.resolution_notes,
        ]
        for r in reports
    ]


def break_request_rows(requests: Iterable[BreakRequest]) -> List[list]:
    return [
        [
            r.id,
            r.user_id,
            r.break_type,
            _format_number(r.break_duration),
            r.submission_date,
            r.notes,
        ]
        for r in requests
    ]


def to_csv(columns: Sequence[str], rows: Iterable[Sequence]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(columns)
    writer.writerows(rows)
    return buf.getvalue()


def encode_base64(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")
