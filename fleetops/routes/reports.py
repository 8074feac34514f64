from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.security import optional_manager
from ..db import get_db
from ..logging import structlog
from ..models.models import BreakdownReport, BreakRequest
from ..schemas.reports import ReportType
from ..services.export import (
    BREAK_REQUEST_COLUMNS,
    BREAKDOWN_COLUMNS,
    break_request_rows,
    breakdown_rows,
    encode_base64,
    to_csv,
)
from ..services.validation import apply_date_range, bad_request, parse_date_range


router = APIRouter(prefix="/api", tags=["reports"])


@router.get("/download_reports", response_model=str)
def download_reports(
    report_type: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    db: Session = Depends(get_db),
    _=Depends(optional_manager("Access denied. Only managers can access this endpoint.")),
):
    """Export one collection as CSV, base64 encoded. The JSON body is the base64 string."""
    if not report_type:
        raise bad_request("report_type is required")
    if report_type not in (ReportType.breakdown.value, ReportType.break_request.value):
        raise bad_request('report_type must be either "breakdown" or "break_request"')
    start, end = parse_date_range(start_date, end_date)

    if report_type == ReportType.breakdown.value:
        query = apply_date_range(db.query(BreakdownReport), BreakdownReport.submission_date, start, end)
        records = query.order_by(BreakdownReport.submission_date.desc()).all()
        csv_text = to_csv(BREAKDOWN_COLUMNS, breakdown_rows(records))
    else:
        query = apply_date_range(db.query(BreakRequest), BreakRequest.submission_date, start, end)
        records = query.order_by(BreakRequest.submission_date.desc()).all()
        csv_text = to_csv(BREAK_REQUEST_COLUMNS, break_request_rows(records))

    structlog.get_logger().info("reports_downloaded", report_type=report_type, records=len(records))
    return encode_base64(csv_text)
