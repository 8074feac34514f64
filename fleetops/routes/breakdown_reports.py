import os
import time
import uuid
from typing import Any, List, Optional, Tuple

from fastapi import APIRouter, BackgroundTasks, Body, Depends, HTTPException, Request
from slugify import slugify
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile

from ..auth.security import get_caller_identity, get_settings, optional_manager, require_manager
from ..config import Settings
from ..db import get_db
from ..logging import structlog
from ..models.models import BreakdownReport
from ..schemas.auth import CallerIdentity
from ..schemas.reports import BreakdownReportListResponse, BreakdownReportResponse, BreakdownStatus
from ..services import identity as identity_service
from ..services.notifications import notify_breakdown_report
from ..services.validation import (
    apply_date_range,
    bad_request,
    parse_date_range,
    require_object,
    require_string,
)
from ..storage.provider import StorageProvider


router = APIRouter(prefix="/api/breakdown_reports", tags=["breakdown_reports"])

TEXT_FIELDS = [
    "truck_registration_number",
    "fleet_number",
    "driver_full_names",
    "cellphone_number",
    "supervisor_name",
    "supervisor_cellphone_number",
    "company_name",
    "breakdown_location",
    "issue_description",
]
PICTURE_FIELDS = ["slip_picture", "seal_1_picture", "seal_2_picture"]


def get_storage(request: Request) -> StorageProvider:
    return request.app.state.storage


def breakdown_report_to_dict(r: BreakdownReport) -> dict:
    return {
        "id": r.id,
        "user_id": r.user_id,
        "truck_registration_number": r.truck_registration_number,
        "fleet_number": r.fleet_number,
        "driver_full_names": r.driver_full_names,
        "cellphone_number": r.cellphone_number,
        "supervisor_name": r.supervisor_name,
        "supervisor_cellphone_number": r.supervisor_cellphone_number,
        "company_name": r.company_name,
        "breakdown_location": r.breakdown_location,
        "issue_description": r.issue_description,
        "submission_date": r.submission_date,
        "status": r.status,
        "notes": r.notes or "",
        "resolution_notes": r.resolution_notes or "",
        "slip_picture": r.slip_picture,
        "seal_1_picture": r.seal_1_picture,
        "seal_2_picture": r.seal_2_picture,
    }


def upload_key(field: str, filename: Optional[str]) -> str:
    ext = os.path.splitext(filename or "")[1].lower()
    ext = f".{slugify(ext.lstrip('.'))}" if ext.lstrip(".") else ""
    # Random suffix keeps same-millisecond uploads from sharing a key
    return f"{field}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{ext}"


def _upload_size(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    upload.file.seek(0, os.SEEK_END)
    size = upload.file.tell()
    upload.file.seek(0)
    return size


def store_pictures(form, storage: StorageProvider, max_bytes: int) -> Tuple[dict, List[str]]:
    """Resolve each picture field to a URL; uploaded files win over string references.

    Returns the field values and the storage keys written, so callers can undo the writes.
    """
    log = structlog.get_logger()
    pictures = {}
    stored_keys: List[str] = []
    try:
        for field in PICTURE_FIELDS:
            value = form.get(field)
            if isinstance(value, UploadFile):
                if not value.filename:
                    raise bad_request(f"{field} is required")
                if _upload_size(value) > max_bytes:
                    raise bad_request(f"{field} exceeds the {max_bytes // 1_000_000}MB upload limit")
                key = upload_key(field, value.filename)
                while storage.exists(key):
                    key = upload_key(field, value.filename)
                pictures[field] = storage.save(value.file, key)
                stored_keys.append(key)
            else:
                pictures[field] = require_string({field: value}, field)
    except HTTPException:
        for key in stored_keys:
            storage.delete(key)
        raise
    log.info("breakdown_pictures_stored", count=len(stored_keys))
    return pictures, stored_keys


@router.get("", response_model=BreakdownReportListResponse)
def list_breakdown_reports(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    db: Session = Depends(get_db),
    _=Depends(optional_manager("Access denied. Only managers can access this endpoint.")),
):
    """Breakdown reports newest first, optionally limited to an inclusive submission_date range."""
    start, end = parse_date_range(start_date, end_date)
    query = apply_date_range(db.query(BreakdownReport), BreakdownReport.submission_date, start, end)
    rows = query.order_by(BreakdownReport.submission_date.desc()).all()
    return {"breakdown_reports": [breakdown_report_to_dict(r) for r in rows]}


@router.post("", status_code=201, response_model=BreakdownReportResponse)
async def create_breakdown_report(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    identity: CallerIdentity = Depends(get_caller_identity),
    settings: Settings = Depends(get_settings),
    storage: StorageProvider = Depends(get_storage),
):
    """
    Create a breakdown report from a multipart form.

    The nine text fields are required strings. Each picture field is either an uploaded
    file (stored locally, served from the CDN base) or a string pointing at a stored picture.
    """
    log = structlog.get_logger()
    try:
        profile = identity_service.get_or_create(db, identity.user_id, identity.name or "Unknown")
    except SQLAlchemyError as e:
        db.rollback()
        log.error("breakdown_identity_lookup_failed", user_id=identity.user_id, error=str(e))
        raise bad_request("Unable to retrieve user details")

    form = await request.form()
    fields = {name: require_string(form, name) for name in TEXT_FIELDS}
    pictures, stored_keys = store_pictures(form, storage, settings.max_upload_bytes)

    report = BreakdownReport(
        id=str(uuid.uuid4()),
        user_id=profile.id,
        submission_date=int(time.time()),
        status=BreakdownStatus.pending.value,
        notes="",
        resolution_notes="",
        **fields,
        **pictures,
    )
    try:
        db.add(report)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        for key in stored_keys:
            storage.delete(key)
        log.error("breakdown_report_save_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to save breakdown report")

    background_tasks.add_task(notify_breakdown_report, settings, report)
    log.info("breakdown_report_created", breakdown_report_id=report.id, user_id=report.user_id)
    return breakdown_report_to_dict(report)


@router.put("/{breakdown_report_id}", response_model=BreakdownReportResponse)
def resolve_breakdown_report(
    breakdown_report_id: str,
    body: Any = Body(None),
    db: Session = Depends(get_db),
    manager=Depends(require_manager("Only managers can resolve breakdown reports")),
):
    log = structlog.get_logger()
    data = require_object(body)
    status = data.get("status")
    if not status:
        raise bad_request("Status is required")
    valid = [s.value for s in BreakdownStatus]
    if status not in valid:
        raise bad_request("Invalid status. Must be one of: pending, resolved, in_progress")
    resolution_notes = data.get("resolution_notes")
    if not resolution_notes or not isinstance(resolution_notes, str):
        raise bad_request("Resolution notes are required")

    report = db.get(BreakdownReport, breakdown_report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Breakdown report not found")
    report.status = status
    report.resolution_notes = resolution_notes
    db.commit()
    log.info("breakdown_report_resolved", breakdown_report_id=report.id, status=status, manager_id=manager.id)
    return breakdown_report_to_dict(report)
