import time
import uuid
from typing import Any, Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth.security import get_caller_identity, get_settings, require_manager
from ..config import Settings
from ..db import get_db
from ..logging import structlog
from ..models.models import BreakRequest
from ..schemas.auth import CallerIdentity
from ..schemas.reports import BreakRequestListResponse, BreakRequestResponse, BreakType
from ..services.notifications import notify_break_request
from ..services.validation import (
    apply_date_range,
    parse_date_range,
    require_choice,
    require_number,
    require_object,
    require_string,
)


router = APIRouter(prefix="/api/break_requests", tags=["break_requests"])


def break_request_to_dict(br: BreakRequest) -> dict:
    duration = br.break_duration
    if isinstance(duration, float) and duration.is_integer():
        duration = int(duration)
    return {
        "id": br.id,
        "user_id": br.user_id,
        "break_type": br.break_type,
        "break_duration": duration,
        "submission_date": br.submission_date,
        "notes": br.notes or "",
    }


@router.get("", response_model=BreakRequestListResponse)
def list_break_requests(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    db: Session = Depends(get_db),
    _=Depends(require_manager("Access denied. Only managers can access this endpoint.")),
):
    """Break requests newest first, optionally limited to an inclusive submission_date range."""
    start, end = parse_date_range(start_date, end_date)
    query = apply_date_range(db.query(BreakRequest), BreakRequest.submission_date, start, end)
    rows = query.order_by(BreakRequest.submission_date.desc()).all()
    return {"break_requests": [break_request_to_dict(r) for r in rows]}


@router.post("", status_code=201, response_model=BreakRequestResponse)
def create_break_request(
    background_tasks: BackgroundTasks,
    body: Any = Body(None),
    db: Session = Depends(get_db),
    identity: CallerIdentity = Depends(get_caller_identity),
    settings: Settings = Depends(get_settings),
):
    log = structlog.get_logger()
    data = require_object(body)
    break_type = require_choice(data, "break_type", [t.value for t in BreakType])
    break_duration = require_number(data, "break_duration")
    driver_name = require_string(data, "driver_name")
    company_name = require_string(data, "company_name")
    location = require_string(data, "location")

    br = BreakRequest(
        id=str(uuid.uuid4()),
        user_id=identity.user_id,
        break_type=break_type,
        break_duration=break_duration,
        submission_date=int(time.time()),
        notes="",
        driver_name=driver_name,
        company_name=company_name,
        location=location,
    )
    try:
        db.add(br)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log.error("break_request_save_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to save break request")

    background_tasks.add_task(notify_break_request, settings, br)

    saved = db.get(BreakRequest, br.id, populate_existing=True)
    if saved is None:
        raise HTTPException(status_code=500, detail="Failed to retrieve saved break request")
    log.info("break_request_created", break_request_id=saved.id, user_id=saved.user_id, break_type=saved.break_type)
    return break_request_to_dict(saved)
