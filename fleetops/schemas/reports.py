from enum import Enum
from typing import List, Union

from pydantic import BaseModel


# Enums
class BreakType(str, Enum):
    fatigue = "fatigue"
    lunch = "lunch"


class BreakdownStatus(str, Enum):
    pending = "pending"
    in_progress = "in_progress"
    resolved = "resolved"


class ReportType(str, Enum):
    breakdown = "breakdown"
    break_request = "break_request"


# Break Request Schemas
class BreakRequestResponse(BaseModel):
    id: str
    user_id: str
    break_type: str
    break_duration: Union[int, float]
    submission_date: int
    notes: str


class BreakRequestListResponse(BaseModel):
    break_requests: List[BreakRequestResponse]


# Breakdown Report Schemas
class BreakdownReportResponse(BaseModel):
    id: str
    user_id: str
    truck_registration_number: str
    fleet_number: str
    driver_full_names: str
    cellphone_number: str
    supervisor_name: str
    supervisor_cellphone_number: str
    company_name: str
    breakdown_location: str
    issue_description: str
    submission_date: int
    status: str
    notes: str
    resolution_notes: str
    slip_picture: str
    seal_1_picture: str
    seal_2_picture: str


class BreakdownReportListResponse(BaseModel):
    breakdown_reports: List[BreakdownReportResponse]
