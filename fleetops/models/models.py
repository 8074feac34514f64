import uuid
from typing import Optional

from sqlalchemy import BigInteger, Float, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ..db import Base


def str_uuid_pk() -> Mapped[str]:
    return mapped_column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = str_uuid_pk()
    role: Mapped[str] = mapped_column(String(50), nullable=False, default="driver")
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    handle: Mapped[Optional[str]] = mapped_column(String(100), default="")
    email: Mapped[Optional[str]] = mapped_column(String(255), default="")
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    password: Mapped[str] = mapped_column(String(255), nullable=False)  # password hash


class StormAuthUser(Base):
    """Lightweight profile keyed by the external (gateway) user id. Never updated once created."""

    __tablename__ = "storm_auth_users"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    handle: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(255), nullable=False, default="")


class BreakRequest(Base):
    __tablename__ = "break_requests"

    id: Mapped[str] = str_uuid_pk()
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    break_type: Mapped[str] = mapped_column(String(20), nullable=False)  # fatigue|lunch
    break_duration: Mapped[float] = mapped_column(Float, nullable=False)  # minutes
    submission_date: Mapped[int] = mapped_column(BigInteger, nullable=False)  # unix seconds
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    driver_name: Mapped[str] = mapped_column(String(255), nullable=False)
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False)

    __table_args__ = (Index("ix_break_requests_submission_date", "submission_date"),)


class BreakdownReport(Base):
    __tablename__ = "breakdown_reports"

    id: Mapped[str] = str_uuid_pk()
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    truck_registration_number: Mapped[str] = mapped_column(String(50), nullable=False)
    fleet_number: Mapped[str] = mapped_column(String(50), nullable=False)
    driver_full_names: Mapped[str] = mapped_column(String(255), nullable=False)
    cellphone_number: Mapped[str] = mapped_column(String(50), nullable=False)
    supervisor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    supervisor_cellphone_number: Mapped[str] = mapped_column(String(50), nullable=False)
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    breakdown_location: Mapped[str] = mapped_column(String(255), nullable=False)
    issue_description: Mapped[str] = mapped_column(Text, nullable=False)
    submission_date: Mapped[int] = mapped_column(BigInteger, nullable=False)  # unix seconds
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")  # pending|in_progress|resolved
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    resolution_notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    slip_picture: Mapped[str] = mapped_column(String(1024), nullable=False)
    seal_1_picture: Mapped[str] = mapped_column(String(1024), nullable=False)
    seal_2_picture: Mapped[str] = mapped_column(String(1024), nullable=False)

    __table_args__ = (Index("ix_breakdown_reports_submission_date", "submission_date"),)
