"""
Demo data: one manager account plus a couple of break requests and breakdown reports.
Skipped entirely when the manager account already exists.
"""
import time

from sqlalchemy.orm import Session

from ..auth.security import MANAGER_ROLE, get_password_hash, hash_password_bcrypt
from ..logging import structlog
from ..models.models import BreakdownReport, BreakRequest, User


DEMO_USERNAME = "systemadmin"
DEMO_USER_ID = "idn_d1f21rgoo9s6edus1jdg"


def seed_demo_data(db: Session) -> bool:
    log = structlog.get_logger()
    if db.query(User).filter(User.username == DEMO_USERNAME).first():
        log.info("seed_skipped", username=DEMO_USERNAME)
        return False

    now = int(time.time())
    db.add(
        User(
            id=DEMO_USER_ID,
            role=MANAGER_ROLE,
            name="System Admin",
            handle=DEMO_USERNAME,
            email="admin@trucking.com",
            username=DEMO_USERNAME,
            password=hash_password_bcrypt("password"),
        )
    )
    db.add_all(
        [
            BreakdownReport(
                id="rep-001", user_id="driver-01", truck_registration_number="TRK-123",
                fleet_number="F01", driver_full_names="John Doe", cellphone_number="555-1234",
                supervisor_name="Super Visor", supervisor_cellphone_number="555-5678",
                company_name="Trucking Inc", breakdown_location="N1 Highway",
                issue_description="Engine Overheating", submission_date=now - 86400,
                status="pending", notes="Steam from engine", resolution_notes="",
                slip_picture="slip.jpg", seal_1_picture="seal1.jpg", seal_2_picture="seal2.jpg",
            ),
            BreakdownReport(
                id="rep-002", user_id="driver-02", truck_registration_number="TRK-456",
                fleet_number="F02", driver_full_names="Jane Smith", cellphone_number="555-4321",
                supervisor_name="Super Visor", supervisor_cellphone_number="555-5678",
                company_name="Trucking Inc", breakdown_location="R21 Off-ramp",
                issue_description="Flat Tire", submission_date=now - 172800,
                status="resolved", notes="Front left tire", resolution_notes="Replaced tire",
                slip_picture="slip.jpg", seal_1_picture="seal1.jpg", seal_2_picture="seal2.jpg",
            ),
            BreakRequest(
                id="req-001", user_id="driver-03", break_type="fatigue", break_duration=30,
                submission_date=now - 43200, notes="Long day", driver_name="Peter Jones",
                company_name="Trucking Inc", location="Midrand",
            ),
            BreakRequest(
                id="req-002", user_id="driver-04", break_type="lunch", break_duration=60,
                submission_date=now - 259200, notes="Lunch break", driver_name="Mary Williams",
                company_name="Trucking Inc", location="Centurion",
            ),
        ]
    )
    db.commit()
    log.info("seed_completed", username=DEMO_USERNAME, breakdown_reports=2, break_requests=2)
    return True


def create_user(db: Session, username: str, password: str, role: str, name: str = "", email: str = "") -> User:
    """Create a login account. Passwords are stored with the current hashing scheme."""
    if db.query(User).filter(User.username == username).first():
        raise ValueError(f"username '{username}' already exists")
    user = User(
        role=role,
        name=name or username,
        handle=username,
        email=email,
        username=username,
        password=get_password_hash(password),
    )
    db.add(user)
    db.commit()
    structlog.get_logger().info("user_created", username=username, role=role)
    return user
