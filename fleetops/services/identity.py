from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..logging import structlog
from ..models.models import StormAuthUser


def get_or_create(db: Session, external_id: str, display_name: str) -> StormAuthUser:
    """
    Return the profile for ``external_id``, creating it with empty handle/email if absent.

    Must be called with no other pending changes on ``db``. A concurrent first call for the
    same id hits the primary key, so the loser rolls back and reads the winner's row.
    """
    profile = db.get(StormAuthUser, external_id)
    if profile is not None:
        return profile
    try:
        profile = StormAuthUser(id=external_id, name=display_name or "", handle="", email="")
        db.add(profile)
        db.commit()
        structlog.get_logger().info("storm_user_created", user_id=external_id)
        return profile
    except IntegrityError:
        db.rollback()
        profile = db.get(StormAuthUser, external_id)
        if profile is None:
            raise
        return profile


def profile_to_dict(profile: StormAuthUser) -> dict:
    return {
        "id": profile.id,
        "name": profile.name,
        "handle": profile.handle or "",
        "email": profile.email or "",
    }
