from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.security import require_manager
from ..db import get_db
from ..models.models import User
from ..schemas.auth import StormUserResponse
from ..services.identity import get_or_create, profile_to_dict


router = APIRouter(prefix="/api/storm", tags=["identity"])


@router.get("/auth_user", response_model=StormUserResponse)
def get_storm_auth_user(
    user_id: Optional[str] = None,
    db: Session = Depends(get_db),
    me: User = Depends(require_manager("Access denied. Manager role required.")),
):
    # Defaults to the caller when no user_id is given
    target = user_id or me.id
    return profile_to_dict(get_or_create(db, target, "Unknown"))


@router.get("/me", response_model=StormUserResponse)
def get_current_storm_user(
    db: Session = Depends(get_db),
    me: User = Depends(require_manager("Access denied. Manager role required.")),
):
    return profile_to_dict(get_or_create(db, me.id, me.name))
