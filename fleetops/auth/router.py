from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.orm import Session

from ..config import Settings
from ..db import get_db
from ..logging import structlog
from ..models.models import User
from ..schemas.auth import TokenResponse
from .security import MANAGER_ROLE, create_access_token, get_settings, verify_password


router = APIRouter(prefix="/api", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
def login(
    body: Any = Body(None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    log = structlog.get_logger()
    data = body if isinstance(body, dict) else {}
    username = data.get("username")
    password = data.get("password")
    if not username or not password or not isinstance(username, str) or not isinstance(password, str):
        raise HTTPException(status_code=400, detail="Username and password are required.")

    user = db.query(User).filter(User.username == username).first()
    # Same message for unknown user and bad password
    if not user or not verify_password(password, user.password):
        log.warning("login_failed", username=username)
        raise HTTPException(status_code=401, detail="Invalid username or password.")
    if user.role != MANAGER_ROLE:
        log.warning("login_forbidden", username=username, role=user.role)
        raise HTTPException(status_code=403, detail="Access denied. Only managers can log in.")

    token = create_access_token(settings, user.id, roles=[user.role])
    log.info("login_succeeded", username=username)
    return TokenResponse(token=token)
