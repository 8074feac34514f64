import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from passlib.context import CryptContext
import bcrypt as _bcrypt
from sqlalchemy.orm import Session

from ..config import Settings
from ..db import get_db
from ..models.models import User
from ..schemas.auth import CallerIdentity


USER_ID_HEADER = "x-storm-userid"
USER_NAME_HEADER = "x-storm-username"
MANAGER_ROLE = "manager"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
http_bearer = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def hash_password_bcrypt(password: str) -> str:
    """bcrypt hash as produced by the legacy user store."""
    return _bcrypt.hashpw(password.encode("utf-8")[:72], _bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    if not hashed:
        return False
    # Legacy bcrypt ($2a$/$2b$/$2y$) goes straight to the bcrypt module
    if hashed.startswith(("$2a$", "$2b$", "$2y$")):
        pb = plain.encode("utf-8")[:72]
        try:
            return _bcrypt.checkpw(pb, hashed.encode("utf-8"))
        except ValueError:
            return False
    try:
        return pwd_context.verify(plain, hashed)
    except ValueError:
        return False


def create_access_token(settings: Settings, user_id: str, roles: Optional[List[str]] = None) -> str:
    now = datetime.now(tz=timezone.utc)
    payload = {
        "sub": user_id,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=settings.jwt_ttl_seconds)).timestamp()),
        "jti": str(uuid.uuid4()),
        "roles": roles or [],
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(settings: Settings, token: str) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


# Identity resolvers: each returns a CallerIdentity or None when it does not apply.
IdentityResolver = Callable[[Request, Settings, Optional[HTTPAuthorizationCredentials]], Optional[CallerIdentity]]


def resolve_bearer_identity(
    request: Request, settings: Settings, creds: Optional[HTTPAuthorizationCredentials]
) -> Optional[CallerIdentity]:
    if creds is None:
        return None
    payload = decode_token(settings, creds.credentials)
    sub = payload.get("sub")
    if not sub:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid subject")
    return CallerIdentity(user_id=str(sub), source="token")


def resolve_header_identity(
    request: Request, settings: Settings, creds: Optional[HTTPAuthorizationCredentials]
) -> Optional[CallerIdentity]:
    if not settings.trust_identity_header:
        return None
    user_id = (request.headers.get(USER_ID_HEADER) or "").strip()
    if not user_id:
        return None
    return CallerIdentity(user_id=user_id, name=request.headers.get(USER_NAME_HEADER), source="header")


IDENTITY_RESOLVERS: List[IdentityResolver] = [resolve_bearer_identity, resolve_header_identity]


def get_caller_identity(
    request: Request,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    settings: Settings = Depends(get_settings),
) -> CallerIdentity:
    for resolver in IDENTITY_RESOLVERS:
        identity = resolver(request, settings, creds)
        if identity is not None:
            return identity
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User ID not found in request headers.")


def get_current_user(
    identity: CallerIdentity = Depends(get_caller_identity),
    db: Session = Depends(get_db),
) -> User:
    user = db.query(User).filter(User.id == identity.user_id).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found.")
    return user


def require_manager(message: str = "Access denied. Only managers can access this endpoint."):
    def _dep(user: User = Depends(get_current_user)) -> User:
        if user.role != MANAGER_ROLE:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message)
        return user

    return _dep


def optional_manager(message: str = "Access denied. Only managers can access this endpoint."):
    """Enforce the manager role only when BREAKDOWN_REPORTS_MANAGER_ONLY is on."""

    def _dep(
        request: Request,
        settings: Settings = Depends(get_settings),
        creds: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
        db: Session = Depends(get_db),
    ) -> Optional[User]:
        if not settings.breakdown_reports_manager_only:
            return None
        identity = get_caller_identity(request, creds, settings)
        user = get_current_user(identity, db)
        return require_manager(message)(user)

    return _dep
