from typing import Optional

from pydantic import BaseModel


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"


class StormUserResponse(BaseModel):
    id: str
    name: str
    handle: str = ""
    email: str = ""


class CallerIdentity(BaseModel):
    """Who is calling, as asserted by the gateway header or a verified token."""

    user_id: str
    name: Optional[str] = None
    source: str = "header"  # header|token
