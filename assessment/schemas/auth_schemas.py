from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class AuthTokenPayload(BaseModel):
    sub: str
    exp: Optional[datetime] = None
    preferences: Optional[dict] = None
