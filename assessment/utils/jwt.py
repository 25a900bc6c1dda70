from typing import Optional

from fastapi import HTTPException, status
from jose import JWTError
from jose.jwt import decode, encode

from assessment.config import settings
from assessment.schemas.auth_schemas import AuthTokenPayload


def create_access_token(data: AuthTokenPayload) -> str:
    """Create a JWT access token. Tokens are normally issued by the auth service; used here by tests and tooling."""
    return encode(data.model_dump(exclude_none=True, mode="json"), settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: Optional[str]) -> AuthTokenPayload:
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")
    try:
        payload = decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        return AuthTokenPayload(**payload)
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
