from datetime import datetime, timedelta, timezone
from uuid import uuid4

from jose import JWTError, jwt

from resume_chat.config import settings


def create_access_token(subject: str) -> str:
    """Issue a bearer token for `subject`. Login lives in the account service; this is for tools and tests."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode = {"sub": subject, "exp": expire}
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> str | None:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        return payload.get("sub")
    except JWTError:
        return None


def generate_id() -> str:
    return str(uuid4())
