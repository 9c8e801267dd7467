from datetime import datetime, timezone

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError

from albumrank.core.config import settings

ph = PasswordHasher()


def hash_password(pwd: str) -> str:
    return ph.hash(pwd)

def verify_password(pwd: str, pwd_hash: str) -> bool:
    try:
        return ph.verify(pwd_hash, pwd)
    except (VerificationError, InvalidHashError):
        return False

def needs_rehash(pwd_hash: str) -> bool:
    try:
        return ph.check_needs_rehash(pwd_hash)
    except InvalidHashError:
        return True

def create_access_token(*, sub: str, role: str) -> str:
    now = int(datetime.now(tz=timezone.utc).timestamp())
    payload = {
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": now,
        "exp": now + settings.jwt_ttl_minutes * 60,
        "sub": sub,
        "role": role,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")

def decode_access_token(token: str) -> dict:
    """Raises jwt.PyJWTError subclasses on any problem with the token."""
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=["HS256"],
        audience=settings.jwt_audience,
        issuer=settings.jwt_issuer,
        leeway=60,  # tolerate small clock skew
    )
