import uuid

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from albumrank.db.session import SessionLocal
from albumrank.db import models as m
from albumrank.core.security import decode_access_token

# --- db ----------------------------------------------------------------------

def get_db():
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


# --- auth --------------------------------------------------------------------

bearer = HTTPBearer(auto_error=False)

def require_auth(credentials: HTTPAuthorizationCredentials = Depends(bearer)) -> dict:
    if not credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing_token")
    try:
        return decode_access_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="token_expired")
    except jwt.InvalidAudienceError:
        raise HTTPException(status_code=401, detail="invalid_audience")
    except jwt.InvalidIssuerError:
        raise HTTPException(status_code=401, detail="invalid_issuer")
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="invalid_token")

def current_user_id(claims: dict = Depends(require_auth)) -> uuid.UUID:
    try:
        return uuid.UUID(claims["sub"])
    except (KeyError, TypeError, ValueError):
        raise HTTPException(status_code=401, detail="invalid_subject")

def current_user(db: Session = Depends(get_db), user_id: uuid.UUID = Depends(current_user_id)) -> m.User:
    user = db.get(m.User, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="user_not_found")
    return user

def require_admin(claims: dict = Depends(require_auth)) -> dict:
    if claims.get("role") != "ADMIN":
        raise HTTPException(status_code=403, detail="forbidden")
    return claims
