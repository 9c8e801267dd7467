import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from albumrank.api.deps import get_db
from albumrank.db import models as m
from albumrank.db import schemas as s
from albumrank.core.security import create_access_token, hash_password, needs_rehash, verify_password

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/register", response_model=s.UserPrivate, status_code=201)
def register(payload: s.UserCreate, db: Session = Depends(get_db)):
    email = payload.email.lower().strip()

    existing = (
        db.query(m.User)
          .filter(or_(m.User.email == email, m.User.username == payload.username))
          .first()
    )
    if existing:
        detail = "email_in_use" if existing.email == email else "username_taken"
        raise HTTPException(status_code=409, detail=detail)

    user = m.User(
        username=payload.username,
        email=email,
        password_hash=hash_password(payload.password),
        display_name=(payload.display_name or "").strip() or payload.username,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        # Handles the rare race where two requests bypass the existence check
        raise HTTPException(status_code=409, detail="account_exists")
    db.refresh(user)
    logger.info("registered user=%s", user.id)
    return user


@router.post("/login", response_model=s.TokenResponse)
def login(payload: s.UserLogin, db: Session = Depends(get_db)):
    user = db.query(m.User).filter(m.User.email == payload.email.lower().strip()).first()
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_credentials")

    # Transparently upgrade hash if params changed
    if needs_rehash(user.password_hash):
        user.password_hash = hash_password(payload.password)

    user.last_login_at = datetime.now(timezone.utc)
    db.commit()

    return s.TokenResponse(access_token=create_access_token(sub=str(user.id), role=user.role))
