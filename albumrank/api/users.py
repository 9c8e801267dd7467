import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from albumrank.api.deps import get_db, current_user
from albumrank.core.security import hash_password, verify_password
from albumrank.db import models as m
from albumrank.db import schemas as s
from albumrank.services import ledger

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)


# --- helpers -----------------------------------------------------------------

def _get_by_username_or_404(db: Session, username: str) -> m.User:
    user = db.query(m.User).filter(m.User.username == username).first()
    if not user:
        raise HTTPException(status_code=404, detail="user_not_found")
    return user


# --- self-service routes -----------------------------------------------------

@router.get("/me", response_model=s.UserPrivate)
def get_me(me: m.User = Depends(current_user)):
    return me

@router.patch("/me", response_model=s.UserPrivate)
def update_me(update: s.UserUpdate, db: Session = Depends(get_db), me: m.User = Depends(current_user)):
    data = update.model_dump(exclude_unset=True)
    current_password = data.pop("current_password", None)
    new_password = data.pop("new_password", None)

    # username and display_name are required columns: null or blank leaves them as is
    for field in ("username", "display_name"):
        value = data.get(field)
        if field in data and (value is None or not value.strip()):
            data.pop(field)

    username = data.get("username")
    if username and username != me.username:
        taken = db.query(m.User.id).filter(m.User.username == username).first()
        if taken:
            raise HTTPException(status_code=409, detail="username_taken")

    if new_password:
        if not current_password:
            raise HTTPException(status_code=400, detail="current_password_required")
        if not verify_password(current_password, me.password_hash):
            raise HTTPException(status_code=400, detail="invalid_current_password")
        me.password_hash = hash_password(new_password)

    for field, value in data.items():
        if isinstance(value, str):
            value = value.strip() or None
        setattr(me, field, value)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        # another account claimed the username between the check and the commit
        raise HTTPException(status_code=409, detail="username_taken")
    db.refresh(me)
    if new_password:
        logger.info("password changed user=%s", me.id)
    return me


# --- public routes -----------------------------------------------------------

@router.get("/{username}", response_model=s.UserPublic)
def get_profile(username: str, db: Session = Depends(get_db)):
    return _get_by_username_or_404(db, username)

@router.get("/{username}/collection", response_model=List[s.Entry])
def get_collection(username: str, db: Session = Depends(get_db)):
    """A user's albums: ranked ones in order, then unranked newest first."""
    user = _get_by_username_or_404(db, username)
    return ledger.collection(db, user.id)
