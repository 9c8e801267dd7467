from fastapi import APIRouter
from sqlalchemy import text

from albumrank.core.config import settings
from albumrank.db.session import engine

router = APIRouter()

@router.get("/healthz")
def healthz():
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "service": settings.service_name}
