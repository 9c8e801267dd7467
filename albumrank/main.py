import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from albumrank.core.config import settings
from albumrank.core.logging import configure_logging
from albumrank.core.bootstrap import ensure_admin_user
from albumrank.db.session import SessionLocal
from albumrank.api.routes import router as health_router
from albumrank.api.auth import router as auth_router
from albumrank.api.users import router as users_router
from albumrank.api.albums import router as albums_router
from albumrank.api.entries import router as entries_router
from albumrank.api.rankings import router as rankings_router
from albumrank.api.activity import router as activity_router

logger = logging.getLogger(__name__)


def seed_admin() -> None:
    # Hard block in production even if someone flips the flag
    if settings.env in ("prod", "production"):
        raise RuntimeError("Refusing to seed admin in production. Remove ENABLE_ADMIN_SEED.")
    if not settings.admin_email or not settings.admin_password:
        logger.warning("ENABLE_ADMIN_SEED is true but ADMIN_EMAIL or ADMIN_PASSWORD is missing; skipping.")
        return
    with SessionLocal() as db:
        ensure_admin_user(
            db,
            email=settings.admin_email,
            username=settings.admin_username,
            password=settings.admin_password,
        )
    logger.info("Admin seed ensured.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ---- startup -----------------------------------------------------------
    configure_logging()
    if settings.enable_admin_seed:
        seed_admin()

    yield  # ---- shutdown (nothing to do) -----------------------------------


app = FastAPI(title=settings.service_name, lifespan=lifespan)

# --- CORS setup --------------------------------------------------------------
# Origins come from ALLOWED_ORIGINS (comma-separated), see core.config.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=False,  # bearer tokens, no cookies
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept"],
    max_age=86400,
)

# Routers
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(albums_router)
app.include_router(entries_router)
app.include_router(rankings_router)
app.include_router(activity_router)
