import os
from pydantic import BaseModel

default_origins = "http://localhost:3000,http://127.0.0.1:3000"

class Settings(BaseModel):
    service_name: str = os.getenv("SERVICE_NAME", "albumrank")
    env: str = os.getenv("ENV", "development").lower()
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./albumrank.db")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret")
    jwt_issuer: str = os.getenv("JWT_ISSUER", "https://auth.albumrank.local")
    jwt_audience: str = os.getenv("JWT_AUDIENCE", "albumrank.api")
    jwt_ttl_minutes: int = int(os.getenv("JWT_TTL_MINUTES", "60"))

    # e.g., ALLOWED_ORIGINS="http://localhost:3000,https://albums.example.com"
    allowed_origins: list[str] = [
        o.strip() for o in os.getenv("ALLOWED_ORIGINS", default_origins).split(",") if o.strip()
    ]

    musicbrainz_base_url: str = os.getenv("MUSICBRAINZ_BASE_URL", "https://musicbrainz.org/ws/2").rstrip("/")
    musicbrainz_user_agent: str = os.getenv(
        "MUSICBRAINZ_USER_AGENT", "albumrank/0.1 (https://github.com/albumrank/albumrank)"
    )
    musicbrainz_timeout_sec: float = float(os.getenv("MUSICBRAINZ_TIMEOUT_SEC", "10.0"))
    cover_fetch_timeout_sec: float = float(os.getenv("COVER_FETCH_TIMEOUT_SEC", "10.0"))

    enable_admin_seed: bool = os.getenv("ENABLE_ADMIN_SEED", "false").lower() in ("1", "true", "yes")
    admin_email: str | None = os.getenv("ADMIN_EMAIL")
    admin_username: str = os.getenv("ADMIN_USERNAME", "admin")
    admin_password: str | None = os.getenv("ADMIN_PASSWORD")

settings = Settings()
