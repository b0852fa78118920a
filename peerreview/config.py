# peerreview/config.py
import os
from dataclasses import dataclass, replace
from pathlib import Path

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, read once at startup."""

    database_url: str = "sqlite:///./peerreview.db"
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    token_ttl_hours: int = 24
    password_rounds: int = 29000
    upload_dir: Path = Path("uploads")
    max_upload_bytes: int = 10 * 1024 * 1024
    cors_origins: tuple = ("*",)
    log_level: str = "INFO"

    def with_overrides(self, **changes) -> "Settings":
        return replace(self, **changes)


def load_settings(env_file=None) -> Settings:
    load_dotenv(env_file)

    defaults = Settings()
    origins = os.getenv("PEERREVIEW_CORS_ORIGINS")
    return Settings(
        database_url=os.getenv("PEERREVIEW_DATABASE_URL", defaults.database_url),
        jwt_secret=os.getenv("PEERREVIEW_JWT_SECRET", defaults.jwt_secret),
        token_ttl_hours=int(os.getenv("PEERREVIEW_TOKEN_TTL_HOURS", defaults.token_ttl_hours)),
        password_rounds=int(os.getenv("PEERREVIEW_PASSWORD_ROUNDS", defaults.password_rounds)),
        upload_dir=Path(os.getenv("PEERREVIEW_UPLOAD_DIR", str(defaults.upload_dir))),
        max_upload_bytes=int(os.getenv("PEERREVIEW_MAX_UPLOAD_BYTES", defaults.max_upload_bytes)),
        cors_origins=tuple(o.strip() for o in origins.split(",")) if origins else defaults.cors_origins,
        log_level=os.getenv("PEERREVIEW_LOG_LEVEL", defaults.log_level),
    )
