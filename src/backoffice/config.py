"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with BACKOFFICE_ prefix.
No config files — everything comes from the environment (12-factor style).
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings

DEFAULT_JWT_SECRET = "your-super-secret-jwt-key-change-in-production"


class Settings(BaseSettings):
    """All app configuration. Set via BACKOFFICE_* env vars."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./backoffice.db"
    create_schema_on_startup: bool = True

    # Redis is optional; it only backs the shared rate-limit counters
    redis_url: str = ""

    # Auth
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_expires_in: str = "8h"  # access token lifetime: "30m", "8h", "1d" or seconds

    # Bootstrap admin (POST /api/setup)
    default_admin_email: str = "admin@itconsultancy.com"
    default_admin_password: str = "Admin123!"

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
    ]

    # Rate limiting (fixed window per client IP)
    rate_limit_enabled: bool = True
    rate_limit_requests: int = 100
    rate_limit_window_seconds: int = 15 * 60
    rate_limit_auth_requests: int = 10  # stricter bucket for /api/auth/login

    model_config = {"env_prefix": "BACKOFFICE_"}

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Ensure sensitive defaults are changed in non-development environments."""
        if self.environment != "development" and self.jwt_secret == DEFAULT_JWT_SECRET:
            raise ValueError(
                "BACKOFFICE_JWT_SECRET must be set to a secure value in "
                "non-development environments. Generate one with: "
                'python -c "import secrets; print(secrets.token_urlsafe(32))"'
            )
        return self


# Singleton — import this everywhere
settings = Settings()
