import warnings
from typing import Optional
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ── Known insecure default keys (must never be used in production) ──
_INSECURE_KEYS = {
    "change_this",
    "change_this_to_a_secure_random_string",
    "secret",
}


class Settings(BaseSettings):
    APP_NAME: str = "Hosting Panel"
    APP_VERSION: str = "1.0.0"
    APP_ENV: str = "development"
    API_PREFIX: str = "/api"
    SECRET_KEY: str = "change_this"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 7 days
    ALGORITHM: str = "HS256"

    # CORS
    BACKEND_CORS_ORIGINS: str = ""

    # Database
    DATABASE_URL: Optional[str] = None
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "hosting_panel"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800  # 30 min
    DB_ECHO: bool = False
    SLOW_QUERY_THRESHOLD_MS: int = 500

    # Redis (rate limiting)
    REDIS_URL: str = "redis://localhost:6379/0"

    # File Storage
    UPLOAD_DIR: str = "./uploads"
    MAX_FILE_SIZE: int = 50 * 1024 * 1024  # 50MB
    UPLOAD_CHUNK_SIZE: int = 64 * 1024

    # Custom domains
    EXTERNAL_HOSTNAME: str = "your-service.onrender.com"
    VERIFY_HOST_SUFFIX: str = "verify.renderdns.com"
    DNS_RECORD_TTL: int = 300
    # simulated: random pass/fail placeholder, pending: never passes, pass: always passes
    DOMAIN_VERIFICATION_MODE: str = "simulated"
    DOMAIN_VERIFICATION_SUCCESS_RATE: float = 0.7

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_WINDOW_MINUTES: int = 15
    RATE_LIMIT_MAX: int = 100

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @model_validator(mode="after")
    def _validate_production_security(self) -> "Settings":
        """Block startup if critical secrets are insecure in production / staging."""
        if self.APP_ENV in ("production", "staging"):
            if self.SECRET_KEY in _INSECURE_KEYS or len(self.SECRET_KEY) < 32:
                raise ValueError(
                    f"SECRET_KEY is insecure ('{self.SECRET_KEY[:8]}…'). "
                    "Set a strong random key (≥ 32 chars) in .env or environment."
                )
            if not self.DATABASE_URL and self.POSTGRES_PASSWORD in ("postgres", ""):
                raise ValueError(
                    "POSTGRES_PASSWORD is set to default 'postgres'. "
                    "Set a strong password in .env or environment."
                )
            if self.DOMAIN_VERIFICATION_MODE == "pass":
                warnings.warn(
                    "DOMAIN_VERIFICATION_MODE is 'pass': every domain verifies "
                    "without any DNS check.",
                    UserWarning,
                    stacklevel=2,
                )
        if self.DOMAIN_VERIFICATION_MODE not in ("simulated", "pending", "pass"):
            raise ValueError(
                f"Unknown DOMAIN_VERIFICATION_MODE '{self.DOMAIN_VERIFICATION_MODE}'"
            )
        return self

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_SERVER}/{self.POSTGRES_DB}"
        )

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def is_staging(self) -> bool:
        return self.APP_ENV == "staging"

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

settings = Settings()
