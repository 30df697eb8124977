import warnings
from typing import List
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ── Known insecure default keys (must never be used in production) ──
_INSECURE_KEYS = {
    "change_this",
    "change_this_to_a_secure_random_string",
    "CHANGE_THIS_PRODUCTION_SECRET_MIN_32_CHARS",
    "secret",
}


class Settings(BaseSettings):
    APP_NAME: str = "Tenant Branding Service"
    APP_ENV: str = "development"
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str = "change_this"
    ALGORITHM: str = "HS256"

    # CORS
    BACKEND_CORS_ORIGINS: str = ""

    # Database（DATABASE_URL 優先，否則由 POSTGRES_* 組合）
    DATABASE_URL: str = ""
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "branding"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800            # 30 分鐘
    DB_ECHO: bool = False
    SLOW_QUERY_THRESHOLD_MS: int = 500

    # Branding resolution
    BRANDING_CACHE_TTL_SECONDS: float = 300.0   # 5 分鐘
    BRANDING_PLATFORM_HOSTS: str = "localhost,127.0.0.1,::1"

    # Custom domain lifecycle
    BRANDING_CNAME_BASE: str = "branding-proxy.example"
    DOMAIN_VERIFICATION_WINDOW_HOURS: int = 72
    DOMAIN_VERIFY_TIMEOUT_SECONDS: float = 10.0
    DOMAIN_VERIFY_ATTEMPTS: int = 3
    DOMAIN_VERIFY_INTERVAL_SECONDS: float = 1.0
    DNS_NAMESERVERS: str = ""                   # 逗號分隔；空值 = 系統 resolver
    TLS_PROVISIONING_WEBHOOK_URL: str = ""      # 空值 = 交由 edge provider 處理

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def _validate_production_security(self) -> "Settings":
        """Block startup if critical secrets are insecure in production / staging."""
        if self.APP_ENV in ("production", "staging"):
            if self.SECRET_KEY in _INSECURE_KEYS or len(self.SECRET_KEY) < 32:
                raise ValueError(
                    f"SECRET_KEY is insecure ('{self.SECRET_KEY[:8]}…'). "
                    "Set a strong random key (≥ 32 chars) in .env or environment. "
                    "Hint: python scripts/generate_secrets.py"
                )
            if not self.DATABASE_URL and self.POSTGRES_PASSWORD in ("postgres", ""):
                raise ValueError(
                    "POSTGRES_PASSWORD is set to default 'postgres'. "
                    "Set a strong password in .env or environment."
                )
            if self.BRANDING_CNAME_BASE.endswith(".example"):
                warnings.warn(
                    "BRANDING_CNAME_BASE still points at the placeholder "
                    f"'{self.BRANDING_CNAME_BASE}'. Tenants will be told to publish "
                    "CNAME records that can never resolve.",
                    UserWarning,
                    stacklevel=2,
                )
        return self

    @property
    def sqlalchemy_database_uri(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_SERVER}/{self.POSTGRES_DB}"
        )

    @property
    def platform_hosts(self) -> List[str]:
        return [h.strip().lower() for h in self.BRANDING_PLATFORM_HOSTS.split(",") if h.strip()]

    @property
    def dns_nameservers(self) -> List[str]:
        return [ns.strip() for ns in self.DNS_NAMESERVERS.split(",") if ns.strip()]

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
