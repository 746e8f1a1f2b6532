"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Backend names are validated at load time.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment and .env.

    Firestore credentials are optional so the app (and its tests) can start
    without them; repositories report the store as unavailable until
    FIREBASE_SERVICE_ACCOUNT_KEY or FIREBASE_SERVICE_ACCOUNT_PATH is set.
    """

    # App
    app_name: str = "repair-portal"
    app_version: str = "1.0.0"
    debug: bool = False

    # Firebase / Firestore: use key (env) or path (file).
    firebase_service_account_key: SecretStr | None = None
    firebase_service_account_path: str | None = None
    # Web API key, needed for password sign-in (accounts:signInWithPassword).
    firebase_web_api_key: SecretStr | None = None

    # Portal accounts
    email_domain: str = "repairportal.com"
    default_password: SecretStr = SecretStr("TempPass123!")
    # Comma-separated e-mails treated as admins in addition to the `admin` claim.
    admin_emails: str = ""

    # Repairs
    repairs_page_size: int = 100
    order_number_max_attempts: int = 3
    follow_up_max_retries: int = 5
    export_timezone: str = "UTC"

    # Live queries: seconds between re-runs when no change notification arrives.
    live_query_poll_seconds: float = 5.0

    # CORS (versioned API; the legacy /api routes always allow "*")
    allowed_origins: str = "http://localhost:3000,http://localhost:5173"

    # Photo storage
    storage_backend: str = "local"
    storage_root: str = "/var/repair-portal/uploads"
    storage_base_url: str | None = None
    firebase_storage_bucket: str | None = None
    max_upload_size: int = 10 * 1024 * 1024  # 10MB per photo
    max_photos_per_request: int = 10

    # Request / middleware
    request_id_header: str = "X-Request-ID"

    # Redis change notifications (multi-process live queries)
    redis_enabled: bool = False
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: SecretStr | None = None

    # OpenTelemetry
    telemetry_enabled: bool = False
    telemetry_exporter: str = "console"
    telemetry_otlp_endpoint: str | None = None
    telemetry_sample_rate: float = 1.0
    telemetry_environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_backends(self) -> "Settings":
        """Validate storage backend and numeric limits."""
        if self.storage_backend == "firebase":
            if not self.firebase_storage_bucket:
                raise ValueError(
                    "firebase_storage_bucket is required when storage_backend is 'firebase'. "
                    "Set FIREBASE_STORAGE_BUCKET (e.g. my-project.appspot.com)."
                )
        elif self.storage_backend != "local":
            raise ValueError(
                f"Invalid storage_backend '{self.storage_backend}'. "
                "Must be one of: 'local', 'firebase'"
            )
        if self.repairs_page_size < 1:
            raise ValueError("repairs_page_size must be at least 1")
        if self.live_query_poll_seconds <= 0:
            raise ValueError("live_query_poll_seconds must be positive")
        return self

    @property
    def admin_email_set(self) -> frozenset[str]:
        """Admin e-mails, lowercased."""
        return frozenset(
            e.strip().lower() for e in self.admin_emails.split(",") if e.strip()
        )


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
