import json
import os
import threading
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import BaseModel, Field


load_dotenv()

ACCESS_SOURCES = ("firestore", "admin_api")
MAX_LOG_PAGE_LIMIT = 500


def _parse_allowed_origins(raw: str) -> list[str]:
    if not raw:
        return []

    # Support both CSV format and JSON array format
    if raw.startswith("["):
        try:
            parsed_list = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"ALLOWED_ORIGINS JSON is malformed: {exc}") from exc
        if not isinstance(parsed_list, list):
            raise ValueError("ALLOWED_ORIGINS JSON must be an array")
        origins = [
            origin.strip() for origin in parsed_list if isinstance(origin, str) and origin.strip()
        ]
    else:
        origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

    if "*" in origins:
        raise ValueError(
            "ALLOWED_ORIGINS cannot contain '*' when credentialed requests are used"
        )
    for origin in origins:
        parsed = urlparse(origin)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError(
                "ALLOWED_ORIGINS must contain valid http/https origins with host"
            )
    return origins


def _positive_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number") from exc
    if value <= 0:
        raise ValueError(f"{name} must be greater than 0")
    return value


def _optional(name: str) -> str | None:
    value = os.getenv(name, "").strip()
    return value or None


class Settings(BaseModel):
    app_name: str = Field(default="Control Panel")
    debug: bool = Field(default=False)
    auth_base_url: str = Field(default="")
    auth_session_cookie_name: str = Field(default="session")
    auth_session_token: str | None = Field(default=None)
    admin_api_timeout_seconds: float = Field(default=10.0)
    health_check_timeout_seconds: float = Field(default=6.0)
    access_source: str = Field(default="firestore")
    firebase_project_id: str | None = Field(default=None)
    firebase_api_key: str | None = Field(default=None)
    firebase_service_account_json: str | None = Field(default=None)
    firebase_service_account_path: str | None = Field(default=None)
    allowed_origins: list[str] = Field(default_factory=list)
    log_page_limit: int = Field(default=200)

    @classmethod
    def from_env(cls) -> "Settings":
        # A missing AUTH_BASE_URL is legal here; admin API calls fail fast instead.
        auth_base_url = os.getenv("AUTH_BASE_URL", "").strip().rstrip("/")
        if auth_base_url:
            parsed = urlparse(auth_base_url)
            if parsed.scheme not in {"http", "https"} or not parsed.netloc:
                raise ValueError("AUTH_BASE_URL must be a valid http/https URL with host")

        access_source = (
            os.getenv("ACCESS_SOURCE", cls.model_fields["access_source"].default)
            .strip()
            .lower()
        )
        if access_source not in ACCESS_SOURCES:
            raise ValueError(
                f"ACCESS_SOURCE must be one of: {', '.join(ACCESS_SOURCES)}"
            )

        raw_log_page_limit = os.getenv("LOG_PAGE_LIMIT", "").strip()
        try:
            log_page_limit = (
                int(raw_log_page_limit)
                if raw_log_page_limit
                else cls.model_fields["log_page_limit"].default
            )
        except ValueError as exc:
            raise ValueError("LOG_PAGE_LIMIT must be an integer") from exc
        if not 1 <= log_page_limit <= MAX_LOG_PAGE_LIMIT:
            raise ValueError(f"LOG_PAGE_LIMIT must be between 1 and {MAX_LOG_PAGE_LIMIT}")

        cookie_name = (
            os.getenv("AUTH_SESSION_COOKIE_NAME", "").strip()
            or cls.model_fields["auth_session_cookie_name"].default
        )

        return cls(
            app_name=os.getenv("APP_NAME", cls.model_fields["app_name"].default),
            debug=os.getenv("DEBUG", "false").lower() == "true",
            auth_base_url=auth_base_url,
            auth_session_cookie_name=cookie_name,
            auth_session_token=_optional("AUTH_SESSION_TOKEN"),
            admin_api_timeout_seconds=_positive_float(
                "ADMIN_API_TIMEOUT_SECONDS",
                cls.model_fields["admin_api_timeout_seconds"].default,
            ),
            health_check_timeout_seconds=_positive_float(
                "HEALTH_CHECK_TIMEOUT_SECONDS",
                cls.model_fields["health_check_timeout_seconds"].default,
            ),
            access_source=access_source,
            firebase_project_id=_optional("FIREBASE_PROJECT_ID"),
            firebase_api_key=_optional("FIREBASE_API_KEY"),
            firebase_service_account_json=_optional("FIREBASE_SERVICE_ACCOUNT_JSON"),
            firebase_service_account_path=_optional("FIREBASE_SERVICE_ACCOUNT_PATH"),
            allowed_origins=_parse_allowed_origins(os.getenv("ALLOWED_ORIGINS", "").strip()),
            log_page_limit=log_page_limit,
        )


# Settings are built on first access so the package imports without env validation.
_settings_instance: Settings | None = None
_settings_lock = threading.Lock()


def get_settings() -> Settings:
    """Get settings instance, creating it on first access.

    Uses double-checked locking so concurrent first access from several
    tasks or threads builds the settings exactly once.

    Raises:
        ValueError: If an environment variable is present but invalid
    """
    global _settings_instance

    if _settings_instance is not None:
        return _settings_instance

    with _settings_lock:
        if _settings_instance is None:
            _settings_instance = Settings.from_env()

    return _settings_instance


class _SettingsProxy:
    """Proxy to defer settings creation until first attribute access."""

    def __getattr__(self, name: str):
        return getattr(get_settings(), name)


settings = _SettingsProxy()  # type: ignore[assignment]
