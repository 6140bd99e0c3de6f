import pytest

from control_panel.config import Settings

# Tests for Settings.from_env() across the supported environment formats

CONFIG_ENV = (
    "ALLOWED_ORIGINS",
    "AUTH_BASE_URL",
    "AUTH_SESSION_COOKIE_NAME",
    "AUTH_SESSION_TOKEN",
    "ACCESS_SOURCE",
    "LOG_PAGE_LIMIT",
    "ADMIN_API_TIMEOUT_SECONDS",
    "HEALTH_CHECK_TIMEOUT_SECONDS",
    "FIREBASE_PROJECT_ID",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in CONFIG_ENV:
        monkeypatch.delenv(name, raising=False)


def test_defaults_without_environment() -> None:
    settings = Settings.from_env()

    assert settings.allowed_origins == []
    assert settings.auth_base_url == ""
    assert settings.access_source == "firestore"
    assert settings.log_page_limit == 200
    assert settings.auth_session_cookie_name == "session"
    assert settings.firebase_project_id is None


def test_allowed_origins_csv_format(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that ALLOWED_ORIGINS can be parsed as CSV."""
    monkeypatch.setenv("ALLOWED_ORIGINS", "http://localhost:3000, http://localhost:8080,")

    settings = Settings.from_env()

    assert settings.allowed_origins == ["http://localhost:3000", "http://localhost:8080"]


def test_allowed_origins_json_array_format(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that ALLOWED_ORIGINS can be parsed as JSON array."""
    monkeypatch.setenv("ALLOWED_ORIGINS", '["http://localhost:3000", "https://admin.example.test"]')

    settings = Settings.from_env()

    assert settings.allowed_origins == ["http://localhost:3000", "https://admin.example.test"]


def test_allowed_origins_rejects_wildcard(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ALLOWED_ORIGINS", "*")

    with pytest.raises(ValueError, match=r"cannot contain '\*' when credentialed requests"):
        Settings.from_env()


@pytest.mark.parametrize(
    ("raw", "message"),
    [
        ('["http://localhost:3000"', "ALLOWED_ORIGINS JSON is malformed"),
        ('{"origin": "http://localhost:3000"}', "valid http/https origins"),
        ('["localhost:3000"]', "valid http/https origins"),
        ("ftp://files.example.test", "valid http/https origins"),
    ],
)
def test_allowed_origins_rejects_invalid_values(
    monkeypatch: pytest.MonkeyPatch, raw: str, message: str
) -> None:
    monkeypatch.setenv("ALLOWED_ORIGINS", raw)

    with pytest.raises(ValueError, match=message):
        Settings.from_env()


def test_auth_base_url_trailing_slash_is_trimmed(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUTH_BASE_URL", " https://auth.example.test/ ")

    assert Settings.from_env().auth_base_url == "https://auth.example.test"


def test_auth_base_url_requires_scheme_and_host(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUTH_BASE_URL", "auth.example.test")

    with pytest.raises(ValueError, match="AUTH_BASE_URL must be a valid"):
        Settings.from_env()


def test_access_source_is_case_insensitive(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ACCESS_SOURCE", " Admin_API ")

    assert Settings.from_env().access_source == "admin_api"


def test_access_source_rejects_unknown(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ACCESS_SOURCE", "postgres")

    with pytest.raises(ValueError, match="ACCESS_SOURCE must be one of"):
        Settings.from_env()


@pytest.mark.parametrize("raw", ["0", "501", "ten"])
def test_log_page_limit_bounds(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("LOG_PAGE_LIMIT", raw)

    with pytest.raises(ValueError, match="LOG_PAGE_LIMIT"):
        Settings.from_env()


def test_timeouts_must_be_positive_numbers(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HEALTH_CHECK_TIMEOUT_SECONDS", "2.5")
    assert Settings.from_env().health_check_timeout_seconds == 2.5

    monkeypatch.setenv("ADMIN_API_TIMEOUT_SECONDS", "-1")
    with pytest.raises(ValueError, match="ADMIN_API_TIMEOUT_SECONDS must be greater than 0"):
        Settings.from_env()

    monkeypatch.setenv("ADMIN_API_TIMEOUT_SECONDS", "soon")
    with pytest.raises(ValueError, match="ADMIN_API_TIMEOUT_SECONDS must be a number"):
        Settings.from_env()


def test_blank_cookie_name_falls_back_to_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUTH_SESSION_COOKIE_NAME", "  ")
    monkeypatch.setenv("AUTH_SESSION_TOKEN", "tok")

    settings = Settings.from_env()

    assert settings.auth_session_cookie_name == "session"
    assert settings.auth_session_token == "tok"
