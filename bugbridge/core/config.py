from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, AliasChoices, SecretStr, field_validator
from pathlib import Path
import os
import logging

logger = logging.getLogger("bugbridge.config")

# Module-level repo root to avoid Pydantic private attr behavior on class underscores
REPO_ROOT = Path(__file__).resolve().parents[2]
PACKAGE_ROOT = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    # Use environment variables with prefix BUGBRIDGE_ and load from repo-local env file if present.
    # Resolve the env file relative to the repo root so starting the app from any CWD still loads settings.
    model_config = SettingsConfigDict(
        env_prefix="BUGBRIDGE_",
        env_file=str(REPO_ROOT / "environments" / "sample.env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    ENV: str = "dev"  # dev|test|prod
    API_PREFIX: str = "/api"
    LOG_LEVEL: str = "info"
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # Tracker (BugHerd) API. Accept our prefixed env var and the plain name used by existing deployments.
    TRACKER_API_KEY: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("BUGBRIDGE_TRACKER_API_KEY", "BUGHERD_API_KEY"),
    )
    TRACKER_BASE_URL: str = "https://www.bugherd.com/api_v2"
    TRACKER_TIMEOUT_SECONDS: float = 30.0
    PROJECT_TIMEOUT_SECONDS: float = 10.0

    # Pagination of the project task list
    PAGE_SIZE: int = Field(default=100, description="Tasks per page for CSV/HTML exports")
    PAGE_TIMEOUT_SECONDS: float = 30.0
    BRAND_PAGE_SIZE: int = Field(default=50, description="Tasks per page for brand reports")
    BRAND_PAGE_TIMEOUT_SECONDS: float = 60.0

    # Per-task detail fetches in flight at once
    DETAIL_CONCURRENCY: int = Field(default=8, ge=1)

    # Numeric status id treated as archived. None disables the numeric rule.
    ARCHIVE_STATUS_ID: int | None = 5

    # Scan every string field of a task for a URL when direct fields and description fail
    DEEP_URL_SCAN: bool = False

    # Uploads
    UPLOAD_DIR: str = str(REPO_ROOT / "uploads")
    UPLOAD_MAX_BYTES: int = 10 * 1024 * 1024

    # Report rendering
    TEMPLATE_DIR: str = str(PACKAGE_ROOT / "templates")
    REPORT_OUTPUT_PATH: str = str(REPO_ROOT / "generated-report.html")
    BRAND_REPORT_OUTPUT_PATH: str = str(REPO_ROOT / "generated-brand-report.html")

    # Optional static frontend serving
    FRONTEND_DIR: str | None = None
    FRONTEND_INDEX: str = "index.html"

    # Observability / Telemetry
    AZ_MONITOR_ENABLED: bool = True
    # Accept both our prefixed env var and the standard Azure variable name from platform
    AZ_MONITOR_CONNECTION_STRING: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "BUGBRIDGE_AZ_MONITOR_CONNECTION_STRING", "APPLICATIONINSIGHTS_CONNECTION_STRING"
        ),
    )
    SERVICE_NAME: str = "bugbridge"

    @field_validator("ARCHIVE_STATUS_ID", mode="before")
    @classmethod
    def _blank_archive_id(cls, v):
        # An empty env value turns the numeric archive rule off
        if isinstance(v, str) and not v.strip():
            return None
        return v


def validate_startup(cfg: "Settings") -> list[str]:
    """Return configuration problems that must stop the process from serving.

    An empty list means the configuration is usable. Callers decide how to fail.
    """
    problems: list[str] = []
    key = cfg.TRACKER_API_KEY.get_secret_value().strip() if cfg.TRACKER_API_KEY else ""
    if not key:
        problems.append(
            "Tracker API key is not set. Set BUGHERD_API_KEY or BUGBRIDGE_TRACKER_API_KEY."
        )
    if not cfg.TRACKER_BASE_URL.startswith(("http://", "https://")):
        problems.append(f"TRACKER_BASE_URL must be an http(s) URL, got '{cfg.TRACKER_BASE_URL}'")
    if cfg.PAGE_SIZE < 1 or cfg.BRAND_PAGE_SIZE < 1:
        problems.append("PAGE_SIZE and BRAND_PAGE_SIZE must be positive")
    return problems


def _resolve_env_files_from_override(repo_root: Path) -> str | tuple[str, ...] | None:
    """Resolve optional override for dotenv file(s) using BUGBRIDGE_ENV_FILE.

    Supports absolute or relative paths (relative to repo root) and
    comma-separated list for multiple env files (later items override earlier).
    """
    override = os.getenv("BUGBRIDGE_ENV_FILE")
    if not override:
        return None

    def to_abs(p: str) -> str:
        path = Path(p)
        if not path.is_absolute():
            path = repo_root / p
        return str(path)

    parts = [p.strip() for p in override.split(",") if p.strip()]
    if not parts:
        return None
    if len(parts) == 1:
        return to_abs(parts[0])
    return tuple(to_abs(p) for p in parts)


_override_env_file = _resolve_env_files_from_override(REPO_ROOT)

settings: Settings
if _override_env_file:

    class _RuntimeSettings(Settings):
        model_config = SettingsConfigDict(
            env_prefix="BUGBRIDGE_",
            env_file=_override_env_file,  # type: ignore[arg-type]
            env_file_encoding="utf-8",
            extra="ignore",
        )

    settings = _RuntimeSettings()
else:
    # Auto-apply local overlays when present so secrets can live in uncommitted files.
    # Order: default committed env -> overlays (later overrides earlier)
    default_env = REPO_ROOT / "environments" / "sample.env"
    overlay_candidates = [
        REPO_ROOT / "environments" / "development.local.env",
        REPO_ROOT / "environments" / "local.env",
    ]
    overlays: list[str] = [str(p) for p in overlay_candidates if p.exists()]

    if overlays:

        class _AutoOverlaySettings(Settings):
            model_config = SettingsConfigDict(
                env_prefix="BUGBRIDGE_",
                env_file=(str(default_env), *overlays),  # type: ignore[arg-type]
                env_file_encoding="utf-8",
                extra="ignore",
            )

        settings = _AutoOverlaySettings()
    else:
        settings = Settings()


def log_settings() -> None:
    """Log settings at startup. SecretStr fields are automatically masked."""
    logger.info("Configuration loaded: %s", settings)


# IMPORTANT: Do not reassign `settings` again here. The instance above has
# already been created with respect to the optional BUGBRIDGE_ENV_FILE override.
