"""Configuration management for the Library Catalog service.

Settings are loaded from the environment (``LIBRARY_CATALOG_`` prefix) and an
optional ``.env`` file, validated with Pydantic v2:
1. Service metadata - name and version reported by the API
2. Persistence - SQLite path or a full SQLAlchemy URL
3. Loan policy - loan period, loan limit and the administrative ledger policy
4. Development - debug and log level
"""

import enum
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoanAdminPolicy(str, enum.Enum):
    """How administrative loan edits and deletes interact with copy counts."""

    # Status edits and deletes apply the same copy-count effects as a return
    RECONCILE = "reconcile"
    # Edits and deletes touch the loan row only
    BYPASS = "bypass"


class CatalogConfig(BaseSettings):
    """Library Catalog service configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LIBRARY_CATALOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Service Metadata ===

    service_name: str = Field(
        default="library-catalog",
        description="Service name reported by the health endpoint and API docs",
        pattern=r"^[a-z0-9-]+$",
    )

    service_version: str = Field(
        default="0.1.0",
        description="Service version",
        pattern=r"^\d+\.\d+\.\d+(-[a-zA-Z0-9.]+)?$",
    )

    # === Database Configuration ===

    database_url: str | None = Field(
        default=None,
        description="Full SQLAlchemy URL; overrides database_path when set",
    )

    database_path: Path = Field(
        default=Path("data/library_catalog.db"),
        description="SQLite database file path",
    )

    # === HTTP Configuration ===

    http_host: str = Field(
        default="127.0.0.1",
        description="Bind address for the HTTP server",
    )

    http_port: int = Field(
        default=8080,
        description="Bind port for the HTTP server",
        ge=1024,  # Avoid privileged ports
        le=65535,
    )

    # === Loan Policy ===

    loan_period_days: int = Field(
        default=14,
        description="Days between loan date and due date",
        ge=1,
        le=365,
    )

    max_active_loans: int = Field(
        default=5,
        description="Maximum number of outstanding loans per member",
        ge=1,
        le=100,
    )

    count_overdue_toward_limit: bool = Field(
        default=True,
        description="Count OVERDUE loans (not only ACTIVE ones) toward the loan limit",
    )

    loan_admin_policy: LoanAdminPolicy = Field(
        default=LoanAdminPolicy.RECONCILE,
        description="Copy-count behaviour of administrative loan edits and deletes",
    )

    default_page_size: int = Field(
        default=10,
        description="Page size used when a list request does not specify one",
        ge=1,
        le=100,
    )

    # === Development Configuration ===

    debug: bool = Field(
        default=False,
        description="Enable debug logging and SQL echo",
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR)$",
    )

    # === Validation Methods ===

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept log levels in any case."""
        return v.upper() if isinstance(v, str) else v

    @field_validator("database_path")
    @classmethod
    def validate_database_path(cls, v: Path) -> Path:
        """Ensure the database directory exists."""
        abs_path = v.absolute()
        abs_path.parent.mkdir(parents=True, exist_ok=True)

        if not abs_path.parent.is_dir():
            raise ValueError(f"Database directory {abs_path.parent} is not accessible")

        return abs_path

    @field_validator("http_port")
    @classmethod
    def validate_http_port(cls, v: int) -> int:
        """Reject ports commonly reserved by other services."""
        reserved_ports = {3306, 5432, 6379}
        if v in reserved_ports:
            raise ValueError(f"Port {v} is commonly reserved, choose another")
        return v

    # === Computed Properties ===

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.debug or self.log_level == "DEBUG"

    def get_database_url(self) -> str:
        """Get the SQLAlchemy database URL."""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.database_path}"


class _ConfigStore:
    """Internal storage for configuration singleton."""

    _instance: CatalogConfig | None = None


def get_config() -> CatalogConfig:
    """Get or create the global configuration instance."""
    if _ConfigStore._instance is None:  # type: ignore[reportPrivateUsage]
        _ConfigStore._instance = CatalogConfig()  # type: ignore[reportPrivateUsage]
    return _ConfigStore._instance  # type: ignore[reportPrivateUsage]


def reset_config() -> None:
    """Reset configuration (useful for testing)."""
    _ConfigStore._instance = None  # type: ignore[reportPrivateUsage]
