"""Tests for catalog service configuration.

These tests cover:
1. Default values
2. Environment variable loading
3. Field validation
4. The configuration singleton
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from library_catalog.config import CatalogConfig, LoanAdminPolicy, get_config, reset_config


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch, clean_env):
    """Run each test from an empty directory so no .env file or data dir leaks in."""
    monkeypatch.chdir(tmp_path)
    reset_config()
    yield
    reset_config()


class TestCatalogConfig:
    """Configuration defaults and environment loading."""

    def test_default_configuration(self, tmp_path):
        config = CatalogConfig()

        assert config.service_name == "library-catalog"
        assert config.service_version == "0.1.0"
        assert config.database_url is None
        assert config.database_path == tmp_path.resolve() / "data" / "library_catalog.db"
        assert config.http_port == 8080

        # Loan policy
        assert config.loan_period_days == 14
        assert config.max_active_loans == 5
        assert config.count_overdue_toward_limit is True
        assert config.loan_admin_policy == LoanAdminPolicy.RECONCILE
        assert config.default_page_size == 10

        assert config.debug is False
        assert config.log_level == "INFO"

    def test_environment_variable_loading(self, tmp_path):
        env_vars = {
            "LIBRARY_CATALOG_SERVICE_NAME": "branch-catalog",
            "LIBRARY_CATALOG_DATABASE_PATH": str(tmp_path / "branch.db"),
            "LIBRARY_CATALOG_LOAN_PERIOD_DAYS": "21",
            "LIBRARY_CATALOG_MAX_ACTIVE_LOANS": "3",
            "LIBRARY_CATALOG_LOAN_ADMIN_POLICY": "bypass",
            "LIBRARY_CATALOG_DEBUG": "true",
        }

        with patch.dict(os.environ, env_vars):
            config = CatalogConfig()

        assert config.service_name == "branch-catalog"
        assert config.database_path == tmp_path / "branch.db"
        assert config.loan_period_days == 21
        assert config.max_active_loans == 3
        assert config.loan_admin_policy == LoanAdminPolicy.BYPASS
        assert config.debug is True
        assert config.is_development is True

    def test_env_file_is_read(self, tmp_path):
        (tmp_path / ".env").write_text("LIBRARY_CATALOG_MAX_ACTIVE_LOANS=7\n")

        assert CatalogConfig().max_active_loans == 7

    def test_log_level_is_case_insensitive(self):
        assert CatalogConfig(log_level="debug").log_level == "DEBUG"

        with pytest.raises(ValidationError):
            CatalogConfig(log_level="VERBOSE")

    @pytest.mark.parametrize("name", ["Library_Catalog", "library catalog", "catalog!"])
    def test_service_name_validation(self, name):
        with pytest.raises(ValidationError):
            CatalogConfig(service_name=name)

    @pytest.mark.parametrize(
        "field,value",
        [
            ("loan_period_days", 0),
            ("loan_period_days", 366),
            ("max_active_loans", 0),
            ("default_page_size", 101),
            ("http_port", 80),
            ("http_port", 5432),
        ],
    )
    def test_out_of_range_values_are_rejected(self, field, value):
        with pytest.raises(ValidationError):
            CatalogConfig(**{field: value})

    def test_database_directory_is_created(self, tmp_path):
        config = CatalogConfig(database_path=Path("nested/dir/catalog.db"))

        assert config.database_path.parent.is_dir()
        assert config.database_path == tmp_path.resolve() / "nested" / "dir" / "catalog.db"

    def test_database_url(self, tmp_path):
        config = CatalogConfig(database_path=tmp_path / "catalog.db")
        assert config.get_database_url() == f"sqlite:///{tmp_path / 'catalog.db'}"

        override = CatalogConfig(database_url="sqlite:///:memory:")
        assert override.get_database_url() == "sqlite:///:memory:"


class TestConfigSingleton:
    def test_get_config_returns_same_instance(self):
        assert get_config() is get_config()

    def test_reset_config_reloads_environment(self):
        first = get_config()

        with patch.dict(os.environ, {"LIBRARY_CATALOG_LOAN_PERIOD_DAYS": "30"}):
            reset_config()
            second = get_config()

        assert second is not first
        assert second.loan_period_days == 30
