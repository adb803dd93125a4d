"""Configuration for Logfire observability."""

import os
from typing import Literal

from pydantic import BaseModel, Field


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class ObservabilityConfig(BaseModel):
    """Configuration for Logfire observability."""

    # Connection
    token: str = Field(default_factory=lambda: os.getenv("LOGFIRE_TOKEN", ""))
    service_name: str = "library-catalog"
    environment: str = Field(default_factory=lambda: os.getenv("ENVIRONMENT", "development"))

    # Behavior
    enabled: bool = Field(default_factory=lambda: _env_flag("LOGFIRE_ENABLED", "true"))
    console_output: bool = Field(default_factory=lambda: _env_flag("LOGFIRE_CONSOLE", "false"))
    # Spans leave the process only when LOGFIRE_TOKEN is set
    send_to_logfire: bool | Literal["if-token-present"] = "if-token-present"
