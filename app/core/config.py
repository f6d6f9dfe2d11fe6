"""Application configuration management.

This module handles environment-specific configuration loading, parsing, and management
for the application. It includes environment detection, .env file loading, and
configuration value parsing.
"""

import json
import os
from enum import Enum
from typing import (
    Any,
    Dict,
    List,
)

from dotenv import load_dotenv


class Environment(str, Enum):
    """Application environment types.

    Defines the possible environments the application can run in:
    development, staging, production, and test.
    """

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


def get_environment() -> Environment:
    """Get the current environment.

    Returns:
        Environment: The current environment (development, staging, production, or test)
    """
    match os.getenv("APP_ENV", "development").lower():
        case "production" | "prod":
            return Environment.PRODUCTION
        case "staging" | "stage":
            return Environment.STAGING
        case "test":
            return Environment.TEST
        case _:
            return Environment.DEVELOPMENT


def load_env_file() -> None:
    """Load environment-specific .env file."""
    env = get_environment()
    base_dir = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

    # Most specific file first; load_dotenv never overrides an already-set variable
    env_files = [
        os.path.join(base_dir, f".env.{env.value}.local"),
        os.path.join(base_dir, f".env.{env.value}"),
        os.path.join(base_dir, ".env.local"),
        os.path.join(base_dir, ".env"),
    ]

    for env_file in env_files:
        if os.path.isfile(env_file):
            load_dotenv(dotenv_path=env_file)


load_env_file()


def parse_list_from_env(env_key: str, default: List[str] | None = None) -> List[str]:
    """Parse a comma-separated list from an environment variable."""
    value = os.getenv(env_key)
    if not value:
        return default or []

    value = value.strip("\"'")
    if "," not in value:
        return [value]
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_bool_from_env(env_key: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable."""
    value = os.getenv(env_key)
    if value is None:
        return default
    return value.strip().lower() in ("true", "1", "t", "yes", "y")


class Settings:
    """Application settings without using pydantic."""

    def __init__(self):
        """Initialize application settings from environment variables.

        Loads and sets all configuration values from environment variables,
        with appropriate defaults for each setting. Also applies
        environment-specific overrides based on the current environment.
        """
        self.ENVIRONMENT = get_environment()

        # ==========================================
        # Application Settings
        # ==========================================
        self.PROJECT_NAME = os.getenv("PROJECT_NAME", "Travel Booking Agents")
        self.VERSION = os.getenv("VERSION", "1.0.0")
        self.API_V1_STR = os.getenv("API_V1_STR", "/api/v1")
        self.DEBUG = parse_bool_from_env("DEBUG")
        self.ALLOWED_ORIGINS = parse_list_from_env("ALLOWED_ORIGINS", ["*"])

        # ==========================================
        # LLM Settings
        # ==========================================
        self.OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
        self.OPENAI_API_BASE = os.getenv("OPENAI_API_BASE", "")
        self.DEFAULT_LLM_MODEL = os.getenv("DEFAULT_LLM_MODEL", "gpt-4o-mini")
        self.DEFAULT_LLM_TEMPERATURE = float(os.getenv("DEFAULT_LLM_TEMPERATURE", "0.2"))
        self.MAX_TOKENS = int(os.getenv("MAX_TOKENS", "1024"))
        self.MAX_TOOL_ROUNDS = int(os.getenv("MAX_TOOL_ROUNDS", "3"))

        # ==========================================
        # Langfuse Tracing
        # ==========================================
        self.LANGFUSE_ENABLED = parse_bool_from_env("LANGFUSE_ENABLED")
        self.LANGFUSE_PUBLIC_KEY = os.getenv("LANGFUSE_PUBLIC_KEY", "")
        self.LANGFUSE_SECRET_KEY = os.getenv("LANGFUSE_SECRET_KEY", "")
        self.LANGFUSE_HOST = os.getenv("LANGFUSE_HOST", "https://cloud.langfuse.com")

        # ==========================================
        # Workflow Orchestration
        # ==========================================
        self.STEP_TIMEOUT_SECONDS = float(os.getenv("STEP_TIMEOUT_SECONDS", "12"))
        self.APPROVAL_TIMEOUT_SECONDS = float(os.getenv("APPROVAL_TIMEOUT_SECONDS", "300"))
        self.ROUND_ROBIN_MAX_ROUNDS = int(os.getenv("ROUND_ROBIN_MAX_ROUNDS", "1"))
        self.SUMMARY_MAX_CHARS = int(os.getenv("SUMMARY_MAX_CHARS", "600"))
        self.SIMULATED_WORKER_DELAY_SECONDS = float(os.getenv("SIMULATED_WORKER_DELAY_SECONDS", "0.35"))

        # ==========================================
        # Logging
        # ==========================================
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.LOG_FORMAT = os.getenv("LOG_FORMAT", "console")

        # ==========================================
        # Rate Limiting
        # ==========================================
        self.RATE_LIMIT_DEFAULT = parse_list_from_env("RATE_LIMIT_DEFAULT", ["200 per day", "50 per hour"])

        default_endpoints = {
            "chat": ["30 per minute"],
            "chat_stream": ["20 per minute"],
            "approvals": ["50 per minute"],
            "health": ["20 per minute"],
            "workers": ["30 per minute"],
        }
        self.RATE_LIMIT_ENDPOINTS: Dict[str, List[str]] = {}
        for endpoint, default in default_endpoints.items():
            self.RATE_LIMIT_ENDPOINTS[endpoint] = parse_list_from_env(
                f"RATE_LIMIT_{endpoint.upper()}",
                default,
            )

        self.apply_environment_settings()

    def apply_environment_settings(self):
        """Apply environment-specific settings based on the current environment."""
        env_settings: Dict[Environment, Dict[str, Any]] = {
            Environment.DEVELOPMENT: {
                "DEBUG": True,
                "LOG_LEVEL": "DEBUG",
                "LOG_FORMAT": "console",
                "RATE_LIMIT_DEFAULT": ["1000 per day", "200 per hour"],
            },
            Environment.STAGING: {
                "DEBUG": False,
                "LOG_LEVEL": "INFO",
                "RATE_LIMIT_DEFAULT": ["500 per day", "100 per hour"],
            },
            Environment.PRODUCTION: {
                "DEBUG": False,
                "LOG_LEVEL": "WARNING",
                "RATE_LIMIT_DEFAULT": ["200 per day", "50 per hour"],
            },
            Environment.TEST: {
                "DEBUG": True,
                "LOG_LEVEL": "DEBUG",
                "LOG_FORMAT": "console",
                "SIMULATED_WORKER_DELAY_SECONDS": 0.0,
                "RATE_LIMIT_DEFAULT": ["1000 per day", "1000 per hour"],
            },
        }

        current_env_settings = env_settings.get(self.ENVIRONMENT, {})

        # Explicit environment variables always win over environment defaults
        for key, value in current_env_settings.items():
            env_var_name = key.upper()
            if env_var_name not in os.environ:
                setattr(self, key, value)

    def as_dict(self) -> Dict[str, Any]:
        """Return non-secret settings, used for startup logging."""
        hidden = {"OPENAI_API_KEY", "LANGFUSE_SECRET_KEY", "LANGFUSE_PUBLIC_KEY"}
        values = {k: v for k, v in vars(self).items() if k.isupper() and k not in hidden}
        return json.loads(json.dumps(values, default=str))


settings = Settings()
