"""Configuration management for the contact triage engine."""

import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path

from dotenv import load_dotenv

from .core.logging import setup_enhanced_logging

SUPPORTED_PERIOD_DAYS = (7, 30, 90)


@dataclass
class Config:
    """Contact triage configuration."""

    api_base_url: str = "http://localhost:5000/api"
    api_token: str | None = None
    fetch_limit: int = 100
    api_timeout_seconds: int = 30
    default_period_days: int = 30
    bulk_max_concurrency: int = 5
    acting_user: str = "Admin"
    export_dir: str | None = None
    log_level: str = "INFO"

    @classmethod
    def load(cls, config_path: str | None = None) -> "Config":
        """Load configuration from file and environment variables."""
        # Load .env file if it exists
        load_dotenv()

        if config_path is None:
            config_path = cls.get_default_config_path()

        config_data = {}

        if Path(config_path).exists():
            with open(config_path) as f:
                config_data = json.load(f)

        # Environment variables win over the file
        env_overrides = {
            "api_base_url": os.getenv("CONTACT_TRIAGE_API_URL"),
            "api_token": os.getenv("CONTACT_TRIAGE_API_TOKEN"),
            "fetch_limit": os.getenv("CONTACT_TRIAGE_FETCH_LIMIT"),
            "api_timeout_seconds": os.getenv("CONTACT_TRIAGE_API_TIMEOUT_SECONDS"),
            "default_period_days": os.getenv("CONTACT_TRIAGE_DEFAULT_PERIOD_DAYS"),
            "bulk_max_concurrency": os.getenv("CONTACT_TRIAGE_BULK_CONCURRENCY"),
            "acting_user": os.getenv("CONTACT_TRIAGE_ACTING_USER"),
            "export_dir": os.getenv("CONTACT_TRIAGE_EXPORT_DIR"),
            "log_level": os.getenv("CONTACT_TRIAGE_LOG_LEVEL"),
        }

        for key, value in env_overrides.items():
            if value is not None:
                if key in [
                    "fetch_limit",
                    "api_timeout_seconds",
                    "default_period_days",
                    "bulk_max_concurrency",
                ]:
                    config_data[key] = int(value)
                else:
                    config_data[key] = value

        if config_data.get("fetch_limit", 1) < 1:
            raise ValueError(f"fetch_limit must be at least 1, got {config_data['fetch_limit']}")

        if "bulk_max_concurrency" in config_data:
            concurrency = config_data["bulk_max_concurrency"]
            if concurrency < 1 or concurrency > 20:
                raise ValueError(f"Bulk concurrency must be between 1 and 20, got {concurrency}")

        if "default_period_days" in config_data:
            period = config_data["default_period_days"]
            if period not in SUPPORTED_PERIOD_DAYS:
                raise ValueError(
                    f"Invalid default_period_days '{period}'. Must be one of 7, 30 or 90"
                )

        return cls(**config_data)

    def save(self, config_path: str | None = None):
        """Save configuration to file."""
        if config_path is None:
            config_path = self.get_default_config_path()

        Path(config_path).parent.mkdir(parents=True, exist_ok=True)

        # Don't save the token to file for security
        config_data = asdict(self)
        config_data.pop("api_token", None)

        with open(config_path, "w") as f:
            json.dump(config_data, f, indent=2)

    def configure_logging(self, log_dir: str | None = None):
        """Setup logging at the configured level."""
        return setup_logging(self.log_level, log_dir)

    @staticmethod
    def get_default_config_path() -> str:
        """Get the default configuration file path."""
        config_dir = os.getenv("CONTACT_TRIAGE_CONFIG_DIR")
        if config_dir:
            return str(Path(config_dir) / "config.json")
        return str(Path.home() / ".contact-triage" / "config.json")

    @staticmethod
    def get_default_data_dir() -> str:
        """Get the default data directory."""
        config_dir = os.getenv("CONTACT_TRIAGE_CONFIG_DIR")
        if config_dir:
            return str(Path(config_dir))
        return str(Path.home() / ".contact-triage")


def setup_logging(log_level: str = "INFO", log_dir: str | None = None):
    """Setup logging with main, actions and error log files."""
    if log_dir is None:
        log_dir = str(Path(Config.get_default_data_dir()) / "logs")

    enable_json = os.getenv("CONTACT_TRIAGE_JSON_LOGGING", "").lower() in (
        "true",
        "1",
        "yes",
    )

    try:
        return setup_enhanced_logging(log_dir, log_level, enable_json)
    except (PermissionError, OSError):
        # Fallback to console logging if the log directory is unusable
        logging.basicConfig(
            level=getattr(logging, log_level.upper()),
            format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        )
        return {"log_dir": "console", "config": "basic"}
