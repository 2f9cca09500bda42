# EquipRent - Construction Equipment Rental Marketplace
# Copyright (C) 2025 Oleg Tokmakov
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""Configuration management for EquipRent."""

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class AppConfig(BaseModel):
    """Application configuration."""

    name: str = "EquipRent"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    base_url: str = "http://localhost:8000"


class AdminConfig(BaseModel):
    """Bootstrap admin account created at database initialization."""

    email: str = "admin@example.com"
    password: str = "admin123"
    first_name: str = "Admin"
    last_name: str = "User"


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = "/data/equiprent.db"


class SecurityConfig(BaseModel):
    """Security configuration."""

    auth_token_days: int = 30
    max_tokens_per_user: int = 10
    password_min_length: int = 6
    password_hash_iterations: int = 120000


class RentalConfig(BaseModel):
    """Rental request constraints."""

    max_duration_days: int = 365
    max_message_length: int = 2000


class StorageConfig(BaseModel):
    """Uploaded file storage."""

    media_root: str = "/data/media"
    max_document_size_mb: int = 10
    allowed_extensions: list = [".pdf", ".jpg", ".jpeg", ".png"]


class CleanupConfig(BaseModel):
    """Cleanup settings configuration."""

    auth_token_retention_days: int = 7
    notification_retention_days: int = 90


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class Settings(BaseModel):
    """Main settings container."""

    app: AppConfig = Field(default_factory=AppConfig)
    admin: AdminConfig = Field(default_factory=AdminConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    rental: RentalConfig = Field(default_factory=RentalConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    cleanup: CleanupConfig = Field(default_factory=CleanupConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(config_path: Optional[str] = None) -> Settings:
    """Load configuration from YAML file.

    Args:
        config_path: Path to config file. If None, tries default locations.

    Returns:
        Settings object with loaded configuration.
    """
    default_paths = [
        Path("config/config.yaml"),
        Path("config.yaml"),
        Path("/app/config/config.yaml"),
        Path("/etc/equiprent/config.yaml"),
    ]

    if config_path is None:
        config_path = os.environ.get("EQUIPRENT_CONFIG")

    config_file = None

    if config_path:
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        for path in default_paths:
            if path.exists():
                config_file = path
                break

    if config_file is None:
        logger.info("No config file found, using defaults")
        return Settings()

    logger.info("Loading config from: %s", config_file)

    with open(config_file, "r") as f:
        config_data = yaml.safe_load(f) or {}

    return Settings(**config_data)


def configure_logging(settings: Settings) -> None:
    """Configure root logging from the settings."""
    level = getattr(logging, settings.logging.level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=settings.logging.format)


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = load_config()
    return _settings


def init_settings(config_path: Optional[str] = None) -> Settings:
    """Initialize settings from config file."""
    global _settings
    _settings = load_config(config_path)
    return _settings


def update_settings(new_settings: Settings) -> None:
    """Update the global settings instance."""
    global _settings
    _settings = new_settings
