"""
Configuration management utilities.
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any
import logging

from ..models.config import ApiSettings, CacheSettings, SearchSettings, SystemConfig
from .error_handler import ConfigurationError

logger = logging.getLogger(__name__)

EMAIL_ENV_VAR = "RESEARCH_ARCHIVE_EMAIL"
TIMEOUT_ENV_VAR = "RESEARCH_ARCHIVE_TIMEOUT"


class ConfigurationManager:
    """Manages system configuration loading and validation."""

    def __init__(self, config_dir: str = "config"):
        """Initialize configuration manager.

        Args:
            config_dir: Directory containing configuration files
        """
        self.config_dir = Path(config_dir)
        self.settings_file = self.config_dir / "settings.yaml"

    def load_system_config(self) -> SystemConfig:
        """Load complete system configuration.

        Returns:
            SystemConfig object with all settings

        Raises:
            ConfigurationError: If a section holds invalid values
        """
        settings = self._load_settings()

        return SystemConfig(
            api=self.get_api_settings(settings),
            cache=self.get_cache_settings(settings),
            search=self.get_search_settings(settings),
        )

    def get_api_settings(self, settings: Dict[str, Any] = None) -> ApiSettings:
        """Load upstream API settings, applying environment overrides.

        Returns:
            ApiSettings object
        """
        if settings is None:
            settings = self._load_settings()
        api_section = settings.get("api") or {}
        if not isinstance(api_section, dict):
            raise ConfigurationError("Section 'api' must be a mapping")
        api_data = dict(api_section)

        env_email = os.getenv(EMAIL_ENV_VAR)
        if env_email:
            api_data["contact_email"] = env_email

        env_timeout = os.getenv(TIMEOUT_ENV_VAR)
        if env_timeout:
            try:
                api_data["request_timeout"] = float(env_timeout)
            except ValueError:
                raise ConfigurationError(f"{TIMEOUT_ENV_VAR} must be a number, got {env_timeout!r}")

        return self._build(ApiSettings, api_data, "api")

    def get_cache_settings(self, settings: Dict[str, Any] = None) -> CacheSettings:
        """Load cache capacities and lifetimes.

        Returns:
            CacheSettings object with configured or default values
        """
        if settings is None:
            settings = self._load_settings()
        return self._build(CacheSettings, settings.get("cache") or {}, "cache")

    def get_search_settings(self, settings: Dict[str, Any] = None) -> SearchSettings:
        """Load aggregation pipeline defaults.

        Returns:
            SearchSettings object with configured or default values
        """
        if settings is None:
            settings = self._load_settings()
        return self._build(SearchSettings, settings.get("search") or {}, "search")

    def validate_config(self) -> bool:
        """Validate the settings file.

        Returns:
            True if the configuration is valid

        Raises:
            ConfigurationError: If any section is invalid
        """
        try:
            self.load_system_config()
            logger.info("Configuration validation successful")
            return True

        except ConfigurationError as e:
            logger.error(f"Configuration validation failed: {e}")
            raise

    def create_default_configs(self) -> None:
        """Create the default settings file if it doesn't exist."""
        self.config_dir.mkdir(parents=True, exist_ok=True)

        if self.settings_file.exists():
            return

        defaults = SystemConfig()
        default_settings = {
            "api": {
                "user_agent": defaults.api.user_agent,
                "contact_email": defaults.api.contact_email,
                "request_timeout": defaults.api.request_timeout,
                "health_timeout": defaults.api.health_timeout,
                "arxiv_min_interval": defaults.api.arxiv_min_interval,
                "slow_threshold": defaults.api.slow_threshold,
            },
            "cache": {
                "search_max_entries": defaults.cache.search_max_entries,
                "paper_max_entries": defaults.cache.paper_max_entries,
                "search_ttl": defaults.cache.search_ttl,
                "paper_ttl": defaults.cache.paper_ttl,
                "cleanup_interval": defaults.cache.cleanup_interval,
            },
            "search": {
                "default_limit": defaults.search.default_limit,
                "default_sources": list(defaults.search.default_sources),
                "quick_search_limit": defaults.search.quick_search_limit,
                "related_limit": defaults.search.related_limit,
                "featured_limit": defaults.search.featured_limit,
                "trending_days": defaults.search.trending_days,
            },
        }

        with open(self.settings_file, "w", encoding="utf-8") as f:
            yaml.dump(default_settings, f, default_flow_style=False, allow_unicode=True, sort_keys=False)
        logger.info(f"Created default settings file: {self.settings_file}")

    def _build(self, settings_cls, data: Dict[str, Any], section: str):
        if not isinstance(data, dict):
            raise ConfigurationError(f"Section '{section}' must be a mapping")
        try:
            return settings_cls(**data)
        except TypeError as e:
            raise ConfigurationError(f"Unknown key in '{section}' settings: {e}")
        except ValueError as e:
            raise ConfigurationError(f"Invalid '{section}' settings: {e}")

    def _load_settings(self) -> Dict[str, Any]:
        """Load settings from YAML file.

        Returns:
            Dictionary with settings data
        """
        if not self.settings_file.exists():
            logger.warning(f"Settings file not found: {self.settings_file}, using defaults")
            return {}

        try:
            with open(self.settings_file, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"Error loading settings file: {e}")
            return {}

        if not isinstance(data, dict):
            logger.error(f"Settings file must contain a mapping: {self.settings_file}")
            return {}
        return data
