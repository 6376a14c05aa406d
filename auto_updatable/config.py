"""
Configuration file parsing and management.

Supports YAML configuration files. Merges configurations from multiple
sources (custom path -> project -> user -> system -> defaults) and applies
environment overrides last.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Any

import yaml

from .common import vlog


# Configuration file locations (in priority order)
CONFIG_LOCATIONS = [
    ".auto-updatable.yml",                                     # Project root (highest priority)
    ".auto-updatable.yaml",
    os.path.expanduser("~/.config/auto-updatable/config.yml"),  # User global
    os.path.expanduser("~/.config/auto-updatable/config.yaml"),
    "/etc/auto-updatable/config.yml",                          # System global
    "/etc/auto-updatable/config.yaml",
]

# Environment variable -> Preferences field
ENV_OVERRIDES = {
    "AUTO_UPDATABLE_RETRIES": ("retries", int),
    "AUTO_UPDATABLE_RETRY_DELAY": ("retry_delay_seconds", float),
    "AUTO_UPDATABLE_REGISTRY_DELAY": ("registry_delay_seconds", float),
}


@dataclass(frozen=True)
class Preferences:
    """
    Network behaviour of the tag lookups and the registry check.

    Attributes:
        request_timeout_seconds: Timeout for a single HTTP request
        retries: Maximum number of attempts per HTTP request
        retry_delay_seconds: Fixed delay between attempts
        retry_max_time_seconds: Wall-clock ceiling for all attempts of one request
        registry_delay_seconds: Courtesy pause before every Repology check
    """
    request_timeout_seconds: int = 30
    retries: int = 5
    retry_delay_seconds: float = 2.0
    retry_max_time_seconds: float = 60.0
    registry_delay_seconds: float = 1.0

    def __post_init__(self):
        """Validate preferences after initialization."""
        if self.request_timeout_seconds < 1 or self.request_timeout_seconds > 300:
            raise ValueError(
                f"Invalid request_timeout_seconds: {self.request_timeout_seconds}. "
                "Must be between 1 and 300"
            )

        if self.retries < 1 or self.retries > 20:
            raise ValueError(
                f"Invalid retries: {self.retries}. Must be between 1 and 20"
            )

        if self.retry_delay_seconds < 0:
            raise ValueError(
                f"Invalid retry_delay_seconds: {self.retry_delay_seconds}. "
                "Must not be negative"
            )

        if self.retry_max_time_seconds <= 0:
            raise ValueError(
                f"Invalid retry_max_time_seconds: {self.retry_max_time_seconds}. "
                "Must be positive"
            )

        if self.registry_delay_seconds < 0:
            raise ValueError(
                f"Invalid registry_delay_seconds: {self.registry_delay_seconds}. "
                "Must not be negative"
            )

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Preferences:
        """Create Preferences from dictionary."""
        return Preferences(
            request_timeout_seconds=data.get("request_timeout_seconds", 30),
            retries=data.get("retries", 5),
            retry_delay_seconds=data.get("retry_delay_seconds", 2.0),
            retry_max_time_seconds=data.get("retry_max_time_seconds", 60.0),
            registry_delay_seconds=data.get("registry_delay_seconds", 1.0),
        )


@dataclass(frozen=True)
class Endpoints:
    """
    Service locations and credential variables.

    Attributes:
        github_api_base: GitHub REST/GraphQL API root
        gitlab_api_base: GitLab REST API root
        repology_api_base: Repology API root
        repology_repo: Repology repository identifier of this package collection
        github_token_env: Environment variable holding the GitHub token
        gitlab_token_env: Environment variable holding the optional GitLab token
    """
    github_api_base: str = "https://api.github.com"
    gitlab_api_base: str = "https://gitlab.com/api/v4"
    repology_api_base: str = "https://repology.org/api/v1"
    repology_repo: str = "termux"
    github_token_env: str = "GITHUB_TOKEN"
    gitlab_token_env: str = "GITLAB_TOKEN"

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Endpoints:
        """Create Endpoints from dictionary."""
        defaults = Endpoints()
        return Endpoints(
            github_api_base=str(data.get("github_api_base", defaults.github_api_base)).rstrip("/"),
            gitlab_api_base=str(data.get("gitlab_api_base", defaults.gitlab_api_base)).rstrip("/"),
            repology_api_base=str(data.get("repology_api_base", defaults.repology_api_base)).rstrip("/"),
            repology_repo=data.get("repology_repo", defaults.repology_repo),
            github_token_env=data.get("github_token_env", defaults.github_token_env),
            gitlab_token_env=data.get("gitlab_token_env", defaults.gitlab_token_env),
        )


@dataclass(frozen=True)
class Config:
    """
    Complete configuration for check-auto-updatable.

    Attributes:
        version: Config schema version
        preferences: Network preferences
        endpoints: Service endpoints
        source: Path to the configuration file that was loaded
    """
    version: int = 1
    preferences: Preferences = field(default_factory=Preferences)
    endpoints: Endpoints = field(default_factory=Endpoints)
    source: str = ""

    def __post_init__(self):
        if self.version != 1:
            raise ValueError(f"Unsupported config version: {self.version}. Expected version 1")

    @staticmethod
    def from_dict(data: dict[str, Any], source: str = "") -> Config:
        """Create Config from dictionary."""
        return Config(
            version=data.get("version", 1),
            preferences=Preferences.from_dict(data.get("preferences", {}) or {}),
            endpoints=Endpoints.from_dict(data.get("endpoints", {}) or {}),
            source=source,
        )

    def merge_with(self, other: Config) -> Config:
        """
        Merge this config with another, preferring values from this config.

        A field keeps this config's value unless it is still the default, in
        which case the other config's value is used.

        Args:
            other: Other config to merge (lower priority)

        Returns:
            New merged Config object
        """
        return Config(
            version=self.version,
            preferences=_merge_dataclass(self.preferences, other.preferences, Preferences()),
            endpoints=_merge_dataclass(self.endpoints, other.endpoints, Endpoints()),
            source=self.source or other.source,
        )


def _merge_dataclass(primary: Any, secondary: Any, defaults: Any) -> Any:
    changes = {}
    for name in primary.__dataclass_fields__:
        value = getattr(primary, name)
        if value == getattr(defaults, name):
            changes[name] = getattr(secondary, name)
        else:
            changes[name] = value
    return replace(primary, **changes)


def _load_yaml(file_path: str) -> dict[str, Any] | None:
    """
    Load YAML configuration file.

    Args:
        file_path: Path to YAML file

    Returns:
        Parsed configuration dictionary, or None if file is unreadable or invalid
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return None


def load_config_file(file_path: str, verbose: bool = False) -> Config | None:
    """
    Load configuration from a single file.

    Args:
        file_path: Path to configuration file
        verbose: Enable verbose logging

    Returns:
        Config object, or None if file cannot be loaded
    """
    if not os.path.exists(file_path):
        return None

    vlog(f"Loading config from: {file_path}", verbose)

    data = _load_yaml(file_path)
    if data is None:
        vlog(f"Invalid config file: {file_path}", verbose)
        return None

    try:
        config = Config.from_dict(data, source=file_path)
        vlog(f"Loaded config successfully: {file_path}", verbose)
        return config
    except (ValueError, TypeError) as e:
        vlog(f"Config validation failed for {file_path}: {e}", verbose)
        return None


def apply_env_overrides(config: Config, environ: dict[str, str] | None = None) -> Config:
    """
    Apply AUTO_UPDATABLE_* environment overrides to the preferences.

    Raises:
        ValueError: If an override cannot be converted or fails validation
    """
    environ = os.environ if environ is None else environ
    changes: dict[str, Any] = {}
    for variable, (field_name, convert) in ENV_OVERRIDES.items():
        raw = environ.get(variable)
        if raw is None or raw == "":
            continue
        try:
            changes[field_name] = convert(raw)
        except ValueError:
            raise ValueError(f"Invalid value for {variable}: {raw!r}") from None

    if not changes:
        return config
    return replace(config, preferences=replace(config.preferences, **changes))


def load_config(
    custom_path: str | None = None,
    verbose: bool = False,
) -> Config:
    """
    Load and merge configuration from all sources.

    Configuration precedence (highest to lowest):
    1. Environment overrides
    2. Custom path (if provided)
    3. Project .auto-updatable.yml
    4. User ~/.config/auto-updatable/config.yml
    5. System /etc/auto-updatable/config.yml
    6. Default configuration

    Args:
        custom_path: Optional path to custom configuration file
        verbose: Enable verbose logging

    Returns:
        Merged Config object (never None, returns defaults if no config found)

    Raises:
        ValueError: If custom_path is provided but file cannot be loaded
    """
    configs: list[Config] = []

    if custom_path:
        config = load_config_file(custom_path, verbose)
        if config is None:
            raise ValueError(f"Could not load config from specified path: {custom_path}")
        configs.append(config)
        vlog(f"Using custom config: {custom_path}", verbose)

    for location in CONFIG_LOCATIONS:
        config = load_config_file(location, verbose)
        if config is not None:
            configs.append(config)
            vlog(f"Found config at: {location}", verbose)

    if not configs:
        vlog("No config files found, using defaults", verbose)
        merged = Config()
    else:
        # First config has highest priority
        merged = configs[0]
        for config in configs[1:]:
            merged = merged.merge_with(config)
        vlog(f"Merged {len(configs)} config files", verbose)

    return apply_env_overrides(merged)


def validate_config(config: Config) -> list[str]:
    """
    Validate configuration and return list of warnings.

    Args:
        config: Config object to validate

    Returns:
        List of validation warning messages (empty if valid)
    """
    warnings = []
    prefs = config.preferences

    worst_case = prefs.retries * prefs.request_timeout_seconds
    if prefs.retries > 1 and prefs.retry_max_time_seconds < prefs.retry_delay_seconds:
        warnings.append(
            "retry_max_time_seconds is shorter than retry_delay_seconds; "
            "requests will never be retried"
        )
    if worst_case > 10 * prefs.retry_max_time_seconds:
        warnings.append(
            f"retries x request_timeout_seconds ({worst_case}s) far exceeds "
            f"retry_max_time_seconds ({prefs.retry_max_time_seconds}s)"
        )

    for name in ("github_api_base", "gitlab_api_base", "repology_api_base"):
        url = getattr(config.endpoints, name)
        if not url.startswith("https://"):
            warnings.append(f"Endpoint '{name}' does not use https: {url}")

    if prefs.registry_delay_seconds == 0:
        warnings.append("registry_delay_seconds is 0; Repology asks clients to throttle requests")

    return warnings
