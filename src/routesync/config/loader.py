"""Configuration loading with pydantic-settings.

Supports loading configuration from multiple sources with precedence:
1. Direct kwargs (highest priority)
2. Environment variables (ROUTESYNC__SECTION__KEY)
3. Conventional environment variables shared with the API service
   (DATABASE_URL, SUPABASE_URL, SUPABASE_SERVICE_KEY, ROUTES_DIR)
4. Repo config (.routesync/config.yaml)
5. Built-in defaults (lowest priority)

A ``.env`` file in the project root is loaded into the process environment
first, without overriding variables that are already set.
"""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from routesync.config.models import (
    AuditConfig,
    CatalogConfig,
    LoggingConfig,
    ReportConfig,
    RewriteConfig,
    RoutesConfig,
    RouteSyncConfig,
)
from routesync.core.errors import ConfigError

CONFIG_DIR_NAME = ".routesync"

# Conventional variable -> (section, key). First match wins for a key.
_CONVENTIONAL_ENV: list[tuple[str, str, str]] = [
    ("DATABASE_URL", "catalog", "database_url"),
    ("SUPABASE_URL", "catalog", "rest_url"),
    ("SUPABASE_SERVICE_KEY", "catalog", "rest_key"),
    ("SUPABASE_KEY", "catalog", "rest_key"),
    ("ROUTES_DIR", "routes", "directory"),
]


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    if not isinstance(data, dict):
        raise ConfigError.parse_error(str(path), "top level must be a mapping")
    return data


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _conventional_env(environ: Mapping[str, str]) -> dict[str, Any]:
    """Map the API service's own environment variables onto config sections."""
    result: dict[str, dict[str, str]] = {}
    for var, section, key in _CONVENTIONAL_ENV:
        value = environ.get(var)
        if not value:
            continue
        result.setdefault(section, {}).setdefault(key, value)
    return result


class _YamlSource(PydanticBaseSettingsSource):
    """Settings source that reads from pre-loaded YAML config."""

    def __init__(self, settings_cls: type[BaseSettings], yaml_config: dict[str, Any]) -> None:
        super().__init__(settings_cls)
        self._yaml_config = yaml_config

    def get_field_value(
        self,
        field: Any,  # noqa: ARG002
        field_name: str,
    ) -> tuple[Any, str, bool]:
        val = self._yaml_config.get(field_name)
        return val, field_name, val is not None

    def __call__(self) -> dict[str, Any]:
        return self._yaml_config


def _make_settings_class(yaml_config: dict[str, Any]) -> type[BaseSettings]:
    """Create a Settings class with instance-based YAML source."""

    class RouteSyncSettings(BaseSettings):
        """Root config. Env vars: ROUTESYNC__CATALOG__STRATEGY, ROUTESYNC__ROUTES__DIRECTORY, etc."""

        model_config = SettingsConfigDict(
            env_prefix="ROUTESYNC__",
            env_nested_delimiter="__",
            case_sensitive=False,
        )

        logging: LoggingConfig = LoggingConfig()
        catalog: CatalogConfig = CatalogConfig()
        routes: RoutesConfig = RoutesConfig()
        rewrite: RewriteConfig = RewriteConfig()
        audit: AuditConfig = AuditConfig()
        report: ReportConfig = ReportConfig()

        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
            file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            # Precedence (first wins): init kwargs > env vars > yaml + conventional env
            return (init_settings, env_settings, _YamlSource(settings_cls, yaml_config))

    return RouteSyncSettings


def load_config(project_root: Path | None = None, **kwargs: Any) -> RouteSyncConfig:
    """Load config: defaults < config.yaml < conventional env < env vars < kwargs.

    Args:
        project_root: Directory holding ``.env`` and ``.routesync/``.
                      Defaults to the current working directory.
        **kwargs: Override values (highest precedence).

    Returns:
        Fully resolved configuration object.

    Raises:
        ConfigError: On invalid YAML syntax or validation errors.
    """
    project_root = project_root or Path.cwd()
    load_dotenv(project_root / ".env", override=False)

    yaml_config = _load_yaml(project_root / CONFIG_DIR_NAME / "config.yaml")
    yaml_config = _deep_merge(yaml_config, _conventional_env(os.environ))

    settings_cls = _make_settings_class(yaml_config)
    try:
        settings = settings_cls(**kwargs)
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(loc) for loc in err["loc"])
        raise ConfigError.invalid_value(field, err.get("input"), err["msg"]) from e
    return RouteSyncConfig.model_validate(settings.model_dump())


def resolve_routes_dir(config: RouteSyncConfig, project_root: Path | None = None) -> Path:
    """Absolute route directory; relative paths resolve against project_root."""
    directory = Path(config.routes.directory).expanduser()
    if not directory.is_absolute():
        directory = (project_root or Path.cwd()) / directory
    return directory
