"""Configuration loading: TOML file, environment variables and overrides.

Priority (lowest to highest): defaults, config file, ``TRACELINK_*``
environment variables, keyword overrides passed to ``init()``.

Example ``tracelink.toml``::

    [tracing]
    service_name = "orders-consumer"
    sample_rate = 0.5

    [exporters]
    enable_console = false
    otlp_endpoint = "http://collector:4318/v1/traces"

    [linkage]
    carrier_category = "Queue"
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from tracelink.errors import ConfigError

CONFIG_FILE_NAME = "tracelink.toml"
HOME_CONFIG_FILE_NAME = ".tracelink.toml"

# Environment variable -> (section, key)
ENV_VARS: Dict[str, tuple] = {
    "TRACELINK_ENABLED": ("tracing", "enabled"),
    "TRACELINK_SERVICE_NAME": ("tracing", "service_name"),
    "TRACELINK_SAMPLE_RATE": ("tracing", "sample_rate"),
    "TRACELINK_DEBUG": ("tracing", "debug"),
    "TRACELINK_ENABLE_CONSOLE": ("exporters", "enable_console"),
    "TRACELINK_ENABLE_LOGGING": ("exporters", "enable_logging"),
    "TRACELINK_OTLP_ENDPOINT": ("exporters", "otlp_endpoint"),
    "TRACELINK_API_KEY": ("exporters", "api_key"),
    "TRACELINK_CARRIER_CATEGORY": ("linkage", "carrier_category"),
    "TRACELINK_SEGMENT_SUFFIX": ("linkage", "segment_suffix"),
}


class TracingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    service_name: str = "tracelink"
    sample_rate: float = Field(default=1.0, ge=0.0, le=1.0)
    debug: bool = False


class ExporterConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enable_console: bool = False
    enable_logging: bool = False
    otlp_endpoint: Optional[str] = None
    api_key: Optional[str] = None
    timeout: float = Field(default=10.0, gt=0)
    headers: Dict[str, str] = Field(default_factory=dict)


class LinkageConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    carrier_category: str = "Queue"
    segment_suffix: str = "-segment"

    @field_validator("carrier_category")
    @classmethod
    def _category_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("carrier_category must not be blank")
        return value


class TracelinkConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tracing: TracingConfig = Field(default_factory=TracingConfig)
    exporters: ExporterConfig = Field(default_factory=ExporterConfig)
    linkage: LinkageConfig = Field(default_factory=LinkageConfig)


def find_config_file() -> Optional[str]:
    """Return ``./tracelink.toml`` or ``~/.tracelink.toml``, whichever exists first."""
    candidates = [
        Path.cwd() / CONFIG_FILE_NAME,
        Path.home() / HOME_CONFIG_FILE_NAME,
    ]
    for candidate in candidates:
        if candidate.is_file():
            return str(candidate)
    return None


def load_toml_config(path: str) -> Dict[str, Any]:
    """
    Load a TOML config file as a nested dict.

    Returns an empty dict if the file does not exist.

    Raises:
        ConfigError: if the file is not valid TOML
    """
    config_path = Path(path)
    if not config_path.is_file():
        return {}
    try:
        with config_path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError("Invalid TOML config file", {"path": path, "error": exc}) from exc


def load_env_config(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Collect ``TRACELINK_*`` variables into the nested config layout."""
    environ = os.environ if environ is None else environ
    loaded: Dict[str, Any] = {}
    for var, (section, key) in ENV_VARS.items():
        value = environ.get(var)
        if value is None or value == "":
            continue
        loaded.setdefault(section, {})[key] = value
    return loaded


def _merge(base: Dict[str, Any], update: Mapping[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in update.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _merge(dict(merged[key]), value)
        else:
            merged[key] = value
    return merged


def _overrides_to_sections(overrides: Mapping[str, Any]) -> Dict[str, Any]:
    """Place flat ``init()`` keyword overrides into their sections."""
    sections = {
        "tracing": TracingConfig.model_fields,
        "exporters": ExporterConfig.model_fields,
        "linkage": LinkageConfig.model_fields,
    }
    nested: Dict[str, Any] = {}
    for key, value in overrides.items():
        if value is None:
            continue
        for section, fields in sections.items():
            if key in fields:
                nested.setdefault(section, {})[key] = value
                break
        else:
            raise ConfigError("Unknown configuration option", {"option": key})
    return nested


def validate_config(config: TracelinkConfig) -> TracelinkConfig:
    """
    Reject settings that validate individually but conflict.

    Raises:
        ConfigError: on conflicting settings
    """
    if config.exporters.api_key and not config.exporters.otlp_endpoint:
        raise ConfigError("api_key requires otlp_endpoint")
    return config


def load_config(
    config_file: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> TracelinkConfig:
    """
    Build the effective configuration.

    Args:
        config_file: Explicit TOML path; otherwise ``find_config_file()``
        environ: Environment mapping (defaults to ``os.environ``)
        **overrides: Flat option names, e.g. ``service_name="orders"``

    Raises:
        ConfigError: on invalid TOML, unknown options or invalid values
    """
    path = config_file or find_config_file()
    raw: Dict[str, Any] = load_toml_config(path) if path else {}
    raw = _merge(raw, load_env_config(environ))
    raw = _merge(raw, _overrides_to_sections(overrides))

    try:
        config = TracelinkConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError("Invalid configuration", {"errors": exc.error_count()}) from exc
    return validate_config(config)
