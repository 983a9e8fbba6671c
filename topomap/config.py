"""
Optional settings file (topomap.yaml) holding defaults for the CLI.

Example:

    fail_fast: false
    dns_port: 53
    expose_routes_externally: false
    verbosity: medium
"""
import os
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from topomap.logger import Verbosity

DEFAULT_CONFIG_FILE = "topomap.yaml"
DEFAULT_DNS_PORT = 53


class ConfigError(ValueError):
    pass


class Settings(BaseModel):
    """Defaults for a scan. Command-line flags take precedence."""

    model_config = ConfigDict(extra="forbid")

    fail_fast: bool = Field(default=False, strict=True, description="Stop at the first error")
    dns_port: int = Field(
        default=DEFAULT_DNS_PORT,
        ge=1,
        le=65535,
        strict=True,
        description="Port allowed for DNS egress in synthesized policies",
    )
    expose_routes_externally: bool = Field(
        default=False,
        strict=True,
        description="Treat services behind a Route or Ingress as reachable from outside the cluster",
    )
    verbosity: Verbosity = Field(default=Verbosity.MEDIUM, description="low, medium or high")

    @field_validator("verbosity", mode="before")
    @classmethod
    def validate_verbosity(cls, v: Any) -> Any:
        if isinstance(v, Verbosity):
            return v
        if isinstance(v, str) and v.upper() in Verbosity.__members__:
            return Verbosity[v.upper()]
        raise ValueError(f"verbosity must be one of low, medium, high (got {v!r})")


def load_settings(path: Optional[str] = None) -> Settings:
    """
    Read settings from `path`, or from ./topomap.yaml when no path is given.
    A missing default file yields the defaults; a missing explicit file is
    an error.
    """
    if path is None:
        path = DEFAULT_CONFIG_FILE
        if not os.path.exists(path):
            return Settings()

    try:
        with open(path) as fh:
            raw = yaml.safe_load(fh) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"failed to read settings from {path}: {exc}") from exc

    try:
        return Settings.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"invalid settings in {path}: {exc}") from exc
