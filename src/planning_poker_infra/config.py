"""Configuration management for the Planning Poker App infrastructure.

Settings come from three layers, later ones winning:
per-environment defaults, ``config/<environment>.yml`` and environment
variables (optionally loaded from a local ``.env`` file).
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(__file__).resolve().parents[2] / "config"

ALLOWED_ENVIRONMENTS = ("dev", "staging", "prod")
ALLOWED_TRIGGERS = ("poll", "webhook", "none")
ALLOWED_BUILD_IMAGES = (
    "STANDARD_5_0",
    "STANDARD_6_0",
    "STANDARD_7_0",
    "AMAZON_LINUX_2_4",
    "AMAZON_LINUX_2_5",
)

# Environment variable -> (section, field). A section of None is top level.
REQUIRED_VARIABLES: dict[str, tuple[str | None, str]] = {
    "SOURCE_ACTION_OWNER": ("source", "owner"),
    "SOURCE_ACTION_REPO": ("source", "repo"),
    "SECRETS_MANAGER_ID": ("source", "secret_id"),
    "REACT_APP_WEB_SOCKET_URL": ("build", "web_socket_url"),
    "REACT_APP_API_URL": ("build", "api_url"),
}

OPTIONAL_VARIABLES: dict[str, tuple[str | None, str]] = {
    "SOURCE_ACTION_BRANCH": ("source", "branch"),
    "SOURCE_ACTION_TRIGGER": ("source", "trigger"),
    "BUILD_IMAGE": ("build", "build_image"),
    "INVALIDATE_CACHE": ("hosting", "invalidate_cache"),
    "AWS_REGION": (None, "aws_region"),
    "AWS_ACCOUNT_ID": (None, "aws_account_id"),
    "LOG_LEVEL": (None, "log_level"),
}


class SourceConfig(BaseModel):
    """GitHub source action settings."""

    owner: str = Field("", description="GitHub repository owner")
    repo: str = Field("", description="GitHub repository name")
    branch: str = Field("main", description="Branch the pipeline tracks")
    secret_id: str = Field("", description="Secrets Manager id holding the GitHub token")
    secret_json_field: str = Field("token", description="JSON key of the token inside the secret")
    trigger: str = Field("poll", description="Change detection (poll/webhook/none)")

    @field_validator("trigger")
    @classmethod
    def validate_trigger(cls, v: str) -> str:
        v = v.lower()
        if v not in ALLOWED_TRIGGERS:
            raise ValueError(f"Trigger must be one of: {list(ALLOWED_TRIGGERS)}")
        return v


class BuildConfig(BaseModel):
    """CodeBuild project settings."""

    project_name: str = Field("PlanningPokerAppBuildProject", description="CodeBuild project name")
    buildspec_filename: str = Field("buildspec.yml", description="Buildspec path inside the source")
    build_image: str = Field("STANDARD_5_0", description="LinuxBuildImage attribute name")
    web_socket_url: str = Field("", description="REACT_APP_WEB_SOCKET_URL passed to the build")
    api_url: str = Field("", description="REACT_APP_API_URL passed to the build")

    @field_validator("build_image")
    @classmethod
    def validate_build_image(cls, v: str) -> str:
        v = v.upper()
        if v not in ALLOWED_BUILD_IMAGES:
            raise ValueError(f"Build image must be one of: {list(ALLOWED_BUILD_IMAGES)}")
        return v


class HostingConfig(BaseModel):
    """Bucket and CloudFront distribution settings."""

    default_root_object: str = Field("index.html", description="Object served for '/'")
    error_page_path: str = Field("/error.html", description="Page served for 403/404")
    error_ttl_seconds: int = Field(300, ge=0, description="Cache TTL of error responses")
    invalidate_cache: bool = Field(False, description="Add an Invalidate stage after deploy")


class PipelineConfig(BaseModel):
    """Main configuration for the delivery pipeline stack."""

    environment: str = Field("dev", description="Deployment environment")
    aws_region: str = Field("us-east-1", description="AWS region")
    aws_account_id: str | None = Field(None, description="AWS account ID")
    pipeline_name: str = Field("PlanningPokerAppPipeline", description="CodePipeline name")

    source: SourceConfig = Field(default_factory=SourceConfig)
    build: BuildConfig = Field(default_factory=BuildConfig)
    hosting: HostingConfig = Field(default_factory=HostingConfig)

    log_level: str = Field("INFO", description="Logging level")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment values."""
        if v not in ALLOWED_ENVIRONMENTS:
            raise ValueError(f"Environment must be one of: {list(ALLOWED_ENVIRONMENTS)}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level values."""
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed_levels:
            raise ValueError(f"Log level must be one of: {allowed_levels}")
        return v.upper()

    def missing_variables(self) -> list[str]:
        """Return the required environment variables that resolved to empty values."""
        missing = []
        for name, (section, field) in REQUIRED_VARIABLES.items():
            value = getattr(getattr(self, section), field) if section else getattr(self, field)
            if not value:
                missing.append(name)
        return missing

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "PipelineConfig":
        """Load configuration from environment variables."""
        environ = os.environ if environ is None else environ
        environment = environ.get("ENVIRONMENT", "dev")
        data = _deep_merge(get_default_config(environment), _env_overrides(environ))
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "PipelineConfig":
        """Load configuration from a YAML file.

        Args:
            path: Path to the YAML configuration file

        Returns:
            PipelineConfig instance loaded from the file
        """
        config_path = Path(path)
        data = _read_yaml(config_path)

        if "environment" not in data:
            stem = config_path.stem.lower()
            if stem in ALLOWED_ENVIRONMENTS:
                data["environment"] = stem
            else:
                data["environment"] = os.environ.get("ENVIRONMENT", "dev")

        data.setdefault("aws_account_id", os.getenv("AWS_ACCOUNT_ID"))

        return cls(**data)


def load_config(
    environment: str,
    config_path: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    dotenv_path: Path | None = None,
) -> PipelineConfig:
    """Load and validate configuration for the specified environment.

    Args:
        environment: Target environment (dev/staging/prod)
        config_path: Optional YAML file; defaults to ``config/<environment>.yml``
            which is skipped when absent
        environ: Variables to read instead of ``os.environ``; no ``.env``
            file is loaded when given
        dotenv_path: Explicit ``.env`` file to load into ``os.environ``

    Returns:
        Loaded configuration object

    Raises:
        FileNotFoundError: If an explicit config file is not found
        ConfigurationError: If required variables are missing
    """
    if environ is None:
        if dotenv_path is not None:
            load_dotenv(dotenv_path)
        else:
            load_dotenv()
        environ = os.environ

    if config_path is None:
        default_path = CONFIG_DIR / f"{environment}.yml"
        file_data = _read_yaml(default_path) if default_path.exists() else {}
    else:
        file_data = _read_yaml(config_path)

    data = _deep_merge(get_default_config(environment), file_data)
    data = _deep_merge(data, _env_overrides(environ))
    data["environment"] = environment

    config = PipelineConfig(**data)

    missing = config.missing_variables()
    if missing:
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(missing)}",
            missing=missing,
        )

    logger.debug("Loaded %s configuration for %s/%s", environment, config.source.owner, config.source.repo)
    return config


def get_default_config(environment: str) -> dict[str, Any]:
    """Get default configuration for an environment.

    Args:
        environment: Target environment

    Returns:
        Default configuration dictionary
    """
    base_config: dict[str, Any] = {
        "environment": environment,
        "aws_region": "us-east-1",
        "source": {"branch": "main", "trigger": "poll"},
    }

    if environment == "prod":
        base_config["hosting"] = {"invalidate_cache": True}
    else:
        base_config["hosting"] = {"invalidate_cache": False}

    return base_config


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Nest the set (non-empty) known variables into config sections."""
    overrides: dict[str, Any] = {}
    for name, (section, field) in {**REQUIRED_VARIABLES, **OPTIONAL_VARIABLES}.items():
        value = environ.get(name)
        if not value:
            continue
        if section is None:
            overrides[field] = value
        else:
            overrides.setdefault(section, {})[field] = value
    return overrides


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged
