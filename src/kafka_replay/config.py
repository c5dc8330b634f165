"""
Configuration for kafka-replay.

Brokers can come from three places, highest priority first:
    1. --brokers on the command line
    2. A profile in the YAML config file (--profile, else default_profile)
    3. The KAFKA_BROKERS environment variable (comma separated)

Config file lookup: an explicit path; otherwise ./kafka-replay.yaml when it
exists; otherwise ~/.config/kafka-replay/config.yaml. A missing file is an
empty config, not an error.

Example config:
    default_profile: local
    profiles:
      local:
        brokers: ["localhost:9092"]
      staging:
        brokers: ["kafka-1.staging:9092", "kafka-2.staging:9092"]
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from kafka_replay.errors import ConfigError, NoBrokersError

logger = logging.getLogger(__name__)

LOCAL_CONFIG_NAME = "kafka-replay.yaml"
BROKERS_ENV_VAR = "KAFKA_BROKERS"


class Profile(BaseModel):
    """A named set of connection settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    brokers: list[str] = Field(
        default_factory=list,
        description="Bootstrap broker addresses",
    )


class AppConfig(BaseModel):
    """
    Contents of the config file.

    Attributes:
        default_profile: Profile used when --profile is not given
        profiles: Named profiles
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    default_profile: str | None = Field(
        default=None,
        description="Profile used when none is selected explicitly",
    )
    profiles: dict[str, Profile] = Field(
        default_factory=dict,
        description="Named connection profiles",
    )


@dataclass
class BrokerResolution:
    """
    Resolved brokers and where they came from.

    Attributes:
        brokers: The broker list in use (empty when none was found)
        source: Human-readable origin of the brokers
        profile: Selected profile name, if any
        profile_source: Why that profile was selected
        overridden: Lower-priority sources that were ignored
    """

    brokers: list[str]
    source: str | None = None
    profile: str | None = None
    profile_source: str | None = None
    overridden: list[str] = field(default_factory=list)


def default_config_path() -> Path:
    """The per-user config file location."""
    return Path.home() / ".config" / "kafka-replay" / "config.yaml"


def resolve_config_path(path: str | Path | None = None) -> Path:
    """Pick the config file to load (see module docstring)."""
    if path:
        return Path(path)
    local = Path.cwd() / LOCAL_CONFIG_NAME
    if local.exists():
        return local
    return default_config_path()


def load_config(path: str | Path | None = None) -> AppConfig:
    """
    Load and validate the config file.

    Raises:
        ConfigError: If the file exists but is not valid YAML or does not
            match the schema
    """
    config_path = resolve_config_path(path)
    if not config_path.exists():
        logger.debug("No config file at %s; using empty config", config_path)
        return AppConfig()

    try:
        with config_path.open() as f:
            data = yaml.safe_load(f)
        return AppConfig.model_validate(data or {})
    except (yaml.YAMLError, ValidationError) as e:
        raise ConfigError(
            path=str(config_path),
            message=f"Invalid configuration file {config_path}: {e}",
        ) from e


def split_brokers(value: str) -> list[str]:
    """Split a comma separated broker list, dropping blanks."""
    return [part.strip() for part in value.split(",") if part.strip()]


def describe_resolution(
    flag_brokers: list[str] | None,
    profile: str | None,
    config: AppConfig,
    env: dict[str, str] | None = None,
) -> BrokerResolution:
    """Resolve brokers and record where every value came from."""
    env = os.environ if env is None else env
    env_brokers = split_brokers(env.get(BROKERS_ENV_VAR, ""))

    if profile:
        profile_name, profile_source = profile, "from --profile"
    elif config.default_profile:
        profile_name, profile_source = config.default_profile, "from config default_profile"
    else:
        profile_name, profile_source = None, None

    profile_brokers: list[str] = []
    if profile_name is not None:
        selected = config.profiles.get(profile_name)
        if selected is None:
            if profile:
                raise ConfigError(
                    message=f"Profile not found: {profile_name}",
                    suggestion=f"Available profiles: {', '.join(sorted(config.profiles)) or '(none)'}",
                )
        else:
            profile_brokers = list(selected.brokers)

    resolution = BrokerResolution(brokers=[], profile=profile_name, profile_source=profile_source)
    if flag_brokers:
        resolution.brokers = [b for item in flag_brokers for b in split_brokers(item)]
        resolution.source = "from --brokers"
        if profile_brokers:
            resolution.overridden.append(f'config profile "{profile_name}"')
        if env_brokers:
            resolution.overridden.append(f"env {BROKERS_ENV_VAR}")
    elif profile_brokers:
        resolution.brokers = profile_brokers
        resolution.source = f'from config profile "{profile_name}"'
        if env_brokers:
            resolution.overridden.append(f"env {BROKERS_ENV_VAR}")
    elif env_brokers:
        resolution.brokers = env_brokers
        resolution.source = f"from env {BROKERS_ENV_VAR}"
    return resolution


def resolve_brokers(
    flag_brokers: list[str] | None,
    profile: str | None,
    config: AppConfig,
    env: dict[str, str] | None = None,
) -> list[str]:
    """
    Return the broker list to use.

    Raises:
        NoBrokersError: If no source provides any broker
        ConfigError: If an explicitly selected profile does not exist
    """
    resolution = describe_resolution(flag_brokers, profile, config, env)
    if not resolution.brokers:
        raise NoBrokersError()
    return resolution.brokers
