"""Configuration management for ultradian."""

import logging
import os
import tomllib

from pathlib import Path
from typing import Any

import tomli_w

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ultradian.constants import DEFAULT_HOME_DIR
from ultradian.constants import RhythmConstants as RC
from ultradian.constants import TriggerConstants as TC

logger = logging.getLogger(__name__)


class RhythmSettings(BaseModel):
    """Tunable parameters for profile compilation and staleness."""

    model_config = ConfigDict(extra="forbid")

    lookback_days: float = Field(default=RC.LOOKBACK_DAYS, gt=0)
    min_samples: int = Field(default=RC.MIN_SAMPLES, ge=2)
    stale_after_hours: float = Field(default=RC.STALE_AFTER_HOURS, gt=0)
    min_period_seconds: float = Field(default=RC.MIN_PERIOD_SECONDS, gt=0)
    max_period_seconds: float = Field(default=RC.MAX_PERIOD_SECONDS, gt=0)
    num_frequencies: int = Field(default=RC.NUM_TRIAL_FREQUENCIES, ge=2)
    max_samples: int = Field(default=RC.MAX_SAMPLES, ge=2)
    event_types: list[str] = Field(default_factory=lambda: list(RC.DEFAULT_EVENT_TYPES))

    @model_validator(mode="after")
    def _check_band(self) -> "RhythmSettings":
        if self.min_period_seconds >= self.max_period_seconds:
            raise ValueError(
                "min_period_seconds must be smaller than max_period_seconds "
                f"(got {self.min_period_seconds} >= {self.max_period_seconds})"
            )
        return self


class TriggerSettings(BaseModel):
    """Tunable parameters for debounced background recomputation."""

    model_config = ConfigDict(extra="forbid")

    debounce_seconds: float = Field(default=TC.DEBOUNCE_SECONDS, ge=0)
    max_attempts: int = Field(default=TC.MAX_ATTEMPTS, ge=1)
    backoff_seconds: float = Field(default=TC.BACKOFF_SECONDS, ge=0)


def get_config_path() -> Path:
    """
    Get the path to the configuration file.

    Returns:
        Path to ~/.ultradian/config.toml
    """
    return DEFAULT_HOME_DIR / "config.toml"


def load_config() -> dict[str, Any]:
    """
    Load configuration from TOML file.

    Returns:
        Configuration dictionary. Returns empty dict if file doesn't exist
        or is corrupted.
    """
    config_path = get_config_path()

    if not config_path.exists():
        return {}

    try:
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning(f"Failed to load config from {config_path}: {e}")
        logger.warning("Treating config as empty. Fix or delete the file to resolve.")
        return {}


def save_config(config: dict[str, Any]) -> None:
    """
    Save configuration to TOML file using atomic write.

    Args:
        config: Configuration dictionary to save

    Raises:
        PermissionError: If directory cannot be created or file cannot be written
    """
    config_path = get_config_path()

    config_dir = config_path.parent
    try:
        os.makedirs(config_dir, exist_ok=True)
    except PermissionError as e:
        raise PermissionError(
            f"Cannot create config directory {config_dir}: {e}"
        ) from e

    temp_path = config_path.with_suffix(".toml.tmp")

    try:
        with open(temp_path, "wb") as f:
            tomli_w.dump(config, f)

        os.replace(temp_path, config_path)

    except Exception:
        if temp_path.exists():
            temp_path.unlink()
        raise


def _section(config: dict[str, Any], name: str) -> dict[str, Any]:
    section = config.get(name, {})
    if not isinstance(section, dict):
        logger.warning(f"Ignoring [{name}] in config: expected a table")
        return {}
    return section


def get_rhythm_settings(config: dict[str, Any] | None = None) -> RhythmSettings:
    """
    Rhythm settings with [rhythm] overrides applied.

    Raises:
        pydantic.ValidationError: If an override has an invalid value
    """
    if config is None:
        config = load_config()
    return RhythmSettings(**_section(config, "rhythm"))


def get_trigger_settings(config: dict[str, Any] | None = None) -> TriggerSettings:
    """
    Trigger settings with [trigger] overrides applied.

    Raises:
        pydantic.ValidationError: If an override has an invalid value
    """
    if config is None:
        config = load_config()
    return TriggerSettings(**_section(config, "trigger"))


def get_default_subject() -> str | None:
    """
    Get the default subject identifier from config.

    Returns:
        Default subject, or None if not set
    """
    config = load_config()
    default: str | None = _section(config, "subject").get("default")
    return default


def set_default_subject(subject_id: str) -> None:
    """
    Set the default subject identifier in config.

    Args:
        subject_id: Subject to use when --subject is omitted
    """
    config = load_config()

    if "subject" not in config:
        config["subject"] = {}

    config["subject"]["default"] = subject_id
    save_config(config)


def unset_default_subject() -> None:
    """
    Remove the default subject setting from config.

    Drops the [subject] table when it becomes empty, and the file when the
    whole config becomes empty.
    """
    config = load_config()

    if "subject" in config and "default" in config["subject"]:
        del config["subject"]["default"]

        if not config["subject"]:
            del config["subject"]

        if not config:
            config_path = get_config_path()
            if config_path.exists():
                config_path.unlink()
        else:
            save_config(config)
