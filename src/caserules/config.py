"""
Engine configuration for caserules.

This module defines the EngineConfig dataclass that captures the configurable
parameters of the rule dispatcher. Values can be read from the environment
(CASERULES_* variables), optionally loaded from a .env file.
"""

import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Optional, Union

import pandas as pd
from dotenv import load_dotenv

from caserules.constants import DEFAULT_NAMESPACE, DEFAULT_VALUE_DATE_OFFSET

ENV_PREFIX = "CASERULES_"


@dataclass
class EngineConfig:
    """
    Configuration of the rule engine.

    Attributes:
        default_namespace: Namespace of action expressions without namespace.
        log_level: Logging level name used by the command line runner.
        value_date_offset: Offset from now for case value lookups.
        report_issues: Copy validation issues to the host on failure.
    """

    default_namespace: str = DEFAULT_NAMESPACE
    log_level: str = "INFO"
    value_date_offset: timedelta = DEFAULT_VALUE_DATE_OFFSET
    report_issues: bool = True

    def __post_init__(self):
        """Normalize values given as strings or numbers."""
        self.log_level = self.log_level.upper()
        if not isinstance(self.value_date_offset, timedelta):
            # plain numbers are minutes
            if isinstance(self.value_date_offset, (int, float)):
                self.value_date_offset = timedelta(minutes=self.value_date_offset)
            else:
                self.value_date_offset = _parse_offset(str(self.value_date_offset))

    @classmethod
    def from_env(cls, env_file: Optional[Union[str, Path]] = None) -> "EngineConfig":
        """
        Create configuration from CASERULES_* environment variables.

        Args:
            env_file: Optional .env file loaded before reading the environment.
                Without a file, a .env in the working directory is used if present.

        Returns:
            EngineConfig with defaults for unset variables.
        """
        if env_file is not None:
            load_dotenv(env_file)
        else:
            load_dotenv()

        config = cls()
        namespace = os.environ.get(f"{ENV_PREFIX}DEFAULT_NAMESPACE")
        if namespace:
            config.default_namespace = namespace.strip()
        log_level = os.environ.get(f"{ENV_PREFIX}LOG_LEVEL")
        if log_level:
            config.log_level = log_level.strip().upper()
        offset = os.environ.get(f"{ENV_PREFIX}VALUE_DATE_OFFSET")
        if offset:
            config.value_date_offset = _parse_offset(offset)
        report = os.environ.get(f"{ENV_PREFIX}REPORT_ISSUES")
        if report:
            config.report_issues = report.strip().lower() in ("1", "true", "yes", "on")
        return config


def _parse_offset(text: str) -> timedelta:
    """Parse an offset: plain minutes ("5") or a duration ("00:05:00", "1 days")."""
    text = text.strip()
    try:
        return timedelta(minutes=float(text))
    except ValueError:
        pass
    try:
        return pd.to_timedelta(text).to_pytimedelta()
    except ValueError as e:
        raise ValueError(f"Invalid value date offset '{text}'") from e
