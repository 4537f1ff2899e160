"""regional_games.config

Job configuration for the CLI and the handler entry point.

Sources, lowest to highest precedence:
  1. Optional YAML job file (``--config``).
  2. CLI flags / handler event keys.
Credentials come from environment variables only.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from regional_games.api import DEFAULT_TIMEOUT_SECONDS
from regional_games.pipeline import JobMode
from regional_games.resolvers import PER_PAGE

DEFAULT_USER_ENV = "API_USER"
DEFAULT_PASS_ENV = "API_PASS"

CONFIG_KEYS = frozenset({"uri", "job", "group", "timeout", "per_page"})


class ConfigError(ValueError):
    """Raised when a job cannot be started with the supplied configuration."""


@dataclass(frozen=True)
class ApiCredentials:
    user: str
    password: str

    @classmethod
    def from_env(
        cls,
        user_env: str = DEFAULT_USER_ENV,
        pass_env: str = DEFAULT_PASS_ENV,
        environ: Mapping[str, str] | None = None,
    ) -> ApiCredentials:
        env = os.environ if environ is None else environ
        user = env.get(user_env, "")
        password = env.get(pass_env, "")
        if not user or not password:
            raise ConfigError(f"env vars {user_env} and {pass_env} must be set")
        return cls(user=user, password=password)


@dataclass(frozen=True)
class JobConfig:
    uri: str | None = None
    job: str = JobMode.CRON.value
    group: str | None = None
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    per_page: int = PER_PAGE

    @property
    def mode(self) -> JobMode:
        return JobMode(self.job)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> JobConfig:
        unknown = set(data) - CONFIG_KEYS
        if unknown:
            raise ConfigError(f"Unknown config keys: {sorted(unknown)}")
        return cls().merged(data)

    @classmethod
    def from_event(cls, event: Mapping[str, Any] | None) -> JobConfig:
        """Build from a handler event; keys outside CONFIG_KEYS are ignored."""
        event = event or {}
        return cls().merged({k: v for k, v in event.items() if k in CONFIG_KEYS})

    def merged(self, overrides: Mapping[str, Any]) -> JobConfig:
        """Return a copy with every non-None override applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        try:
            if "timeout" in values:
                values["timeout"] = float(values["timeout"])
            if "per_page" in values:
                values["per_page"] = int(values["per_page"])
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid numeric config value: {exc}") from exc
        for key in ("uri", "job", "group"):
            if key in values:
                values[key] = str(values[key]).strip()
        return replace(self, **values)

    def validate(self) -> JobConfig:
        if not self.uri:
            raise ConfigError("API Uri missing")
        if self.job not in {m.value for m in JobMode}:
            raise ConfigError(f"Invalid process job: {self.job}")
        if self.mode is JobMode.GROUP and not self.group:
            raise ConfigError(f"Invalid group: {self.group!r}")
        if self.timeout <= 0:
            raise ConfigError(f"timeout must be positive, got {self.timeout}")
        if self.per_page <= 0:
            raise ConfigError(f"per_page must be positive, got {self.per_page}")
        return self


def load_job_config(path: Path) -> JobConfig:
    """Load a YAML job file.

    Raises:
        ConfigError: unreadable file, non-mapping root or unknown keys.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if data is None:
        return JobConfig()
    if not isinstance(data, dict):
        raise ConfigError("YAML root must be a mapping.")
    return JobConfig.from_mapping(data)
