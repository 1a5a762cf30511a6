"""Configuration management for opencode-sessions."""

from __future__ import annotations

import os
from collections.abc import Mapping
from copy import deepcopy
from pathlib import Path
from typing import Any

import tomli_w
from pydantic import BaseModel, ValidationError

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # type: ignore

DEFAULT_CONFIG_DIR = Path(os.environ.get("OPENCODE_SESSIONS_HOME", Path.home() / ".opencode-sessions"))
CONFIG_FILENAME = "config.toml"
PROJECT_DIRNAME = ".opencode-sessions"

ENV_BASE_URL = "OPENCODE_SESSIONS_BASE_URL"
ENV_WORKSPACE = "OPENCODE_SESSIONS_WORKSPACE"


class ConfigurationError(RuntimeError):
    """Raised when configuration loading or validation fails."""


class SessionsConfig(BaseModel):
    """Persisted opencode-sessions settings."""

    config_version: int = 1
    # None means: launch a local `opencode serve` process.
    base_url: str | None = None
    workspace_dir: str | None = None
    timeout_seconds: float = 30.0
    opencode_binary: str = "opencode"
    server_start_timeout: float = 15.0
    shell_agent: str = "build"
    summary_provider: str = "anthropic"
    summary_model: str = "claude-sonnet-4-5"


class ConfigManager:
    """Loads layered configuration and persists preference updates."""

    def __init__(
        self,
        config_dir: Path | None = None,
        project_config_path: Path | None = None,
        override_config_path: Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.config_dir = config_dir or DEFAULT_CONFIG_DIR
        self.config_path = self.config_dir / CONFIG_FILENAME
        self.project_config_path = project_config_path
        self.override_config_path = override_config_path
        self._environ = os.environ if environ is None else environ

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def load(self) -> SessionsConfig:
        """Merge global, project and override files, then environment overrides."""

        data: dict[str, Any] = self._read_config_dict(self.config_path)
        if self.project_config_path:
            data = self._merge_dicts(data, self._read_config_dict(self.project_config_path))
        if self.override_config_path:
            data = self._merge_dicts(data, self._read_config_dict(self.override_config_path))

        base_url = self._environ.get(ENV_BASE_URL)
        if base_url:
            data["base_url"] = base_url
        workspace = self._environ.get(ENV_WORKSPACE)
        if workspace:
            data["workspace_dir"] = workspace

        try:
            return SessionsConfig(**data)
        except ValidationError as exc:
            raise ConfigurationError(str(exc)) from exc

    def update_preferences(self, **updates: object) -> SessionsConfig:
        """Persist `updates` into the global config file and return the result."""

        unknown = sorted(set(updates) - set(SessionsConfig.model_fields))
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")
        current = self._read_config_dict(self.config_path)
        current.update({key: value for key, value in updates.items() if value is not None})
        try:
            config = SessionsConfig(**current)
        except ValidationError as exc:
            raise ConfigurationError(str(exc)) from exc
        self._save_config(config)
        return config

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _save_config(self, config: SessionsConfig) -> None:
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config_path.write_text(tomli_w.dumps(config.model_dump(exclude_none=True)))

    def _read_config_dict(self, path: Path | None) -> dict[str, Any]:
        if path is None:
            return {}
        if not path.exists():
            return {}
        try:
            return tomllib.loads(path.read_text())
        except (OSError, tomllib.TOMLDecodeError) as exc:
            raise ConfigurationError(f"Failed to load config from {path}: {exc}") from exc

    def _merge_dicts(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        result = deepcopy(base)
        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._merge_dicts(result[key], value)
            else:
                result[key] = value
        return result


def project_config_path(root: Path | None = None) -> Path:
    return (root or Path.cwd()) / PROJECT_DIRNAME / CONFIG_FILENAME


__all__ = [
    "ConfigManager",
    "ConfigurationError",
    "SessionsConfig",
    "DEFAULT_CONFIG_DIR",
    "CONFIG_FILENAME",
    "ENV_BASE_URL",
    "ENV_WORKSPACE",
    "project_config_path",
]
