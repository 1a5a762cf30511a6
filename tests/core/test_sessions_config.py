from pathlib import Path
from typing import Any

import pytest
import tomli_w
import tomllib

from opencode_sessions.core.config import (
    CONFIG_FILENAME,
    ENV_BASE_URL,
    ENV_WORKSPACE,
    ConfigManager,
    ConfigurationError,
    SessionsConfig,
    project_config_path,
)


def make_manager(tmp_path: Path, **kwargs: Any) -> ConfigManager:
    kwargs.setdefault("environ", {})
    return ConfigManager(config_dir=tmp_path / "global", **kwargs)


def write_toml(path: Path, data: dict[str, Any]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(tomli_w.dumps(data))
    return path


def test_load_without_files_returns_defaults(tmp_path: Path) -> None:
    config = make_manager(tmp_path).load()

    assert config == SessionsConfig()
    assert config.base_url is None
    assert config.shell_agent == "build"
    assert config.summary_provider == "anthropic"
    assert config.summary_model == "claude-sonnet-4-5"


def test_project_and_override_layers_take_precedence(tmp_path: Path) -> None:
    write_toml(tmp_path / "global" / CONFIG_FILENAME, {"timeout_seconds": 10.0, "shell_agent": "plan"})
    project = write_toml(tmp_path / "project.toml", {"shell_agent": "build", "summary_model": "gpt-5"})
    override = write_toml(tmp_path / "override.toml", {"summary_model": "claude-opus-4"})

    config = make_manager(tmp_path, project_config_path=project, override_config_path=override).load()

    assert config.timeout_seconds == 10.0
    assert config.shell_agent == "build"
    assert config.summary_model == "claude-opus-4"


def test_environment_overrides_files(tmp_path: Path) -> None:
    write_toml(tmp_path / "global" / CONFIG_FILENAME, {"base_url": "http://127.0.0.1:1111"})
    environ = {ENV_BASE_URL: "http://127.0.0.1:4096", ENV_WORKSPACE: "/work"}

    config = make_manager(tmp_path, environ=environ).load()

    assert config.base_url == "http://127.0.0.1:4096"
    assert config.workspace_dir == "/work"


def test_invalid_toml_raises_configuration_error(tmp_path: Path) -> None:
    path = tmp_path / "global" / CONFIG_FILENAME
    path.parent.mkdir(parents=True)
    path.write_text("base_url = [unterminated")

    with pytest.raises(ConfigurationError):
        make_manager(tmp_path).load()


def test_invalid_value_raises_configuration_error(tmp_path: Path) -> None:
    write_toml(tmp_path / "global" / CONFIG_FILENAME, {"timeout_seconds": "soon"})

    with pytest.raises(ConfigurationError):
        make_manager(tmp_path).load()


def test_update_preferences_persists_to_global_file(tmp_path: Path) -> None:
    manager = make_manager(tmp_path)

    config = manager.update_preferences(base_url="http://127.0.0.1:4096", shell_agent="plan")

    assert config.base_url == "http://127.0.0.1:4096"
    stored = tomllib.loads(manager.config_path.read_text())
    assert stored["base_url"] == "http://127.0.0.1:4096"
    assert stored["shell_agent"] == "plan"
    assert make_manager(tmp_path).load().shell_agent == "plan"


def test_update_preferences_rejects_unknown_keys(tmp_path: Path) -> None:
    manager = make_manager(tmp_path)

    with pytest.raises(ConfigurationError, match="llm_model"):
        manager.update_preferences(llm_model="gpt-5")

    assert not manager.config_path.exists()


def test_update_preferences_rejects_invalid_values(tmp_path: Path) -> None:
    manager = make_manager(tmp_path)

    with pytest.raises(ConfigurationError):
        manager.update_preferences(server_start_timeout="never")


def test_project_config_path_uses_hidden_directory(tmp_path: Path) -> None:
    assert project_config_path(tmp_path) == tmp_path / ".opencode-sessions" / CONFIG_FILENAME
