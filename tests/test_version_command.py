from typer.testing import CliRunner

from opencode_sessions.cli import app

runner = CliRunner()


def test_version_command_runs() -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "opencode-sessions version" in result.stdout
