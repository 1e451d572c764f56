from typer.testing import CliRunner

from token_metadata_cli.cli import app

runner = CliRunner()


def test_version_command_runs() -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "token-metadata-cli version" in result.stdout
