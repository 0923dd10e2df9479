from typer.testing import CliRunner

from taleflow.cli import app


def test_providers_list_shows_fallbacks(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    runner = CliRunner()
    result = runner.invoke(app, ["providers", "list"])

    assert result.exit_code == 0, result.output
    lines = result.stdout.splitlines()
    assert any(line.startswith("openai-gpt\ttext\tfallbacks: ovh-ai") for line in lines)
    assert any(line.startswith("openai-tts\taudio\tfallbacks: (none)") for line in lines)


def test_config_show_dumps_yaml(tmp_path):
    config_path = tmp_path / "taleflow.yaml"
    config_path.write_text("workflow:\n  max_retries: 7\n")

    runner = CliRunner()
    result = runner.invoke(app, ["config", "show", "--config", str(config_path)])

    assert result.exit_code == 0, result.output
    assert "max_retries: 7" in result.stdout
    assert "fallbacks:" in result.stdout


def test_simulate_runs_workflows(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    runner = CliRunner()
    result = runner.invoke(
        app,
        [
            "simulate",
            "--workflows",
            "2",
            "--failure-rate",
            "0",
            "--max-latency",
            "0",
            "--retry-delay",
            "0",
            "--seed",
            "1",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "sim-0: text from openai-gpt | image from openai-dalle | audio from openai-tts" in result.stdout
    assert "sim-1:" in result.stdout
    assert "openai-tts\thealthy" in result.stdout
