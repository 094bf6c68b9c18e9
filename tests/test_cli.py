import json
from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from coach_core.orchestrator import SuggestionOrchestrator
from coach_core.schemas import CoachConfig, LLMProviderConfig
from session.cli import app, build_orchestrator
from session.config import load_config

runner = CliRunner()


def _script(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "script.py"
    path.write_text(text)
    return path


def _quiet_config(tmp_path: Path) -> Path:
    config_path = tmp_path / "coach.yaml"
    with open(config_path, "w") as f:
        yaml.dump({"suggestion_mode": "heuristic", "log_level": "WARNING"}, f)
    return config_path


def test_run_prints_output_and_suggestions(tmp_path: Path) -> None:
    script = _script(tmp_path, "print(1 + 1)\n")
    result = runner.invoke(app, ["run", str(script), "--mode", "heuristic"])

    assert result.exit_code == 0
    assert "  2" in result.stdout
    assert "Suggestions" in result.stdout
    assert "Keep Building Good Habits" in result.stdout


def test_run_json_document(tmp_path: Path) -> None:
    script = _script(tmp_path, "foo()\n")
    result = runner.invoke(app, ["run", str(script), "--config", str(_quiet_config(tmp_path)), "--json"])

    assert result.exit_code == 0
    document = json.loads(result.stdout)
    assert document["result"]["errors"] == ["NameError: name 'foo' is not defined"]
    assert document["result"]["output"] == []
    assert document["suggestions"][0]["type"] == "error-fix"
    assert "codeExample" in document["suggestions"][0]


def test_run_reports_pending_timers(tmp_path: Path) -> None:
    script = _script(tmp_path, "set_timeout(lambda: print('later'), 100)\n")
    result = runner.invoke(app, ["run", str(script), "--mode", "heuristic"])

    assert result.exit_code == 0
    assert "1 timer callback(s) were not run" in result.stdout
    assert "later" not in result.stdout


def test_run_missing_script(tmp_path: Path) -> None:
    result = runner.invoke(app, ["run", str(tmp_path / "absent.py")])
    assert result.exit_code == 1


def test_run_invalid_mode(tmp_path: Path) -> None:
    script = _script(tmp_path, "print(1)\n")
    result = runner.invoke(app, ["run", str(script), "--mode", "sometimes"])
    assert result.exit_code == 1


def test_run_bad_config(tmp_path: Path) -> None:
    script = _script(tmp_path, "print(1)\n")
    result = runner.invoke(app, ["run", str(script), "--config", str(tmp_path / "absent.yaml")])
    assert result.exit_code == 1


def test_remote_mode_without_provider_fails(tmp_path: Path) -> None:
    script = _script(tmp_path, "print(1)\n")
    result = runner.invoke(app, ["run", str(script), "--config", str(_quiet_config(tmp_path)), "--mode", "remote"])
    assert result.exit_code == 1


def test_tips_lists_learning_cards() -> None:
    result = runner.invoke(app, ["tips"])

    assert result.exit_code == 0
    assert "Python Fundamentals" in result.stdout
    assert "Debugging Best Practices" in result.stdout


def test_init_config_writes_and_refuses_overwrite(tmp_path: Path) -> None:
    target = tmp_path / "coach.yaml"

    first = runner.invoke(app, ["init-config", str(target)])
    second = runner.invoke(app, ["init-config", str(target)])
    forced = runner.invoke(app, ["init-config", str(target), "--force"])

    assert first.exit_code == 0
    assert load_config(target).suggestion_mode == "auto"
    assert second.exit_code == 1
    assert forced.exit_code == 0


def test_build_orchestrator_heuristic_mode() -> None:
    orchestrator = build_orchestrator(CoachConfig(suggestion_mode="heuristic"))
    assert isinstance(orchestrator, SuggestionOrchestrator)
    assert orchestrator.uses_remote is False


def test_build_orchestrator_fake_provider() -> None:
    config = CoachConfig(
        suggestion_mode="remote",
        llm_provider=LLMProviderConfig(provider_id="fake", provider_type="fake", model_name="fake-model"),
    )
    orchestrator = build_orchestrator(config)
    assert orchestrator.uses_remote is True


def test_build_orchestrator_auto_without_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    config = CoachConfig(
        suggestion_mode="auto",
        llm_provider=LLMProviderConfig(provider_id="mentor", provider_type="gemini", model_name="m"),
    )
    orchestrator = build_orchestrator(config)
    assert orchestrator.uses_remote is False
    assert orchestrator.mode == "heuristic"


def test_build_orchestrator_remote_requires_provider() -> None:
    with pytest.raises(ValueError):
        _ = build_orchestrator(CoachConfig(suggestion_mode="remote"))


def test_build_orchestrator_unknown_provider_type() -> None:
    provider = LLMProviderConfig(provider_id="x", provider_type="mystery", model_name="m", api_key="k")
    with pytest.raises(ValueError):
        _ = build_orchestrator(CoachConfig(suggestion_mode="remote", llm_provider=provider))
    assert build_orchestrator(CoachConfig(suggestion_mode="auto", llm_provider=provider)).uses_remote is False


def _fake_remote_config(tmp_path: Path) -> Path:
    config_path = tmp_path / "remote.yaml"
    with open(config_path, "w") as f:
        yaml.dump(
            {
                "suggestion_mode": "remote",
                "log_level": "WARNING",
                "llm_provider": {
                    "provider_id": "scripted",
                    "provider_type": "fake",
                    "model_name": "fake-model",
                },
            },
            f,
        )
    return config_path


def test_run_json_includes_provider_report_for_remote_source(tmp_path: Path) -> None:
    script = _script(tmp_path, "print(1)\n")
    result = runner.invoke(app, ["run", str(script), "--config", str(_fake_remote_config(tmp_path)), "--json"])

    assert result.exit_code == 0
    document = json.loads(result.stdout)
    assert document["suggestions"][0]["title"] == "Try It Out"
    assert document["provider"]["info"] == {
        "provider_id": "scripted",
        "provider_type": "fake",
        "model_name": "fake-model",
    }
    assert document["provider"]["metrics"]["calls"] == 1
    assert document["provider"]["metrics"]["errors"] == 0


def test_run_text_names_the_remote_provider(tmp_path: Path) -> None:
    script = _script(tmp_path, "print(1)\n")
    result = runner.invoke(app, ["run", str(script), "--config", str(_fake_remote_config(tmp_path))])

    assert result.exit_code == 0
    assert "via fake:fake-model (1 call(s), 0 error(s))" in result.stdout


def test_run_json_omits_provider_report_for_heuristics(tmp_path: Path) -> None:
    script = _script(tmp_path, "print(1)\n")
    result = runner.invoke(app, ["run", str(script), "--config", str(_quiet_config(tmp_path)), "--json"])

    assert result.exit_code == 0
    assert "provider" not in json.loads(result.stdout)
