"""CLI interface for running scripts and getting suggestions."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer

from coach_core.learning import LEARNING_CARDS
from coach_core.orchestrator import SuggestionOrchestrator
from coach_core.remote import RemoteSuggestionClient
from coach_core.schemas import CoachConfig, ExecutionResult, Suggestion
from llm.providers import create_provider, has_credentials
from sandbox.executor import ScriptExecutor
from session.config import default_config, load_config, save_config

app = typer.Typer(help="Run learner scripts in a sandbox and get hints")

logger = logging.getLogger(__name__)

_MODES = ("auto", "remote", "heuristic")
_TYPE_COLORS = {
    "error-fix": typer.colors.RED,
    "improvement": typer.colors.YELLOW,
    "learning": typer.colors.CYAN,
}


def build_orchestrator(config: CoachConfig) -> SuggestionOrchestrator:
    """Wire the remote client when the mode and provider config allow it."""
    remote: RemoteSuggestionClient | None = None
    provider_config = config.llm_provider
    if config.suggestion_mode == "remote" and provider_config is None:
        raise ValueError("Remote suggestion mode requires an llm_provider section in the config")
    if config.suggestion_mode == "heuristic" or provider_config is None:
        provider_config = None
    elif config.suggestion_mode == "auto" and not has_credentials(provider_config):
        logger.info("No credentials for %s, using heuristics", provider_config.provider_id)
        provider_config = None
    if provider_config is not None:
        try:
            provider = create_provider(provider_config)
        except (ImportError, ValueError) as e:
            if config.suggestion_mode == "remote":
                raise
            logger.warning("LLM provider unavailable, using heuristics: %s", e)
        else:
            remote = RemoteSuggestionClient(
                provider,
                temperature=provider_config.temperature,
                max_tokens=provider_config.max_tokens,
            )
    mode = config.suggestion_mode if remote is not None else "heuristic"
    return SuggestionOrchestrator(remote=remote, mode=mode)


def _echo_result(result: ExecutionResult) -> None:
    typer.secho("Output", bold=True)
    for line in result.output:
        typer.echo(f"  {line}")
    if not result.output:
        typer.echo("  (no output)")
    if result.errors:
        typer.secho("Errors", bold=True, fg=typer.colors.RED)
        for line in result.errors:
            typer.secho(f"  {line}", fg=typer.colors.RED)
    typer.echo(f"Finished in {result.execution_time_ms} ms")
    if result.pending_callbacks:
        typer.secho(
            f"⚠️  {result.pending_callbacks} timer callback(s) were not run",
            fg=typer.colors.YELLOW,
        )


def _echo_suggestions(suggestions: tuple[Suggestion, ...]) -> None:
    typer.echo()
    typer.secho("Suggestions", bold=True)
    for suggestion in suggestions:
        color = _TYPE_COLORS.get(suggestion.type, typer.colors.WHITE)
        typer.secho(f"• [{suggestion.type}] {suggestion.title}", fg=color)
        typer.echo(f"  {suggestion.description}")
        if suggestion.code_example:
            for line in suggestion.code_example.splitlines():
                typer.echo(f"    {line}")


def _provider_report(orchestrator: SuggestionOrchestrator) -> dict[str, dict[str, object]] | None:
    """Provider metadata and call counters, when the remote source was used."""
    if not orchestrator.uses_remote or orchestrator.remote is None:
        return None
    provider = orchestrator.remote.provider
    return {"info": provider.get_provider_info(), "metrics": provider.get_metrics()}


@app.command()
def run(
    script_path: str = typer.Argument(..., help="Path to the Python script to run"),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to YAML config"),
    mode: Optional[str] = typer.Option(
        None,
        "--mode",
        help="Suggestion source (auto, remote, or heuristic)",
        case_sensitive=False,
    ),
    json_output: bool = typer.Option(False, "--json", help="Print a JSON document instead of text"),
) -> None:
    """Run a script in the sandbox, then show suggestions about it."""
    if mode is not None and mode.lower() not in _MODES:
        typer.secho(f"❌ Invalid mode: {mode}. Must be auto, remote, or heuristic.", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    path = Path(script_path)
    if not path.exists():
        typer.secho(f"❌ Script not found: {script_path}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    try:
        config = load_config(config_path) if config_path else default_config()
    except (FileNotFoundError, ValueError) as e:
        typer.secho(f"❌ {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    if mode is not None:
        config.suggestion_mode = mode.lower()  # type: ignore[assignment]

    logging.basicConfig(level=config.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

    try:
        orchestrator = build_orchestrator(config)
    except (ImportError, ValueError) as e:
        typer.secho(f"❌ {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    script_text = path.read_text(encoding="utf-8")
    executor = ScriptExecutor(allowed_modules=config.allowed_modules)
    result = executor.execute(script_text)
    suggestions = asyncio.run(orchestrator.analyze(script_text, result.errors))

    if json_output:
        document: dict[str, object] = {
            "result": json.loads(result.to_json()),
            "suggestions": [suggestion.to_wire() for suggestion in suggestions],
        }
        report = _provider_report(orchestrator)
        if report is not None:
            document["provider"] = report
        typer.echo(json.dumps(document, indent=2, ensure_ascii=False))
        return

    _echo_result(result)
    _echo_suggestions(suggestions)
    report = _provider_report(orchestrator)
    if report is not None:
        info, metrics = report["info"], report["metrics"]
        typer.secho(
            f"\nvia {info['provider_type']}:{info['model_name']} "
            f"({metrics['calls']} call(s), {metrics['errors']} error(s))",
            dim=True,
        )


@app.command()
def tips() -> None:
    """Show the learning reference cards."""
    for card in LEARNING_CARDS:
        typer.secho(card.title, bold=True)
        typer.echo(card.summary)
        if card.code_example:
            typer.echo()
            for line in card.code_example.splitlines():
                typer.echo(f"    {line}")
        for tip in card.tips:
            typer.echo(f"  • {tip}")
        typer.echo()


@app.command("init-config")
def init_config(
    path: str = typer.Argument("coach.yaml", help="Where to write the config"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
) -> None:
    """Write a default configuration file."""
    target = Path(path)
    if target.exists() and not force:
        typer.secho(f"❌ {target} already exists (use --force to overwrite)", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    save_config(default_config(), target)
    typer.secho(f"✅ Config written to {target}", fg=typer.colors.GREEN)


if __name__ == "__main__":
    app()
