"""Coach configuration with YAML support."""

from __future__ import annotations

from pathlib import Path

import yaml

from coach_core.schemas import CoachConfig, LLMProviderConfig


def default_config() -> CoachConfig:
    return CoachConfig(
        suggestion_mode="auto",
        llm_provider=LLMProviderConfig(
            provider_id="mentor",
            provider_type="gemini",
            model_name="gemini-2.0-flash",
        ),
    )


def load_config(yaml_path: str | Path) -> CoachConfig:
    """Load coach configuration from a YAML file.

    Args:
        yaml_path: Path to YAML configuration file

    Returns:
        CoachConfig instance

    Raises:
        FileNotFoundError: If YAML file doesn't exist
        ValueError: If YAML is invalid or has invalid fields
    """
    yaml_path = Path(yaml_path)

    if not yaml_path.exists():
        raise FileNotFoundError(f"Config file not found: {yaml_path}")

    with open(yaml_path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {yaml_path}: {e}") from e

    if not data:
        raise ValueError(f"Empty or invalid YAML file: {yaml_path}")
    if not isinstance(data, dict):
        raise ValueError(f"Config root must be a mapping: {yaml_path}")

    try:
        return CoachConfig.from_dict(data)
    except Exception as e:
        raise ValueError(f"Invalid configuration in {yaml_path}: {e}") from e


def save_config(config: CoachConfig, yaml_path: str | Path) -> None:
    """Save coach configuration to a YAML file.

    The API key is never written out; it is read from the environment.
    """
    yaml_path = Path(yaml_path)
    yaml_path.parent.mkdir(parents=True, exist_ok=True)

    data = config.model_dump(exclude={"llm_provider": {"api_key"}})

    with open(yaml_path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False, indent=2)
