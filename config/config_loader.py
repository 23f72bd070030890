"""Load settings.yaml into typed dataclasses, with TENTHMAN_* env overrides."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"

MIN_AGENTS = 3


class ConfigError(ValueError):
    """Raised for invalid settings values."""


@dataclass
class DefaultsConfig:
    agents: int
    min_rounds: int
    max_rounds: int
    output_dir: Path


@dataclass
class OpenRouterConfig:
    base_url: str
    api_key_env: str
    timeout_sec: int


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    openrouter: OpenRouterConfig
    participant_names: list[str] = field(default_factory=list)
    api_key: str = ""


def _env_int(key: str, default: int) -> int:
    raw = os.environ.get(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"Invalid {key} value {raw!r}: expected an integer") from exc


def validate_run_settings(agents: int, min_rounds: int, max_rounds: int) -> None:
    """Raise ConfigError unless agents >= 3 and 1 <= min_rounds <= max_rounds."""
    if agents < MIN_AGENTS:
        raise ConfigError(f"Agent count must be >= {MIN_AGENTS}, got {agents}")
    if min_rounds < 1:
        raise ConfigError(f"min_rounds must be >= 1, got {min_rounds}")
    if max_rounds < min_rounds:
        raise ConfigError(f"max_rounds ({max_rounds}) must be >= min_rounds ({min_rounds})")


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load configuration from settings.yaml, then apply environment overrides.

    Raises FileNotFoundError if settings file missing, ConfigError if an
    override is not an integer. A missing API key is logged, not raised;
    callers decide whether they need one.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    output_dir = os.environ.get("TENTHMAN_OUTPUT_DIR", "").strip() or defaults_raw["output_dir"]
    defaults = DefaultsConfig(
        agents=_env_int("TENTHMAN_AGENTS", int(defaults_raw["agents"])),
        min_rounds=_env_int("TENTHMAN_MIN_ROUNDS", int(defaults_raw["min_rounds"])),
        max_rounds=_env_int("TENTHMAN_MAX_ROUNDS", int(defaults_raw["max_rounds"])),
        output_dir=Path(output_dir),
    )

    router_raw = raw["openrouter"]
    openrouter = OpenRouterConfig(
        base_url=str(router_raw["base_url"]),
        api_key_env=str(router_raw["api_key_env"]),
        timeout_sec=int(router_raw["timeout_sec"]),
    )

    names = [str(n) for n in raw.get("participants", {}).get("names", [])]

    api_key = os.environ.get(openrouter.api_key_env, "").strip()
    if not api_key:
        logger.info("No API key found: set %s in .env or pass --api-key", openrouter.api_key_env)

    return AppConfig(
        defaults=defaults,
        openrouter=openrouter,
        participant_names=names,
        api_key=api_key,
    )
