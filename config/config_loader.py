"""Load settings.yaml into typed dataclasses and merge debate settings from every source."""

import logging
import math
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"

# Environment variable -> DebateConfig field
_ENV_KEYS: dict[str, str] = {
    "DEBATE_TIME_LIMIT": "time_limit",
    "DEBATE_WORD_LIMIT": "word_limit",
    "DEBATE_STRICT_MODE": "strict_mode",
    "DEBATE_SHOW_PREPARATION": "show_preparation",
    "DEBATE_CROSS_EXAM_QUESTIONS": "num_cross_exam_questions",
    "DEBATE_PREPARATION_TIME": "preparation_time",
}


@dataclass(frozen=True)
class DebateConfig:
    time_limit: float | None = 120.0         # seconds per response
    word_limit: int | None = 500             # max words per statement, <= 0 or None disables
    strict_mode: bool = False
    show_preparation: bool = True
    num_cross_exam_questions: int = 3
    preparation_time: float | None = 180.0   # seconds for the whole preparation phase
    affirmative_research_depth: int | None = None   # 0-10
    negative_research_depth: int | None = None      # 0-10


DEFAULT_DEBATE_CONFIG = DebateConfig()


@dataclass
class ModelConfig:
    name: str
    sdk: str
    model: str
    api_key_env: str | None
    timeout_sec: int
    max_tokens: int
    base_url: str | None = None


@dataclass
class PromptsConfig:
    rules: str
    preparation: str
    opening: str
    rebuttal: str
    cross_exam_question: str
    cross_exam_answer: str
    closing: str


@dataclass
class DefaultsConfig:
    affirmative: str
    negative: str
    output_dir: Path
    transcripts_dir: Path


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    debate: DebateConfig
    models: dict[str, ModelConfig]
    prompts: PromptsConfig
    available_providers: set[str] = field(default_factory=set)


def _is_bool(value: Any) -> bool:
    return isinstance(value, bool)


def _is_positive_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value > 0
    )


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _is_non_negative_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _is_research_depth(value: Any) -> bool:
    return _is_non_negative_int(value) and value <= 10


_VALIDATORS: dict[str, Callable[[Any], bool]] = {
    "time_limit": _is_positive_number,
    "word_limit": _is_positive_int,
    "strict_mode": _is_bool,
    "show_preparation": _is_bool,
    "num_cross_exam_questions": _is_non_negative_int,
    "preparation_time": _is_positive_number,
    "affirmative_research_depth": _is_research_depth,
    "negative_research_depth": _is_research_depth,
}


def merge_debate_config(
    overrides: Mapping[str, Any],
    base: DebateConfig = DEFAULT_DEBATE_CONFIG,
) -> tuple[DebateConfig, list[str]]:
    """Apply validated overrides on top of base.

    Invalid or unknown values are dropped (the base value stays) and
    reported in the returned warning list. ``None`` means "not set".

    Returns:
        (merged_config, warnings)
    """
    warnings: list[str] = []
    accepted: dict[str, Any] = {}

    for key, value in overrides.items():
        if value is None:
            continue
        validator = _VALIDATORS.get(key)
        if validator is None:
            warnings.append(f"Unknown debate setting '{key}', ignoring")
            continue
        if not validator(value):
            warnings.append(f"Invalid value for {key}: {value!r}, using default: {getattr(base, key)!r}")
            continue
        accepted[key] = float(value) if key in ("time_limit", "preparation_time") else value

    for message in warnings:
        logger.warning(message)

    return replace(base, **accepted), warnings


def _parse_env_value(key: str, raw: str) -> Any:
    """Convert an env string to the type its field expects.

    Unparseable numbers are returned as the raw string so validation
    reports them instead of silently dropping them.
    """
    raw = raw.strip()
    if key in ("strict_mode", "show_preparation"):
        return raw.lower() == "true"
    try:
        if key in ("word_limit", "num_cross_exam_questions"):
            return int(raw)
        return float(raw)
    except ValueError:
        return raw


def load_debate_env(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Read DEBATE_* environment variables into DebateConfig overrides."""
    env = os.environ if environ is None else environ
    overrides: dict[str, Any] = {}
    for env_key, field_name in _ENV_KEYS.items():
        raw = env.get(env_key)
        if raw:
            overrides[field_name] = _parse_env_value(field_name, raw)
    return overrides


def resolve_debate_config(
    base: DebateConfig,
    file_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> tuple[DebateConfig, list[str]]:
    """Merge debate settings. Precedence: CLI > env > topic file > base."""
    merged: dict[str, Any] = {}
    merged.update({k: v for k, v in (file_overrides or {}).items() if v is not None})
    merged.update(load_debate_env(environ))
    merged.update({k: v for k, v in (cli_overrides or {}).items() if v is not None})
    return merge_debate_config(merged, base)


def debate_config_keys() -> set[str]:
    return {f.name for f in fields(DebateConfig)}


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing.
    Logs warnings for missing API keys but does not raise; callers check
    available_providers count.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        affirmative=str(defaults_raw["affirmative"]),
        negative=str(defaults_raw["negative"]),
        output_dir=Path(defaults_raw["output_dir"]),
        transcripts_dir=Path(defaults_raw["transcripts_dir"]),
    )

    debate, _ = merge_debate_config(raw.get("debate") or {})

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(
        rules=prompts_raw.get("rules", ""),
        preparation=prompts_raw["preparation"],
        opening=prompts_raw["opening"],
        rebuttal=prompts_raw["rebuttal"],
        cross_exam_question=prompts_raw["cross_exam_question"],
        cross_exam_answer=prompts_raw["cross_exam_answer"],
        closing=prompts_raw["closing"],
    )

    models: dict[str, ModelConfig] = {}
    available_providers: set[str] = set()

    for provider_name, model_raw in raw["models"].items():
        api_key_env = model_raw.get("api_key_env")
        model_cfg = ModelConfig(
            name=provider_name,
            sdk=model_raw["sdk"],
            model=model_raw["model"],
            api_key_env=api_key_env,
            timeout_sec=int(model_raw["timeout_sec"]),
            max_tokens=int(model_raw["max_tokens"]),
            base_url=model_raw.get("base_url"),
        )
        models[provider_name] = model_cfg

        if not api_key_env:
            # Keyless endpoints (local servers) are always offered
            available_providers.add(provider_name)
            logger.info("Provider available (no key required): %s", provider_name)
        elif os.environ.get(api_key_env, "").strip():
            available_providers.add(provider_name)
            logger.info("Provider available: %s", provider_name)
        else:
            logger.info(
                "Provider skipped (no API key): %s, set %s in .env",
                provider_name,
                api_key_env,
            )

    return AppConfig(
        defaults=defaults,
        debate=debate,
        models=models,
        prompts=prompts,
        available_providers=available_providers,
    )
