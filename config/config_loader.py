"""Load settings.yaml into typed dataclasses. Reports which providers have API keys."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"

RUBRIC_CRITERIA = ("accuracy", "evidence", "logic", "practicality")


@dataclass
class ModelConfig:
    name: str
    sdk: str
    model: str             # default model when a plan has no entry for this provider
    api_key_env: str
    max_tokens: int
    display_name: str = ""
    base_url: str | None = None
    strengths: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.display_name:
            self.display_name = self.name.title()


@dataclass
class PersonaDirectives:
    level: dict[str, str] = field(default_factory=dict)
    tone: dict[str, str] = field(default_factory=dict)
    length: dict[str, str] = field(default_factory=dict)


@dataclass
class PromptsConfig:
    system: str
    phases: dict[str, str]         # keyed by RoundPhase value
    fast: str
    classification: str
    judge: str
    persona: PersonaDirectives = field(default_factory=PersonaDirectives)
    domains: dict[str, str] = field(default_factory=dict)


@dataclass
class RubricConfig:
    weights: dict[str, float] = field(
        default_factory=lambda: {c: 25.0 for c in RUBRIC_CRITERIA}
    )
    fallback_score: int = 70

    def normalized_weights(self) -> dict[str, float]:
        """Return weights scaled so they sum to 100."""
        total = sum(self.weights.get(c, 0.0) for c in RUBRIC_CRITERIA)
        if total <= 0:
            return {c: 100.0 / len(RUBRIC_CRITERIA) for c in RUBRIC_CRITERIA}
        return {c: self.weights.get(c, 0.0) * 100.0 / total for c in RUBRIC_CRITERIA}


@dataclass
class DefaultsConfig:
    output_dir: Path
    classifier: str = "openai"
    judge: str = "openai"
    fast_provider: str = "gemini"
    phase_timeout_sec: float = 30.0
    max_retries: int = 2
    backoff_base_sec: float = 1.0
    fast_path_timeout_sec: float = 15.0
    classifier_timeout_sec: float = 20.0
    judge_timeout_sec: float = 30.0
    source_timeout_sec: float = 5.0
    source_max_concurrency: int = 8
    min_query_chars: int = 1
    max_query_chars: int = 2000
    inbox_dir: Path = Path("./inbox")
    archive_dir: Path = Path("./inbox/archive")


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelConfig]
    prompts: PromptsConfig
    model_plans: dict[str, dict[str, str]] = field(default_factory=dict)
    rubric: RubricConfig = field(default_factory=RubricConfig)
    available_providers: set[str] = field(default_factory=set)


def _load_defaults(raw: dict) -> DefaultsConfig:
    return DefaultsConfig(
        output_dir=Path(raw["output_dir"]),
        classifier=str(raw.get("classifier", "openai")),
        judge=str(raw.get("judge", "openai")),
        fast_provider=str(raw.get("fast_provider", "gemini")),
        phase_timeout_sec=float(raw.get("phase_timeout_sec", 30)),
        max_retries=int(raw.get("max_retries", 2)),
        backoff_base_sec=float(raw.get("backoff_base_sec", 1.0)),
        fast_path_timeout_sec=float(raw.get("fast_path_timeout_sec", 15)),
        classifier_timeout_sec=float(raw.get("classifier_timeout_sec", 20)),
        judge_timeout_sec=float(raw.get("judge_timeout_sec", 30)),
        source_timeout_sec=float(raw.get("source_timeout_sec", 5)),
        source_max_concurrency=int(raw.get("source_max_concurrency", 8)),
        min_query_chars=int(raw.get("min_query_chars", 1)),
        max_query_chars=int(raw.get("max_query_chars", 2000)),
        inbox_dir=Path(raw.get("inbox_dir", "./inbox")),
        archive_dir=Path(raw.get("archive_dir", "./inbox/archive")),
    )


def _load_prompts(raw: dict) -> PromptsConfig:
    persona_raw = raw.get("persona", {})
    return PromptsConfig(
        system=raw["system"],
        phases={k: str(v) for k, v in raw["phases"].items()},
        fast=raw["fast"],
        classification=raw["classification"],
        judge=raw["judge"],
        persona=PersonaDirectives(
            level={k: str(v) for k, v in persona_raw.get("level", {}).items()},
            tone={k: str(v) for k, v in persona_raw.get("tone", {}).items()},
            length={k: str(v) for k, v in persona_raw.get("length", {}).items()},
        ),
        domains={k: str(v) for k, v in raw.get("domains", {}).items()},
    )


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing.
    Logs missing API keys but does not raise. A provider without a key is
    simply left out of available_providers.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults = _load_defaults(raw["defaults"])
    prompts = _load_prompts(raw["prompts"])

    rubric_raw = raw.get("rubric", {})
    rubric = RubricConfig(
        weights={k: float(v) for k, v in rubric_raw.get("weights", {}).items()} or RubricConfig().weights,
        fallback_score=int(rubric_raw.get("fallback_score", 70)),
    )

    model_plans = {
        tier: {str(p): str(m) for p, m in plan.items()}
        for tier, plan in raw.get("model_plans", {}).items()
    }

    models: dict[str, ModelConfig] = {}
    available_providers: set[str] = set()

    for provider_name, model_raw in raw["models"].items():
        model_cfg = ModelConfig(
            name=provider_name,
            sdk=model_raw["sdk"],
            model=model_raw["model"],
            api_key_env=model_raw["api_key_env"],
            max_tokens=int(model_raw["max_tokens"]),
            display_name=str(model_raw.get("display_name", "")),
            base_url=model_raw.get("base_url"),
            strengths=list(model_raw.get("strengths", [])),
        )
        models[provider_name] = model_cfg

        api_key = os.environ.get(model_raw["api_key_env"], "").strip()
        if api_key:
            available_providers.add(provider_name)
            logger.info("Provider available: %s", provider_name)
        else:
            logger.info(
                "Provider skipped (no API key): %s — set %s in .env",
                provider_name,
                model_raw["api_key_env"],
            )

    return AppConfig(
        defaults=defaults,
        models=models,
        prompts=prompts,
        model_plans=model_plans,
        rubric=rubric,
        available_providers=available_providers,
    )
