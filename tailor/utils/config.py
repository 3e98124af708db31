"""
Configuration for TAILOR runs.

Configuration is layered with OmegaConf, later layers overriding earlier ones:

    built-in defaults < YAML file < environment variables < explicit overrides

The YAML file is either passed explicitly or named by TAILOR_CONFIG_PATH.
Environment variables (a .env file is honoured) map onto config keys via
ENV_VAR_KEYS. Overrides may be a nested dict or an OmegaConf dotlist such as
["optimization.target_score=0.9"].

Example:
    >>> config = load_config(overrides=["optimization.max_iterations=5"])
    >>> config.optimization.max_iterations
    5
"""

import os
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from dotenv import load_dotenv
from omegaconf import OmegaConf

from tailor.utils.errors import TailorError

load_dotenv()

DIMENSIONS = ("keywords", "skills", "attributes", "experience", "level")
WEIGHT_TOLERANCE = 0.01

ENV_VAR_KEYS = {
    "TAILOR_TARGET_SCORE": "optimization.target_score",
    "TAILOR_MAX_ITERATIONS": "optimization.max_iterations",
    "TAILOR_EARLY_STOPPING_ROUNDS": "optimization.early_stopping_rounds",
    "TAILOR_MIN_IMPROVEMENT": "optimization.min_improvement",
    "TAILOR_WEIGHT_KEYWORDS": "scoring.dimension_weights.keywords",
    "TAILOR_WEIGHT_SKILLS": "scoring.dimension_weights.skills",
    "TAILOR_WEIGHT_ATTRIBUTES": "scoring.dimension_weights.attributes",
    "TAILOR_WEIGHT_EXPERIENCE": "scoring.dimension_weights.experience",
    "TAILOR_WEIGHT_LEVEL": "scoring.dimension_weights.level",
    "TAILOR_LOGGING_ENABLED": "logging.enabled",
    "TAILOR_MAX_LOG_ENTRIES": "logging.max_entries",
    "LLM_PROVIDER": "llm.provider",
    "LLM_MODEL": "llm.model",
}


@dataclass(frozen=True)
class DimensionWeights:
    """Relative weight of each scoring dimension. Must sum to 1.0."""

    keywords: float = 0.20
    skills: float = 0.35
    attributes: float = 0.20
    experience: float = 0.15
    level: float = 0.10

    def as_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in DIMENSIONS}

    def total(self) -> float:
        return sum(self.as_dict().values())

    def redistribute(self, failed_dimension: str) -> "DimensionWeights":
        """
        Zero out a failed dimension and spread its weight over the others.

        Every surviving dimension d gets weight[d] / (1 - failed_weight), so the
        weights still sum to 1.0. If the failed dimension held all the weight
        there is nothing to redistribute onto and the weights are returned
        unchanged.

        Args:
            failed_dimension: One of DIMENSIONS

        Returns:
            New DimensionWeights instance

        Raises:
            ValueError: If failed_dimension is not a known dimension
        """
        if failed_dimension not in DIMENSIONS:
            raise ValueError(f"Unknown dimension: {failed_dimension}")

        weights = self.as_dict()
        failed_weight = weights[failed_dimension]
        remaining = 1.0 - failed_weight
        if remaining <= 0:
            return self

        new_weights = {
            name: 0.0 if name == failed_dimension else weight / remaining
            for name, weight in weights.items()
        }
        return DimensionWeights(**new_weights)


@dataclass(frozen=True)
class ScoringConfig:
    """Scoring settings. Weights are validated on construction."""

    dimension_weights: DimensionWeights = field(default_factory=DimensionWeights)

    def __post_init__(self):
        validate_weights(self.dimension_weights)


@dataclass(frozen=True)
class OptimizationConfig:
    """Termination settings for one optimization run. Immutable for the run's lifetime."""

    target_score: float = 0.8
    max_iterations: int = 10
    early_stopping_rounds: int = 2
    min_improvement: float = 0.01


@dataclass
class EventLogConfig:
    enabled: bool = True
    max_entries: int = 5000


@dataclass
class LLMConfig:
    provider: str = "openai"
    model: Optional[str] = None


@dataclass
class TailorConfig:
    """Aggregate configuration for the whole engine."""

    optimization: OptimizationConfig = field(default_factory=OptimizationConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    logging: EventLogConfig = field(default_factory=EventLogConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TailorConfig":
        """Build from a nested plain dict (as produced by OmegaConf.to_container)."""
        scoring = data.get("scoring", {})
        return cls(
            optimization=OptimizationConfig(**data.get("optimization", {})),
            scoring=ScoringConfig(
                dimension_weights=DimensionWeights(**scoring.get("dimension_weights", {}))
            ),
            logging=EventLogConfig(**data.get("logging", {})),
            llm=LLMConfig(**data.get("llm", {})),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# =============================================================================
# LOADING
# =============================================================================


def _env_dotlist() -> List[str]:
    """Collect config overrides from environment variables as an OmegaConf dotlist."""
    dotlist = []
    for env_var, key in ENV_VAR_KEYS.items():
        value = os.getenv(env_var)
        if value is not None and value != "":
            dotlist.append(f"{key}={value}")
    return dotlist


def load_config(
    config_path: Optional[Path] = None,
    overrides: Optional[Union[Dict[str, Any], List[str]]] = None,
) -> TailorConfig:
    """
    Load and validate TAILOR configuration.

    Args:
        config_path: YAML file to load (default: TAILOR_CONFIG_PATH env var, if set)
        overrides: Nested dict or dotlist applied last

    Returns:
        Validated TailorConfig

    Raises:
        FileNotFoundError: If the config file does not exist
        TailorError: If the merged configuration is invalid
    """
    layers = [OmegaConf.create(TailorConfig().to_dict())]

    if config_path is None and os.getenv("TAILOR_CONFIG_PATH"):
        config_path = Path(os.getenv("TAILOR_CONFIG_PATH"))
    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        layers.append(OmegaConf.load(config_path))

    env_dotlist = _env_dotlist()
    if env_dotlist:
        layers.append(OmegaConf.from_dotlist(env_dotlist))

    if overrides:
        if isinstance(overrides, dict):
            layers.append(OmegaConf.create(overrides))
        else:
            layers.append(OmegaConf.from_dotlist(list(overrides)))

    merged = OmegaConf.to_container(OmegaConf.merge(*layers), resolve=True)
    try:
        config = TailorConfig.from_dict(merged)
    except TypeError as e:
        raise TailorError.configuration_error("config", str(e)) from e

    validate_config(config)
    return config


# =============================================================================
# VALIDATION
# =============================================================================


def validate_optimization_config(config: OptimizationConfig) -> None:
    """Raise TailorError if any termination setting is out of range."""
    if not 0 <= config.target_score <= 1:
        raise TailorError.configuration_error(
            "target_score", f"must be between 0 and 1, got {config.target_score}"
        )
    if config.max_iterations < 1:
        raise TailorError.configuration_error(
            "max_iterations", f"must be at least 1, got {config.max_iterations}"
        )
    if config.early_stopping_rounds < 1:
        raise TailorError.configuration_error(
            "early_stopping_rounds", f"must be at least 1, got {config.early_stopping_rounds}"
        )
    if config.min_improvement < 0:
        raise TailorError.configuration_error(
            "min_improvement", f"must be non-negative, got {config.min_improvement}"
        )


def validate_weights(weights: DimensionWeights) -> None:
    """Raise TailorError unless all weights are non-negative and sum to 1.0."""
    for name, weight in weights.as_dict().items():
        if weight < 0:
            raise TailorError.configuration_error(
                f"dimension_weights.{name}", f"must be non-negative, got {weight}"
            )
    total = weights.total()
    if abs(total - 1.0) > WEIGHT_TOLERANCE:
        raise TailorError.configuration_error(
            "dimension_weights", f"must sum to 1.0, got {total:.3f}"
        )


def validate_config(config: TailorConfig) -> None:
    """Validate every section of a TailorConfig."""
    validate_optimization_config(config.optimization)
    validate_weights(config.scoring.dimension_weights)
    if config.logging.max_entries < 1:
        raise TailorError.configuration_error(
            "logging.max_entries", f"must be at least 1, got {config.logging.max_entries}"
        )


def update_optimization_config(config: OptimizationConfig, **changes) -> OptimizationConfig:
    """Return a validated copy of config with changes applied."""
    updated = replace(config, **changes)
    validate_optimization_config(updated)
    return updated
