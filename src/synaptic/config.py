"""
Engine configuration.

All options are validated when the configuration is built, so an invalid
value fails fast at load time and never surfaces mid-pulse. Options can be
given as keyword arguments, as a mapping (snake_case or the camelCase names
used by UI presets), or through `SYNAPTIC_*` environment variables, optionally
loaded from a `.env` file.
"""

import logging
import math
import os
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional, Union

from dotenv import dotenv_values, find_dotenv, load_dotenv

from synaptic.dynamics.phases import CognitivePhase
from synaptic.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "SYNAPTIC_"

ALIASES = {
    "heatBias": "heat_bias",
    "mmrLambda": "mmr_lambda",
    "maxActivationDepth": "max_activation_depth",
    "energyBudget": "energy_budget",
    "globalEnergyBudget": "energy_budget",
    "enableSpreadingActivation": "enable_spreading_activation",
    "enableHebbian": "enable_hebbian",
    "enablePruning": "enable_pruning",
    "safeMode": "enable_contradiction_check",
    "enableHyperedges": "enable_hyperedges",
    "enableMemoryExpansion": "enable_memory_expansion",
    "enableConsolidation": "enable_consolidation",
    "consolidationInterval": "consolidation_interval",
    "learningRate": "learning_rate",
    "contextSize": "context_size",
    "cognitivePhase": "phase",
}

# name -> (low, high, low inclusive, high inclusive)
_RANGES = {
    "gamma": (0.0, 1.0, True, True),
    "theta": (0.0, 1.0, True, False),
    "heat_bias": (0.0, 1.0, True, True),
    "mmr_lambda": (0.0, 1.0, True, True),
    "learning_rate": (0.0, 1.0, False, True),
    "weight_decay": (0.0, 1.0, True, False),
    "cofiring_floor": (0.0, 1.0, True, False),
    "heat_decay_rate": (0.0, 1.0, False, False),
    "heat_floor": (0.0, 1.0, True, False),
    "activity_floor": (0.0, 1.0, True, False),
}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class EngineConfig:
    """
    Validated engine options.

    Attributes:
        gamma: Edge decay per hop, [0, 1]
        theta: Activation threshold, [0, 1)
        heat_bias: Blend weight of heat in biased energy, [0, 1]
        mmr_lambda: Relevance/diversity trade-off, [0, 1]
        max_activation_depth: Hop limit, integer >= 1
        energy_budget: Ceiling on total biased energy per pulse, > 0
        enable_spreading_activation: Propagate beyond the seeds
        enable_hebbian: Apply Hebbian learning after each pulse
        enable_pruning: Use MMR for context selection
        learning_rate: Hebbian eta, (0, 1]
        weight_decay: Relative decay for weak co-firing, [0, 1)
        cofiring_floor: Joint activation needed to reinforce, [0, 1)
        heat_decay_rate: Heat lost per pulse, (0, 1)
        heat_floor: Minimum heat kept by decay, [0, 1)
        activity_floor: Minimum energy for contradiction checks, [0, 1)
        context_size: Number of nodes selected as context, integer >= 1
        enable_contradiction_check: Pause pulses on conflicting memories
        enable_contradiction_heuristic: Use the lexical heuristic as well
        enable_hyperedges: Let energy flow through hyperedges
        enable_memory_expansion: Merge proposed memories into the graph
        enable_goal_seeding: Add goal nodes to every pulse's seeds
        enable_consolidation: Periodically build hyperedges
        consolidation_interval: Pulses between consolidations, integer >= 1
        phase: Cognitive phase scaling learning and decay (explore, inference, consolidate)
    """
    gamma: float = 0.9
    theta: float = 0.1
    heat_bias: float = 0.4
    mmr_lambda: float = 0.7
    max_activation_depth: int = 3
    energy_budget: float = 10.0
    enable_spreading_activation: bool = True
    enable_hebbian: bool = True
    enable_pruning: bool = True
    learning_rate: float = 0.15
    weight_decay: float = 0.02
    cofiring_floor: float = 0.05
    heat_decay_rate: float = 0.1
    heat_floor: float = 0.05
    activity_floor: float = 0.05
    context_size: int = 8
    enable_contradiction_check: bool = True
    enable_contradiction_heuristic: bool = True
    enable_hyperedges: bool = True
    enable_memory_expansion: bool = True
    enable_goal_seeding: bool = True
    enable_consolidation: bool = True
    consolidation_interval: int = 10
    phase: CognitivePhase = CognitivePhase.EXPLORE

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            kind = type(f.default)
            if kind is CognitivePhase:
                try:
                    object.__setattr__(self, f.name, CognitivePhase.parse(value))
                except ValueError:
                    choices = [p.value for p in CognitivePhase]
                    raise ConfigurationError(f"{f.name} must be one of {choices}, got {value!r}") from None
            elif kind is bool:
                if not isinstance(value, bool):
                    raise ConfigurationError(f"{f.name} must be a bool, got {value!r}")
            elif kind is int:
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ConfigurationError(f"{f.name} must be an integer, got {value!r}")
                if value < 1:
                    raise ConfigurationError(f"{f.name} must be >= 1, got {value}")
            else:
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise ConfigurationError(f"{f.name} must be a number, got {value!r}")
                if not math.isfinite(value):
                    raise ConfigurationError(f"{f.name} must be finite, got {value}")
                object.__setattr__(self, f.name, float(value))

        for name, (low, high, low_incl, high_incl) in _RANGES.items():
            value = getattr(self, name)
            above = value >= low if low_incl else value > low
            below = value <= high if high_incl else value < high
            if not (above and below):
                bounds = f"{'[' if low_incl else '('}{low}, {high}{']' if high_incl else ')'}"
                raise ConfigurationError(f"{name} must be in {bounds}, got {value}")

        if self.energy_budget <= 0:
            raise ConfigurationError(f"energy_budget must be > 0, got {self.energy_budget}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EngineConfig":
        """
        Build a configuration from a mapping.

        Keys may be field names or their camelCase aliases.

        Raises:
            ConfigurationError: On unknown keys, duplicated options or invalid values
        """
        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {}
        unknown = []
        for key, value in data.items():
            name = ALIASES.get(key, key)
            if name not in known:
                unknown.append(key)
                continue
            if name in values:
                raise ConfigurationError(f"Option {name} given more than once (via {key!r})")
            values[name] = value
        if unknown:
            raise ConfigurationError(f"Unknown configuration options: {sorted(unknown)}")
        return cls(**values)

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX, dotenv_path: Optional[str] = None,
                 environ: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        """
        Build a configuration from environment variables.

        A `.env` file is loaded first (without overriding variables already set)
        unless an explicit environ mapping is passed. Unknown prefixed variables
        are errors when they come from the `.env` file or the explicit mapping;
        in the process environment they are ignored, since other tools may share
        the prefix (SYNAPTIC_HOME and the like).

        Args:
            prefix: Variable prefix, e.g. SYNAPTIC_GAMMA=0.8
            dotenv_path: Optional path to a .env file (searched from the cwd if None)
            environ: Mapping to read instead of os.environ

        Raises:
            ConfigurationError: On unknown variables from a strict source or unparsable values
        """
        if environ is None:
            path = dotenv_path or find_dotenv(usecwd=True)
            strict = set()
            if path:
                strict = set(dotenv_values(path))
                load_dotenv(path)
            environ = os.environ
        else:
            strict = set(environ)

        defaults = {f.name: f.default for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, raw in environ.items():
            if not key.startswith(prefix):
                continue
            name = key[len(prefix):].lower()
            if name not in defaults:
                if key in strict:
                    raise ConfigurationError(f"Unknown configuration variable {key}")
                logger.debug("Ignoring unrelated environment variable %s", key)
                continue
            values[name] = _parse(name, raw, type(defaults[name]))

        if values:
            logger.debug("Loaded %d options from environment: %s", len(values), sorted(values))
        return cls(**values)

    def replace(self, **changes) -> "EngineConfig":
        """Validated copy with some options changed."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _parse(name: str, raw: str, kind: type):
    text = raw.strip()
    if kind is CognitivePhase:
        return text
    if kind is bool:
        if text.lower() in _TRUE:
            return True
        if text.lower() in _FALSE:
            return False
        raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")
    try:
        return int(text) if kind is int else float(text)
    except ValueError:
        raise ConfigurationError(f"{name} must be a {kind.__name__}, got {raw!r}") from None


def load_config(source: Union[None, EngineConfig, Mapping[str, Any]] = None) -> EngineConfig:
    """Normalise None, a mapping or an EngineConfig into an EngineConfig."""
    if source is None:
        return EngineConfig()
    if isinstance(source, EngineConfig):
        return source
    return EngineConfig.from_dict(source)
