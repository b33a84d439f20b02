"""
Cognitive phases.

A phase scales how much a completed pulse is allowed to change the graph:

    EXPLORE      normal learning, heat decays at the configured rate
    INFERENCE    read-mostly: no learning, no new structure, heat fades fast
    CONSOLIDATE  slow learning, strong heat decay, salience decays as usual
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

# Hebbian learning is skipped when plasticity is at or below this value
MIN_PLASTICITY = 0.01


class CognitivePhase(str, Enum):
    EXPLORE = "explore"
    INFERENCE = "inference"
    CONSOLIDATE = "consolidate"

    @classmethod
    def parse(cls, value) -> "CognitivePhase":
        """Parse a phase name case-insensitively; raises ValueError if unknown."""
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


@dataclass(frozen=True)
class PhaseProfile:
    """
    Learning profile of one phase.

    Attributes:
        heat_decay_rate: Heat lost per pulse (None keeps the configured rate)
        salience_retention: Hyperedge salience multiplier per pulse
        plasticity: Scale applied to the learning rate and salience gain
        structural_updates: Whether memories, relations and hyperedges may be added
    """
    heat_decay_rate: Optional[float]
    salience_retention: float
    plasticity: float
    structural_updates: bool

    @property
    def learns(self) -> bool:
        return self.plasticity > MIN_PLASTICITY

    def decay_rate(self, configured: float) -> float:
        return configured if self.heat_decay_rate is None else self.heat_decay_rate


PHASE_PROFILES = {
    CognitivePhase.EXPLORE: PhaseProfile(None, 0.999, 1.0, True),
    CognitivePhase.INFERENCE: PhaseProfile(0.3, 1.0, 0.0, False),
    CognitivePhase.CONSOLIDATE: PhaseProfile(0.5, 0.995, 0.2, True),
}


def phase_profile(phase) -> PhaseProfile:
    return PHASE_PROFILES[CognitivePhase.parse(phase)]
