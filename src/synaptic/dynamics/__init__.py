"""Heat, learning and consolidation dynamics for the Synaptic Context Engine."""

from synaptic.dynamics.consolidation import (
    CoActivationTracker,
    ConsolidationReport,
    consolidate,
    strong_cliques,
)
from synaptic.dynamics.heat import boost_heat, decay_salience, diffuse_heat, suppress_heat
from synaptic.dynamics.hebbian import WeightChange, reinforce
from synaptic.dynamics.phases import PHASE_PROFILES, CognitivePhase, PhaseProfile, phase_profile

__all__ = [
    "diffuse_heat",
    "boost_heat",
    "suppress_heat",
    "decay_salience",
    "reinforce",
    "WeightChange",
    "CoActivationTracker",
    "ConsolidationReport",
    "consolidate",
    "strong_cliques",
    "CognitivePhase",
    "PhaseProfile",
    "PHASE_PROFILES",
    "phase_profile",
]
