"""
Hebbian learning: fire together, wire together.

For every unordered pair (i, j) of activated nodes the joint activation is the
product of their energies, J = E(i) · E(j), so a pair only counts when both
nodes fire. Existing synapses between the pair are updated with a bounded rule

    w ← clamp(w + η · J · (1 − w), 0, 1)        if J > cofiring_floor
    w ← w · (1 − weight_decay)                   otherwise

so barely-active co-occurrence slowly weakens a link instead of saturating the
graph. Pairs with no link at all get a new association in each direction with
seed weight η · J.
"""

import itertools
import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence

from synaptic.energy.activation import ActivatedNode
from synaptic.memory.graph import Graph, RelationType, Synapse, clamp

logger = logging.getLogger(__name__)

DEFAULT_COFIRING_FLOOR = 0.05
DEFAULT_WEIGHT_DECAY = 0.02


@dataclass(frozen=True)
class WeightChange:
    """A single applied weight update, kept for plasticity telemetry."""
    source: str
    target: str
    old_weight: float
    new_weight: float
    created: bool = False

    @property
    def delta(self) -> float:
        return self.new_weight - self.old_weight


def reinforce(graph: Graph, activated: Sequence[ActivatedNode], eta: float,
              enabled: bool = True,
              cofiring_floor: float = DEFAULT_COFIRING_FLOOR,
              weight_decay: float = DEFAULT_WEIGHT_DECAY) -> List[WeightChange]:
    """
    Reinforce or decay synapses between co-activated nodes, in place.

    Contradiction synapses are never re-weighted, but a pair linked only by a
    contradiction does not get a new association either.

    Args:
        graph: Graph to update
        activated: Activated nodes of the pulse (raw energy is used)
        eta: Learning rate in (0, 1]
        enabled: When False this is a no-op
        cofiring_floor: Joint activation at or below which links decay
        weight_decay: Relative decay applied below the floor

    Returns:
        List of applied weight changes (created synapses have old_weight 0.0)

    Raises:
        ValueError: If eta or weight_decay is out of range
    """
    if not enabled:
        return []
    if not 0.0 < eta <= 1.0:
        raise ValueError(f"eta must be in (0, 1], got {eta}")
    if not 0.0 <= weight_decay < 1.0:
        raise ValueError(f"weight_decay must be in [0, 1), got {weight_decay}")

    energies: Dict[str, float] = {}
    for item in activated:
        if item.node_id in graph.nodes and item.node_id not in energies:
            energies[item.node_id] = item.energy

    changes: List[WeightChange] = []
    pending: List[Synapse] = []

    for a, b in itertools.combinations(energies, 2):
        joint = energies[a] * energies[b]
        linked = graph.synapses_between(a, b)

        if linked:
            for synapse in linked:
                if synapse.kind == RelationType.CONTRADICTION:
                    continue
                old = synapse.weight
                if joint > cofiring_floor:
                    synapse.weight = clamp(old + eta * joint * (1.0 - old))
                    synapse.co_activations += 1
                else:
                    synapse.weight = clamp(old * (1.0 - weight_decay))
                changes.append(WeightChange(synapse.source, synapse.target, old, synapse.weight))
        elif joint > cofiring_floor:
            seed_weight = clamp(eta * joint)
            pending.append(Synapse(a, b, seed_weight, 1, RelationType.ASSOCIATION))
            pending.append(Synapse(b, a, seed_weight, 1, RelationType.ASSOCIATION))

    for synapse in pending:
        graph.add_synapse(synapse)
        changes.append(WeightChange(synapse.source, synapse.target, 0.0, synapse.weight, created=True))

    logger.debug("Hebbian update over %d nodes: %d changes (%d new synapses)",
                 len(energies), len(changes), len(pending))
    return changes
