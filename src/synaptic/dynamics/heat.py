"""
Heat dynamics: per-node recency between pulses.

Heat decays geometrically once per completed pulse,

    heat ← max(floor, heat · (1 − decay_rate))

with the floor preventing total forgetting. A node already below the floor
(for example one suppressed after a contradiction) is never raised by decay.
Boosting the most recently activated nodes toward 1.0 is sequenced by the
pulse orchestrator before decay runs.
"""

import logging
from typing import Iterable, Optional

from synaptic.memory.graph import Graph, clamp

logger = logging.getLogger(__name__)

DEFAULT_HEAT_FLOOR = 0.05
SALIENCE_RETENTION = 0.995


def diffuse_heat(graph: Graph, decay_rate: float, floor: float = DEFAULT_HEAT_FLOOR):
    """
    Decay every node's heat in place.

    Args:
        graph: Graph whose nodes are decayed
        decay_rate: Fraction of heat lost per pulse, in (0, 1)
        floor: Minimum heat kept by decay

    Raises:
        ValueError: If decay_rate is outside (0, 1) or floor outside [0, 1)
    """
    if not 0.0 < decay_rate < 1.0:
        raise ValueError(f"decay_rate must be in (0, 1), got {decay_rate}")
    if not 0.0 <= floor < 1.0:
        raise ValueError(f"floor must be in [0, 1), got {floor}")

    retention = 1.0 - decay_rate
    for node in graph.nodes.values():
        decayed = node.heat * retention
        node.heat = clamp(decayed if decayed >= floor else min(node.heat, floor))


def boost_heat(graph: Graph, node_ids: Iterable[str], amount: float = 1.0,
               timestamp: Optional[float] = None) -> int:
    """
    Move heat of the given nodes toward 1.0: heat ← heat + amount · (1 − heat).

    Args:
        graph: Graph to update
        node_ids: Nodes to boost; ids missing from the graph are ignored
        amount: Fraction of the remaining headroom to add, in [0, 1]
        timestamp: If given, recorded as each node's last_accessed

    Returns:
        Number of nodes boosted
    """
    amount = clamp(amount)
    boosted = 0
    for node_id in dict.fromkeys(node_ids):
        node = graph.nodes.get(node_id)
        if node is None:
            continue
        node.heat = clamp(node.heat + amount * (1.0 - node.heat))
        if timestamp is not None:
            node.last_accessed = timestamp
        boosted += 1
    return boosted


def suppress_heat(graph: Graph, node_id: str, level: float = DEFAULT_HEAT_FLOOR) -> bool:
    """
    Push a node's heat down to at most `level` (losing side of a contradiction).

    Returns:
        True if the node exists and was updated
    """
    node = graph.nodes.get(node_id)
    if node is None:
        logger.debug("Cannot suppress missing node %s", node_id)
        return False
    node.heat = clamp(min(node.heat, level))
    return True


def decay_salience(graph: Graph, retention: float = SALIENCE_RETENTION):
    """Slowly decay hyperedge salience (long-term importance of clusters)."""
    for hyperedge in graph.hyperedges:
        hyperedge.salience = clamp(hyperedge.salience * retention)
