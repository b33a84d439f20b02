"""
Spreading activation over the memory graph.

Energy starts at 1.0 on every seed and flows outward along directed synapses
for at most `max_depth` hops. For an edge u→v with weight w:

    p = E(u) · w · γ
    E(v) = (p − θ) / (1 + (p − θ))     if p ≥ θ, otherwise the edge does not fire

The squash keeps activation in [0, 1) and grows more conservative with
overshoot, so dense hubs cannot amplify without bound. A node reached through
several paths keeps the single strongest one (max, not sum), and a path never
revisits a node already in its own prefix.

After traversal each node's energy is blended with its heat:

    biased = E · ((1 − heat_bias) + heat_bias · heat)

and, if the biased total exceeds the energy budget, every energy is rescaled
uniformly to fit.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from synaptic.memory.graph import Graph

logger = logging.getLogger(__name__)

# Hyperedges fire once at least this many members carry more than the floor energy
HYPEREDGE_MIN_ACTIVE = 3
HYPEREDGE_MEMBER_FLOOR = 0.1


@dataclass(frozen=True)
class ActivatedNode:
    """
    Read-only snapshot of one node's activation in a pulse.

    Attributes:
        node_id: Activated node id
        energy: Raw activation energy
        heat: Node heat at activation time
        biased_energy: Energy blended with heat
        depth: Hops from the nearest seed along the kept path
        path: Node ids from the seed to this node (inclusive)
    """
    node_id: str
    energy: float
    heat: float
    biased_energy: float
    depth: int
    path: Tuple[str, ...]


@dataclass(frozen=True)
class ActivationParams:
    """Numeric parameters for one activation run."""
    gamma: float = 0.9
    theta: float = 0.1
    max_depth: int = 3
    heat_bias: float = 0.4
    energy_budget: float = 10.0
    enabled: bool = True
    use_hyperedges: bool = True

    def __post_init__(self):
        if not 0.0 <= self.gamma <= 1.0:
            raise ValueError(f"gamma must be in [0, 1], got {self.gamma}")
        if not 0.0 <= self.theta < 1.0:
            raise ValueError(f"theta must be in [0, 1), got {self.theta}")
        if not 0.0 <= self.heat_bias <= 1.0:
            raise ValueError(f"heat_bias must be in [0, 1], got {self.heat_bias}")
        if isinstance(self.max_depth, bool) or not isinstance(self.max_depth, int) or self.max_depth < 1:
            raise ValueError(f"max_depth must be an integer >= 1, got {self.max_depth!r}")
        if not np.isfinite(self.energy_budget) or self.energy_budget <= 0:
            raise ValueError(f"energy_budget must be finite and > 0, got {self.energy_budget}")

    @classmethod
    def from_config(cls, config) -> "ActivationParams":
        """Build parameters from a validated EngineConfig."""
        return cls(
            gamma=config.gamma,
            theta=config.theta,
            max_depth=config.max_activation_depth,
            heat_bias=config.heat_bias,
            energy_budget=config.energy_budget,
            enabled=config.enable_spreading_activation,
            use_hyperedges=config.enable_hyperedges,
        )


@dataclass
class ActivationTrace:
    """
    Full result of an activation run.

    Attributes:
        nodes: Activated nodes sorted by biased energy (desc), depth, id
        dropped_seeds: Seeds that were missing from the graph or archived
        dangling: (source, target) of synapses skipped for missing endpoints
        fired_hyperedges: Hyperedge id -> mean member energy when it fired
        scale: Uniform rescale factor applied by the energy budget (1.0 if none)
    """
    nodes: List[ActivatedNode] = field(default_factory=list)
    dropped_seeds: List[str] = field(default_factory=list)
    dangling: List[Tuple[str, str]] = field(default_factory=list)
    fired_hyperedges: Dict[str, float] = field(default_factory=dict)
    scale: float = 1.0


@dataclass(frozen=True)
class _Reach:
    node: str
    energy: float
    depth: int
    path: Tuple[str, ...]


def fire(propagated: float, theta: float) -> Optional[float]:
    """
    Threshold and squash a propagated signal.

    Args:
        propagated: Incoming signal E(u) · w · γ
        theta: Firing threshold

    Returns:
        Activated energy in [0, 1), or None if the signal is below threshold
    """
    if propagated < theta:
        return None
    overshoot = propagated - theta
    return overshoot / (1.0 + overshoot)


def _beats(candidate: _Reach, current: Optional[_Reach]) -> bool:
    """Max energy wins; ties go to the shallower, then lexicographically smaller path."""
    if current is None:
        return True
    return ((-candidate.energy, candidate.depth, candidate.path)
            < (-current.energy, current.depth, current.path))


def _dominated(candidate: _Reach, expanded: List[Tuple[int, float]]) -> bool:
    """A state is not worth expanding if one as strong and no deeper was already expanded."""
    return any(depth <= candidate.depth and energy >= candidate.energy for depth, energy in expanded)


def _valid_seeds(graph: Graph, seeds: Iterable[str]) -> Tuple[List[str], List[str]]:
    valid, dropped = [], []
    for seed in sorted(set(seeds)):
        node = graph.nodes.get(seed)
        if node is None or node.archived:
            dropped.append(seed)
        else:
            valid.append(seed)
    return valid, dropped


def _traverse(graph: Graph, seeds: List[str], params: ActivationParams,
              skipped: set) -> Dict[str, _Reach]:
    best: Dict[str, _Reach] = {}
    expanded: Dict[str, List[Tuple[int, float]]] = {}
    frontier: List[_Reach] = []

    for seed in seeds:
        reach = _Reach(seed, 1.0, 0, (seed,))
        best[seed] = reach
        expanded[seed] = [(0, 1.0)]
        frontier.append(reach)

    for depth in range(1, params.max_depth + 1):
        next_frontier: List[_Reach] = []

        for state in frontier:
            for synapse in sorted(graph.out_edges(state.node), key=lambda s: s.target):
                if synapse.key in skipped:
                    continue
                target = synapse.target
                if target in state.path:
                    continue

                energy = fire(state.energy * synapse.weight * params.gamma, params.theta)
                if energy is None:
                    continue

                candidate = _Reach(target, energy, depth, state.path + (target,))
                if _beats(candidate, best.get(target)):
                    best[target] = candidate
                if _dominated(candidate, expanded.setdefault(target, [])):
                    continue
                expanded[target].append((depth, energy))
                next_frontier.append(candidate)

        if not next_frontier:
            break
        frontier = next_frontier

    return best


def _flow_hyperedges(graph: Graph, best: Dict[str, _Reach], params: ActivationParams,
                     fired: Dict[str, float]):
    reached = dict(best)

    for hyperedge in sorted(graph.hyperedges, key=lambda h: h.id):
        active = [m for m in hyperedge.nodes
                  if m in reached and reached[m].energy > HYPEREDGE_MEMBER_FLOOR]
        if len(active) < HYPEREDGE_MIN_ACTIVE:
            continue

        mean_energy = float(np.mean([reached[m].energy for m in active]))
        fired[hyperedge.id] = mean_energy

        output = mean_energy * hyperedge.weight * params.gamma * hyperedge.salience
        energy = fire(output, params.theta)
        if energy is None:
            continue

        anchor = min((reached[m] for m in active), key=lambda r: (-r.energy, r.depth, r.node))
        depth = anchor.depth + 1
        if depth > params.max_depth:
            continue

        for member in hyperedge.nodes:
            if member not in graph.nodes or member in anchor.path:
                continue
            candidate = _Reach(member, energy, depth, anchor.path + (member,))
            if _beats(candidate, best.get(member)):
                best[member] = candidate


def spread_activation(graph: Graph, seeds: Iterable[str],
                      params: Optional[ActivationParams] = None) -> ActivationTrace:
    """
    Propagate energy from seed nodes and return the full activation trace.

    The graph is only read. Seeds missing from the graph or archived are dropped
    silently; synapses with a missing endpoint are skipped and reported.

    Args:
        graph: Graph to traverse
        seeds: Seed node ids
        params: Activation parameters (defaults if None)

    Returns:
        ActivationTrace with the sorted activated nodes and diagnostics
    """
    params = params or ActivationParams()
    trace = ActivationTrace()

    valid, trace.dropped_seeds = _valid_seeds(graph, seeds)
    if trace.dropped_seeds:
        logger.debug("Dropped %d invalid seeds: %s", len(trace.dropped_seeds), trace.dropped_seeds)
    if not valid:
        return trace

    skipped = set()
    for synapse in graph.dangling_synapses():
        if synapse.key not in skipped:
            skipped.add(synapse.key)
            trace.dangling.append(synapse.key)
            logger.warning("Skipping dangling synapse %s->%s", synapse.source, synapse.target)

    if params.enabled:
        best = _traverse(graph, valid, params, skipped)
        if params.use_hyperedges and graph.hyperedges:
            _flow_hyperedges(graph, best, params, trace.fired_hyperedges)
    else:
        best = {seed: _Reach(seed, 1.0, 0, (seed,)) for seed in valid}

    activated = []
    for node_id, reach in best.items():
        heat = graph.nodes[node_id].heat
        blend = (1.0 - params.heat_bias) + params.heat_bias * heat
        activated.append(ActivatedNode(node_id, reach.energy, heat, reach.energy * blend,
                                       reach.depth, reach.path))

    total = sum(a.biased_energy for a in activated)
    if total > params.energy_budget:
        trace.scale = params.energy_budget / total
        activated = [
            ActivatedNode(a.node_id, a.energy * trace.scale, a.heat, a.biased_energy * trace.scale,
                          a.depth, a.path)
            for a in activated
        ]
        logger.debug("Energy budget exceeded (%.4f > %.4f), rescaled by %.4f",
                     total, params.energy_budget, trace.scale)

    activated.sort(key=lambda a: (-a.biased_energy, a.depth, a.node_id))
    trace.nodes = activated
    return trace


def activate(graph: Graph, seeds: Iterable[str],
             params: Optional[ActivationParams] = None) -> List[ActivatedNode]:
    """
    Spreading activation returning only the ordered activated nodes.

    Args:
        graph: Graph to traverse
        seeds: Seed node ids
        params: Activation parameters

    Returns:
        Activated nodes sorted by biased energy (desc), then depth, then id
    """
    return spread_activation(graph, seeds, params).nodes
