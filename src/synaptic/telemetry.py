"""
Telemetry: scalar health metrics of the graph after a pulse.

Metrics:
- activation_pct: |activated| / |nodes|
- mean_heat ("arousal") and heat_variance
- heat_entropy H = −Σ pᵢ ln pᵢ with pᵢ = heatᵢ / Σ heat, and
  focus_score = 1 − H / ln N (ln 2 is used when N < 2)
- stability_score = 1 / (1 + 10 · variance(heat))
- mean/max absolute weight delta of the pulse's Hebbian updates ("plasticity")
- graph_density = |synapses| / |nodes|
- cognitive_health = 0.4 · focus + 0.4 · stability + 0.2 · arousal_balance,
  where arousal_balance = 1 − |2 · mean_heat − 1| penalises both a cold and a
  saturated graph. The blend is fixed.
"""

import time
from dataclasses import asdict, dataclass
from typing import Dict, Optional, Sequence

import numpy as np

from synaptic.dynamics.hebbian import WeightChange
from synaptic.energy.activation import ActivatedNode
from synaptic.memory.graph import Graph

HEALTH_FOCUS_WEIGHT = 0.4
HEALTH_STABILITY_WEIGHT = 0.4
HEALTH_AROUSAL_WEIGHT = 0.2
STABILITY_SENSITIVITY = 10.0
HYPEREDGE_ACTIVE_SHARE = 0.5


@dataclass(frozen=True)
class TelemetryPoint:
    """Read-only metrics snapshot for one pulse."""
    timestamp: float
    latency_ms: float
    node_count: int
    synapse_count: int
    hyperedge_count: int
    activation_pct: float
    global_energy: float
    mean_heat: float
    heat_variance: float
    heat_entropy: float
    focus_score: float
    stability_score: float
    mean_weight_delta: float
    max_weight_delta: float
    graph_density: float
    activation_depth_mean: float
    max_activation_depth: int
    hyperedge_activation_pct: float
    cognitive_health: float

    def to_dict(self) -> Dict:
        return asdict(self)


def heat_entropy(heats: np.ndarray) -> float:
    """Shannon entropy (natural log) of the normalised heat distribution."""
    total = heats.sum()
    if total <= 0:
        return 0.0
    p = heats[heats > 0] / total
    return float(-np.sum(p * np.log(p)))


def cognitive_health(focus: float, stability: float, mean_heat: float) -> float:
    """Fixed linear blend of focus, stability and arousal balance, in [0, 1]."""
    arousal_balance = 1.0 - abs(2.0 * mean_heat - 1.0)
    score = (HEALTH_FOCUS_WEIGHT * focus
             + HEALTH_STABILITY_WEIGHT * stability
             + HEALTH_AROUSAL_WEIGHT * arousal_balance)
    return float(np.clip(score, 0.0, 1.0))


def summarize(graph: Graph, activated: Sequence[ActivatedNode],
              weight_changes: Sequence[WeightChange] = (),
              latency_ms: float = 0.0,
              timestamp: Optional[float] = None) -> TelemetryPoint:
    """
    Derive telemetry from the graph and one pulse's outputs. Pure, read-only.

    Args:
        graph: Graph after the pulse
        activated: Activated nodes of the pulse
        weight_changes: Hebbian weight changes of the pulse
        latency_ms: Pulse latency in milliseconds
        timestamp: Wall-clock time of the point (now if None)

    Returns:
        TelemetryPoint
    """
    n = len(graph.nodes)
    heats = np.array([node.heat for node in graph.nodes.values()], dtype=float)

    mean_heat = float(heats.mean()) if n else 0.0
    variance = float(heats.var()) if n else 0.0
    entropy = heat_entropy(heats) if n else 0.0
    max_entropy = np.log(n if n > 1 else 2)
    focus = float(max(0.0, 1.0 - entropy / max_entropy))
    stability = 1.0 / (1.0 + STABILITY_SENSITIVITY * variance)

    deltas = np.abs(np.array([c.delta for c in weight_changes], dtype=float))
    depths = np.array([a.depth for a in activated], dtype=float)

    active_ids = {a.node_id for a in activated}
    active_hyperedges = sum(
        1 for h in graph.hyperedges
        if sum(1 for m in h.nodes if m in active_ids) >= HYPEREDGE_ACTIVE_SHARE * len(h.nodes)
    )

    return TelemetryPoint(
        timestamp=time.time() if timestamp is None else timestamp,
        latency_ms=float(latency_ms),
        node_count=n,
        synapse_count=len(graph.synapses),
        hyperedge_count=len(graph.hyperedges),
        activation_pct=len(active_ids) / n if n else 0.0,
        global_energy=float(heats.sum()),
        mean_heat=mean_heat,
        heat_variance=variance,
        heat_entropy=entropy,
        focus_score=focus,
        stability_score=stability,
        mean_weight_delta=float(deltas.mean()) if deltas.size else 0.0,
        max_weight_delta=float(deltas.max()) if deltas.size else 0.0,
        graph_density=graph.density,
        activation_depth_mean=float(depths.mean()) if depths.size else 0.0,
        max_activation_depth=int(depths.max()) if depths.size else 0,
        hyperedge_activation_pct=active_hyperedges / len(graph.hyperedges) if graph.hyperedges else 0.0,
        cognitive_health=cognitive_health(focus, stability, mean_heat),
    )
