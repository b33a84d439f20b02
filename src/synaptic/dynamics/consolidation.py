"""
Structural consolidation: turning repeated co-activation into hyperedges.

Two sources feed consolidation:

1. Empirical: a tracker counts triangles among the strongest nodes of each
   pulse. Triangles seen often enough become `context` hyperedges, or boost the
   salience of the hyperedge that already covers them.
2. Structural: cliques of mutually strong association synapses (found with
   networkx) become `cluster` hyperedges when their members span at most two
   node types.

Consolidation only adds hyperedges and adjusts salience; it never removes
synapses.
"""

import itertools
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Sequence, Tuple

import networkx as nx

from synaptic.energy.activation import ActivatedNode
from synaptic.memory.graph import Graph, Hyperedge, HyperedgeType, RelationType, clamp

logger = logging.getLogger(__name__)

TRACK_TOP_K = 5
TRACK_MIN_ENERGY = 0.4
MIN_CO_ACTIVATIONS = 5
COUNT_RETENTION = 0.9
SALIENCE_BOOST = 0.1
CLIQUE_MIN_WEIGHT = 0.8
CLIQUE_MIN_SIZE = 3
CLIQUE_MAX_SIZE = 6
MAX_CLIQUE_TYPES = 2
MAX_LABEL_LENGTH = 50


class CoActivationTracker:
    """
    Counts how often triples of strongly active nodes fire together.

    Attributes:
        counts: Mapping of sorted node-id triple to (decayed) count
    """

    def __init__(self, top_k: int = TRACK_TOP_K, min_energy: float = TRACK_MIN_ENERGY):
        self.top_k = top_k
        self.min_energy = min_energy
        self.counts: Dict[Tuple[str, ...], float] = {}

    def track(self, activated: Sequence[ActivatedNode]) -> int:
        """
        Record the triangles formed by the top-k nodes above the energy floor.

        Returns:
            Number of triangles counted for this pulse
        """
        strong = [a for a in activated if a.energy > self.min_energy]
        strong.sort(key=lambda a: (-a.energy, a.node_id))
        top = sorted(a.node_id for a in strong[:self.top_k])

        triangles = list(itertools.combinations(top, 3))
        for triple in triangles:
            self.counts[triple] = self.counts.get(triple, 0.0) + 1.0
        return len(triangles)

    def frequent(self, min_count: float = MIN_CO_ACTIVATIONS) -> List[Tuple[str, ...]]:
        """Triples seen at least min_count times, in sorted order."""
        return sorted(t for t, c in self.counts.items() if c >= min_count)

    def decay(self, retention: float = COUNT_RETENTION):
        """Age all counts, forgetting triples that fall below one sighting."""
        self.counts = {t: c * retention for t, c in self.counts.items() if c * retention >= 1.0}

    def __len__(self):
        return len(self.counts)


@dataclass
class ConsolidationReport:
    """Summary of one consolidation pass."""
    created: int = 0
    boosted: int = 0
    nodes_consolidated: int = 0


def _covering_hyperedge(graph: Graph, members: Sequence[str]):
    wanted = set(members)
    for hyperedge in graph.hyperedges:
        if set(hyperedge.nodes) == wanted:
            return hyperedge
    return None


def _label(prefix: str, graph: Graph, members: Sequence[str]) -> str:
    labels = ", ".join(graph.nodes[m].label for m in members if m in graph.nodes)
    label = f"{prefix}: {labels}"
    return label if len(label) <= MAX_LABEL_LENGTH else label[:MAX_LABEL_LENGTH] + "..."


def strong_cliques(graph: Graph, min_weight: float = CLIQUE_MIN_WEIGHT,
                   min_size: int = CLIQUE_MIN_SIZE,
                   max_size: int = CLIQUE_MAX_SIZE) -> List[Tuple[str, ...]]:
    """
    Find cliques of nodes joined by strong association synapses in both directions.

    Archived nodes are excluded. Cliques larger than max_size are truncated to
    their max_size lexicographically smallest members.

    Returns:
        Sorted list of sorted member tuples
    """
    directed = graph.to_networkx(min_weight=min_weight, kinds=[RelationType.ASSOCIATION])
    directed.remove_nodes_from([n for n, attrs in directed.nodes(data=True) if attrs["archived"]])
    mutual = nx.Graph()
    mutual.add_edges_from((u, v) for u, v in directed.edges() if directed.has_edge(v, u))

    cliques = set()
    for clique in nx.find_cliques(mutual):
        if len(clique) >= min_size:
            cliques.add(tuple(sorted(clique)[:max_size]))
    return sorted(cliques)


def consolidate(graph: Graph, tracker: CoActivationTracker,
                id_factory: Callable[[], str]) -> ConsolidationReport:
    """
    Create or boost hyperedges from co-activation history and strong cliques.

    Args:
        graph: Graph to update in place
        tracker: Co-activation history (decayed as part of this pass)
        id_factory: Generator for new hyperedge ids

    Returns:
        ConsolidationReport with counts of created and boosted hyperedges
    """
    report = ConsolidationReport()

    for triple in tracker.frequent():
        if any(m not in graph.nodes for m in triple):
            continue
        existing = _covering_hyperedge(graph, triple)
        if existing is not None:
            existing.salience = clamp(existing.salience + SALIENCE_BOOST)
            report.boosted += 1
            continue
        graph.add_hyperedge(Hyperedge(
            id=id_factory(), nodes=triple, weight=1.0,
            label=_label("Context", graph, triple),
            kind=HyperedgeType.CONTEXT, salience=1.0,
        ))
        report.created += 1
        report.nodes_consolidated += len(triple)
    tracker.decay()

    claimed = set()
    for clique in strong_cliques(graph):
        if claimed.intersection(clique):
            continue
        if len({graph.nodes[m].type for m in clique}) > MAX_CLIQUE_TYPES:
            continue
        if _covering_hyperedge(graph, clique) is not None:
            continue
        graph.add_hyperedge(Hyperedge(
            id=id_factory(), nodes=clique, weight=0.8,
            label=_label("Cluster", graph, clique),
            kind=HyperedgeType.CLUSTER, salience=0.8,
        ))
        claimed.update(clique)
        report.created += 1
        report.nodes_consolidated += len(clique)

    if report.created or report.boosted:
        logger.info("Consolidation created %d hyperedges, boosted %d",
                    report.created, report.boosted)
    return report
