"""
Explicit relation ingestion.

The synthesis step may report relations it found between memories ("alice owns
the budget", "the deadline contradicts the delay"). Each one either
strengthens an existing link or creates a single new directed synapse of the
reported kind. Low-confidence relations are dropped, and relations between
nodes that are structurally far apart are refused so that one answer cannot
wire distant regions of the graph together.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Union

import networkx as nx

from synaptic.memory.graph import Graph, RelationType, Synapse, clamp, sanitize_id

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 0.7
MAX_NEW_LINKS = 20
MAX_DISTANCE = 3
STRENGTHEN_GAIN = 0.2
NEW_LINK_WEIGHT = 0.3


@dataclass
class ProposedRelation:
    """
    A relation reported by the synthesis step.

    Attributes:
        source: Source node id or label
        target: Target node id or label
        kind: Relation kind (unknown kinds become associations)
        confidence: Reported confidence in [0, 1]
        context: Text the relation was extracted from
    """
    source: str
    target: str
    kind: Union[RelationType, str] = RelationType.ASSOCIATION
    confidence: float = 1.0
    context: str = ""

    def __post_init__(self):
        self.confidence = clamp(self.confidence)
        kind = RelationType.parse(self.kind)
        self.kind = RelationType.ASSOCIATION if kind == RelationType.UNKNOWN else kind

    @classmethod
    def from_dict(cls, data: Mapping) -> "ProposedRelation":
        return cls(
            source=data.get("source", ""),
            target=data.get("target", ""),
            kind=data.get("type", data.get("kind", RelationType.ASSOCIATION)),
            confidence=data.get("confidence", 1.0),
            context=data.get("context", ""),
        )


@dataclass(frozen=True)
class RelationOutcome:
    """What happened to one proposed relation."""
    source: str
    target: str
    status: str


def _resolve(graph: Graph, ref: str, labels: Mapping[str, str]) -> Optional[str]:
    if not ref:
        return None
    if ref in graph.nodes:
        return ref
    cleaned = sanitize_id(ref)
    if cleaned in graph.nodes:
        return cleaned
    return labels.get(ref.lower().strip())


def within_distance(graph: Graph, a: str, b: str, max_distance: int = MAX_DISTANCE) -> bool:
    """
    True if a and b may be linked directly.

    A node without any synapse can link anywhere. Otherwise the two nodes must
    already be connected (in either direction) by a path of at most
    `max_distance` hops.
    """
    undirected = graph.to_networkx().to_undirected()
    if undirected.degree(a) == 0 or undirected.degree(b) == 0:
        return True
    reachable = nx.single_source_shortest_path_length(undirected, a, cutoff=max_distance)
    return b in reachable


def ingest_relations(graph: Graph, relations: Iterable, min_confidence: float = MIN_CONFIDENCE,
                     max_new: int = MAX_NEW_LINKS,
                     max_distance: int = MAX_DISTANCE) -> List[RelationOutcome]:
    """
    Apply proposed relations to the graph, most confident first.

    An existing link in either direction gains STRENGTHEN_GAIN · confidence.
    Otherwise one directed synapse source→target is created with weight
    NEW_LINK_WEIGHT · confidence, up to `max_new` new links per call.

    Args:
        graph: Graph to modify (normally a staged working copy)
        relations: ProposedRelation objects or mappings
        min_confidence: Relations below this confidence are dropped
        max_new: Maximum number of synapses created
        max_distance: Maximum hop distance between linked nodes

    Returns:
        One RelationOutcome per processed relation, in processing order. Status is
        one of created, strengthened, low_confidence, missing, invalid or distant.
    """
    relations = [r if isinstance(r, ProposedRelation) else ProposedRelation.from_dict(r)
                 for r in relations]
    relations.sort(key=lambda r: -r.confidence)
    labels = {node.label.lower().strip(): node.id
              for node in sorted(graph.nodes.values(), key=lambda n: n.id)}

    outcomes: List[RelationOutcome] = []
    created = 0
    for relation in relations:
        if created >= max_new:
            logger.debug("Relation cap of %d reached, %d relations left unprocessed",
                         max_new, len(relations) - len(outcomes))
            break
        if relation.confidence < min_confidence:
            outcomes.append(RelationOutcome(relation.source, relation.target, "low_confidence"))
            continue

        source = _resolve(graph, relation.source, labels)
        target = _resolve(graph, relation.target, labels)
        if source is None or target is None:
            outcomes.append(RelationOutcome(relation.source, relation.target, "missing"))
            continue
        if source == target:
            outcomes.append(RelationOutcome(source, target, "invalid"))
            continue
        if not within_distance(graph, source, target, max_distance):
            outcomes.append(RelationOutcome(source, target, "distant"))
            continue

        existing = graph.synapses_between(source, target)
        if existing:
            for synapse in existing:
                synapse.weight = clamp(synapse.weight + STRENGTHEN_GAIN * relation.confidence)
            outcomes.append(RelationOutcome(source, target, "strengthened"))
            continue

        graph.add_synapse(Synapse(source, target, NEW_LINK_WEIGHT * relation.confidence, 0,
                                  relation.kind))
        created += 1
        outcomes.append(RelationOutcome(source, target, "created"))

    return outcomes
