"""
Contradiction detection over the activated subgraph.

A pair of simultaneously active nodes is flagged when a synapse tagged as a
contradiction links them in either direction. This explicit check always runs
and takes priority. When no such relation exists, a lexical heuristic may flag
pairs that talk about the same thing (enough shared content terms) while one
side is negated or the two sides use opposite words.

Resolving a conflict (suppressing the loser's heat) belongs to the caller.
"""

import itertools
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from synaptic.energy.activation import ActivatedNode
from synaptic.knowledge.text import is_negated, opposing_terms, terms
from synaptic.memory.graph import Graph, Node, RelationType

logger = logging.getLogger(__name__)

DEFAULT_ACTIVITY_FLOOR = 0.05
HEURISTIC_MIN_SHARED_TERMS = 2
HEURISTIC_MIN_OVERLAP = 0.5

SOURCE_RELATION = "relation"
SOURCE_HEURISTIC = "heuristic"


@dataclass(frozen=True)
class ContradictionRecord:
    """
    A pair of active nodes that conflict.

    Attributes:
        node_a: Lexicographically smaller node id
        node_b: Lexicographically larger node id
        description: Human-readable explanation
        source: "relation" for explicit contradiction synapses, "heuristic" otherwise
        strength: Product of the two nodes' energies
    """
    node_a: str
    node_b: str
    description: str
    source: str
    strength: float

    def involves(self, node_id: str) -> bool:
        return node_id in (self.node_a, self.node_b)

    def other(self, node_id: str) -> str:
        """The opposite side of the pair."""
        if node_id == self.node_a:
            return self.node_b
        if node_id == self.node_b:
            return self.node_a
        raise ValueError(f"{node_id!r} is not part of contradiction {self.node_a}/{self.node_b}")


def _text(node: Node) -> str:
    return f"{node.label} {node.content}"


def heuristic_conflict(a: Node, b: Node) -> Optional[str]:
    """
    Lexical conflict check between two nodes.

    Returns:
        Short reason string if the nodes look contradictory, else None
    """
    text_a, text_b = _text(a), _text(b)
    terms_a, terms_b = terms(text_a), terms(text_b)
    shared = terms_a & terms_b
    if len(shared) < HEURISTIC_MIN_SHARED_TERMS:
        return None
    if len(shared) / min(len(terms_a), len(terms_b)) < HEURISTIC_MIN_OVERLAP:
        return None

    subject = ", ".join(sorted(shared)[:3])
    if is_negated(text_a) != is_negated(text_b):
        return f"negation mismatch on {subject}"
    opposites = opposing_terms(text_a, text_b)
    if opposites:
        return f"opposite terms {', '.join(opposites)} on {subject}"
    return None


def detect(graph: Graph, activated: Sequence[ActivatedNode],
           activity_floor: float = DEFAULT_ACTIVITY_FLOOR,
           use_heuristic: bool = True) -> List[ContradictionRecord]:
    """
    Flag conflicting pairs among nodes active above the floor.

    Args:
        graph: Graph the activated nodes belong to (read only)
        activated: Activated nodes of the pulse
        activity_floor: Minimum raw energy for a node to take part
        use_heuristic: Also run the lexical heuristic for pairs without an
            explicit contradiction relation

    Returns:
        At most one record per unordered pair. Explicit relations come first,
        then by strength (desc) and ids, so index 0 is the one to surface.
    """
    active = {}
    for item in activated:
        if item.energy > activity_floor and item.node_id in graph.nodes:
            active.setdefault(item.node_id, item.energy)

    records: List[ContradictionRecord] = []
    for first, second in itertools.combinations(sorted(active), 2):
        node_a, node_b = graph.nodes[first], graph.nodes[second]
        strength = active[first] * active[second]

        if any(s.kind == RelationType.CONTRADICTION for s in graph.synapses_between(first, second)):
            records.append(ContradictionRecord(
                first, second, f"{node_a.label} contradicts {node_b.label}",
                SOURCE_RELATION, strength,
            ))
            continue

        if use_heuristic:
            reason = heuristic_conflict(node_a, node_b)
            if reason:
                records.append(ContradictionRecord(
                    first, second, f"{node_a.label} may contradict {node_b.label} ({reason})",
                    SOURCE_HEURISTIC, strength,
                ))

    records.sort(key=lambda r: (r.source != SOURCE_RELATION, -r.strength, r.node_a, r.node_b))
    if records:
        logger.info("Detected %d contradictions, first: %s", len(records), records[0].description)
    return records
