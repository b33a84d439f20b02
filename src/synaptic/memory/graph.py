"""
Graph Store: nodes, directed synapses and hyperedges of the associative memory.

A logical association between A and B is stored as two directed synapses
(A→B and B→A) so that propagation and learning stay direction-symmetric while
each direction remains individually tunable. The store only enforces structural
invariants: heat and weights clamped to [0, 1], unique ids, and no synapse
pointing at a missing node when edits go through the public methods.
"""

import itertools
import logging
import re
import uuid
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import networkx as nx
import numpy as np

from synaptic.exceptions import GraphIntegrityError

logger = logging.getLogger(__name__)


def clamp(value: float, lower: float = 0.0, upper: float = 1.0) -> float:
    """Clamp a scalar into [lower, upper]."""
    return max(lower, min(upper, float(value)))


class _TaggedEnum(str, Enum):
    """String enumeration with a tolerant parser that falls back to UNKNOWN."""

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.UNKNOWN
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            logger.debug("Unrecognised %s %r, using UNKNOWN", cls.__name__, value)
            return cls.UNKNOWN


class NodeType(_TaggedEnum):
    """Category tag of a memory node."""
    PROJECT = "project"
    DOCUMENT = "document"
    CONTACT = "contact"
    FACT = "fact"
    CONCEPT = "concept"
    ENTITY = "entity"
    EVENT = "event"
    PREFERENCE = "preference"
    CONSTRAINT = "constraint"
    GOAL = "goal"
    UNKNOWN = "unknown"


class RelationType(_TaggedEnum):
    """Relation kind carried by a synapse."""
    ASSOCIATION = "association"
    CONTRADICTION = "contradiction"
    INFERENCE = "inference"
    UNKNOWN = "unknown"


class HyperedgeType(_TaggedEnum):
    """Kind of multi-node cluster."""
    CONTEXT = "context"
    CAUSAL = "causal"
    TEMPORAL = "temporal"
    GROUP = "group"
    CLUSTER = "cluster"
    UNKNOWN = "unknown"


@dataclass
class Node:
    """
    A unit of memory.

    Attributes:
        id: Stable string identifier
        type: Category tag
        label: Display label (defaults to the id)
        content: Free-text content
        heat: Recency/importance in [0, 1]
        created_at: Optional creation timestamp
        last_accessed: Optional timestamp of the last activation
        archived: Archived nodes are never used as activation seeds
        embedding: Optional fixed-length vector used for similarity
    """
    id: str
    type: NodeType = NodeType.CONCEPT
    label: str = ""
    content: str = ""
    heat: float = 0.5
    created_at: Optional[float] = None
    last_accessed: Optional[float] = None
    archived: bool = False
    embedding: Optional[np.ndarray] = None

    def __post_init__(self):
        if not isinstance(self.id, str) or not self.id:
            raise GraphIntegrityError(f"Node id must be a non-empty string, got {self.id!r}")
        self.type = NodeType.parse(self.type)
        self.label = self.label or self.id
        self.heat = clamp(self.heat)
        if self.embedding is not None:
            self.embedding = np.asarray(self.embedding, dtype=float)
            if self.embedding.ndim != 1:
                raise GraphIntegrityError(
                    f"Embedding of node {self.id!r} must be 1-D, got shape {self.embedding.shape}"
                )

    def copy(self) -> "Node":
        embedding = None if self.embedding is None else self.embedding.copy()
        return replace(self, embedding=embedding)


@dataclass
class Synapse:
    """
    A directed weighted edge.

    Attributes:
        source: Source node id
        target: Target node id
        weight: Edge strength in [0, 1]
        co_activations: Number of reinforcement events
        kind: Relation kind (association / contradiction / inference)
    """
    source: str
    target: str
    weight: float = 0.5
    co_activations: int = 0
    kind: RelationType = RelationType.ASSOCIATION

    def __post_init__(self):
        if self.source == self.target:
            raise GraphIntegrityError(f"Self-loop synapse on {self.source!r} is not allowed")
        self.kind = RelationType.parse(self.kind)
        self.weight = clamp(self.weight)
        self.co_activations = max(0, int(self.co_activations))

    @property
    def key(self) -> Tuple[str, str]:
        return (self.source, self.target)

    def copy(self) -> "Synapse":
        return replace(self)


@dataclass
class Hyperedge:
    """
    A named cluster of two or more nodes that lets energy flow through the group.

    Attributes:
        id: Unique identifier
        nodes: Member node ids (unique, order preserved)
        weight: Aggregate edge weight in [0, 1]
        label: Display label
        kind: Cluster kind
        salience: Long-term importance of the cluster in [0, 1]
    """
    id: str
    nodes: Tuple[str, ...]
    weight: float = 0.75
    label: str = ""
    kind: HyperedgeType = HyperedgeType.GROUP
    salience: float = 0.5

    def __post_init__(self):
        self.nodes = tuple(dict.fromkeys(self.nodes))
        if len(self.nodes) < 2:
            raise GraphIntegrityError(f"Hyperedge {self.id!r} needs at least 2 distinct nodes")
        self.kind = HyperedgeType.parse(self.kind)
        self.weight = clamp(self.weight)
        self.salience = clamp(self.salience)
        self.label = self.label or self.id

    def copy(self) -> "Hyperedge":
        return replace(self)


def _overwrite(target, source):
    """Copy every dataclass field of source onto target; adopt source if target is None."""
    if target is None:
        return source
    for f in fields(source):
        setattr(target, f.name, getattr(source, f.name))
    return target


def uuid_ids() -> Callable[[], str]:
    """Id factory producing random hex UUIDs."""
    return lambda: uuid.uuid4().hex


class CounterIds:
    """Deterministic id factory: prefix_1, prefix_2, ..."""

    def __init__(self, prefix: str = "node"):
        self.prefix = prefix
        self._counter = itertools.count(1)

    def __call__(self) -> str:
        return f"{self.prefix}_{next(self._counter)}"


def sanitize_id(raw: str) -> str:
    """Lowercase, underscore whitespace and strip everything outside [a-z0-9_]."""
    text = re.sub(r"\s+", "_", str(raw).lower().strip())
    return re.sub(r"[^a-z0-9_]", "", text)


class Graph:
    """
    Owned graph structure handed to the engine for each pulse.

    Attributes:
        nodes: Mapping of node id to Node
        synapses: List of directed synapses
        hyperedges: List of hyperedges
    """

    def __init__(self, nodes: Optional[Iterable[Node]] = None,
                 synapses: Optional[Iterable[Synapse]] = None,
                 hyperedges: Optional[Iterable[Hyperedge]] = None):
        self.nodes: Dict[str, Node] = {}
        self.synapses: List[Synapse] = []
        self.hyperedges: List[Hyperedge] = []
        self._index: Optional[Dict[Tuple[str, str], Synapse]] = None
        self._outgoing: Optional[Dict[str, List[Synapse]]] = None
        self._indexed_count = -1

        for node in nodes or ():
            self.add_node(node)
        for synapse in synapses or ():
            self.add_synapse(synapse)
        for hyperedge in hyperedges or ():
            self.add_hyperedge(hyperedge)

    # ------------------------------------------------------------------
    # Structural edits
    # ------------------------------------------------------------------

    def add_node(self, node: Node) -> Node:
        if node.id in self.nodes:
            raise GraphIntegrityError(f"Duplicate node id {node.id!r}")
        self.nodes[node.id] = node
        return node

    def add_synapse(self, synapse: Synapse) -> Synapse:
        """
        Add a directed synapse.

        Raises:
            GraphIntegrityError: If an endpoint is missing or the edge already exists
        """
        for endpoint in (synapse.source, synapse.target):
            if endpoint not in self.nodes:
                raise GraphIntegrityError(
                    f"Synapse {synapse.source}->{synapse.target} references missing node {endpoint!r}"
                )
        if self.get_synapse(synapse.source, synapse.target) is not None:
            raise GraphIntegrityError(f"Synapse {synapse.source}->{synapse.target} already exists")
        self.synapses.append(synapse)
        # Keep the index current instead of rebuilding it on the next lookup
        self._index[synapse.key] = synapse
        self._outgoing.setdefault(synapse.source, []).append(synapse)
        self._indexed_count = len(self.synapses)
        return synapse

    def connect(self, a: str, b: str, weight: float = 0.5,
                reverse_weight: Optional[float] = None,
                kind: RelationType = RelationType.ASSOCIATION,
                co_activations: int = 0) -> Tuple[Synapse, Synapse]:
        """
        Create a logical association as two directed synapses a→b and b→a.

        Args:
            a: First node id
            b: Second node id
            weight: Weight of a→b
            reverse_weight: Weight of b→a (defaults to weight)
            kind: Relation kind for both directions
            co_activations: Initial counter for both directions

        Returns:
            Tuple of (forward, backward) synapses
        """
        forward = self.add_synapse(Synapse(a, b, weight, co_activations, kind))
        backward = self.add_synapse(Synapse(
            b, a, weight if reverse_weight is None else reverse_weight, co_activations, kind
        ))
        return forward, backward

    def add_hyperedge(self, hyperedge: Hyperedge) -> Hyperedge:
        missing = [n for n in hyperedge.nodes if n not in self.nodes]
        if missing:
            raise GraphIntegrityError(f"Hyperedge {hyperedge.id!r} references missing nodes {missing}")
        if self.get_hyperedge(hyperedge.id) is not None:
            raise GraphIntegrityError(f"Duplicate hyperedge id {hyperedge.id!r}")
        self.hyperedges.append(hyperedge)
        return hyperedge

    def set_heat(self, node_id: str, heat: float) -> None:
        self.nodes[node_id].heat = clamp(heat)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def invalidate(self):
        """Drop the adjacency index; it is rebuilt on next lookup."""
        self._index = None
        self._outgoing = None

    def _ensure_index(self):
        if self._index is not None and self._indexed_count == len(self.synapses):
            return
        index: Dict[Tuple[str, str], Synapse] = {}
        outgoing: Dict[str, List[Synapse]] = {}
        for synapse in self.synapses:
            if synapse.key in index:
                continue
            index[synapse.key] = synapse
            outgoing.setdefault(synapse.source, []).append(synapse)
        self._index = index
        self._outgoing = outgoing
        self._indexed_count = len(self.synapses)

    def get_synapse(self, source: str, target: str) -> Optional[Synapse]:
        self._ensure_index()
        return self._index.get((source, target))

    def synapses_between(self, a: str, b: str) -> List[Synapse]:
        """All synapses linking a and b in either direction."""
        return [s for s in (self.get_synapse(a, b), self.get_synapse(b, a)) if s is not None]

    def out_edges(self, node_id: str) -> List[Synapse]:
        self._ensure_index()
        return list(self._outgoing.get(node_id, ()))

    def get_hyperedge(self, hyperedge_id: str) -> Optional[Hyperedge]:
        for hyperedge in self.hyperedges:
            if hyperedge.id == hyperedge_id:
                return hyperedge
        return None

    def dangling_synapses(self) -> List[Synapse]:
        """Synapses whose source or target is not a node of this graph."""
        return [s for s in self.synapses if s.source not in self.nodes or s.target not in self.nodes]

    def ground(self, terms: Iterable[str]) -> List[str]:
        """
        Map extracted terms (ids or labels) onto node ids.

        Matching order per term: exact id, then case-insensitive label match where
        labels equal the term, the term contains a label longer than 3 characters,
        or a label contains a term longer than 3 characters.

        Args:
            terms: Candidate ids or labels from an external extraction step

        Returns:
            List of unique node ids in first-match order
        """
        labels = [(node.id, node.label.lower().strip())
                  for node in sorted(self.nodes.values(), key=lambda n: n.id)]
        grounded: List[str] = []
        seen = set()

        for term in terms:
            if not term:
                continue
            if term in self.nodes:
                matches = [term]
            else:
                needle = term.lower().strip()
                matches = [
                    node_id for node_id, label in labels
                    if label == needle
                    or (len(label) > 3 and label in needle)
                    or (len(needle) > 3 and needle in label)
                ]
            for node_id in matches:
                if node_id not in seen:
                    seen.add(node_id)
                    grounded.append(node_id)

        return grounded

    @property
    def density(self) -> float:
        """Synapses per node (0 for an empty graph)."""
        return len(self.synapses) / len(self.nodes) if self.nodes else 0.0

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def copy(self) -> "Graph":
        """Independent copy, preserving any dangling synapses as they are."""
        clone = Graph()
        clone.nodes = {node_id: node.copy() for node_id, node in self.nodes.items()}
        clone.synapses = [s.copy() for s in self.synapses]
        clone.hyperedges = [h.copy() for h in self.hyperedges]
        return clone

    def restore(self, other: "Graph"):
        """
        Make this graph's contents equal to another graph's, in place.

        Nodes, synapses and hyperedges that already exist here (same id, same
        (source, target) key, same hyperedge id) keep their identity and have
        their fields overwritten, so references held by the owner stay live.
        Items only present in `other` are adopted as they are.
        """
        nodes: Dict[str, Node] = {}
        for node_id, node in other.nodes.items():
            nodes[node_id] = _overwrite(self.nodes.get(node_id), node)

        current: Dict[Tuple[str, str], List[Synapse]] = {}
        for synapse in self.synapses:
            current.setdefault(synapse.key, []).append(synapse)
        synapses = []
        for synapse in other.synapses:
            matches = current.get(synapse.key)
            synapses.append(_overwrite(matches.pop(0) if matches else None, synapse))

        by_id = {h.id: h for h in self.hyperedges}
        hyperedges = [_overwrite(by_id.pop(h.id, None), h) for h in other.hyperedges]

        self.nodes, self.synapses, self.hyperedges = nodes, synapses, hyperedges
        self.invalidate()

    def to_networkx(self, min_weight: float = 0.0,
                    kinds: Optional[Iterable[RelationType]] = None) -> nx.DiGraph:
        """
        Export as a networkx DiGraph for structural analysis.

        Args:
            min_weight: Minimum synapse weight to include
            kinds: Relation kinds to include (all kinds if None)

        Returns:
            nx.DiGraph with node attributes (type, heat, archived) and edge
            attributes (weight, kind). Dangling synapses are skipped.
        """
        allowed = None if kinds is None else {RelationType.parse(k) for k in kinds}
        digraph = nx.DiGraph()
        for node in self.nodes.values():
            digraph.add_node(node.id, type=node.type, heat=node.heat, archived=node.archived)
        for synapse in self.synapses:
            if synapse.source not in self.nodes or synapse.target not in self.nodes:
                continue
            if synapse.weight < min_weight:
                continue
            if allowed is not None and synapse.kind not in allowed:
                continue
            digraph.add_edge(synapse.source, synapse.target, weight=synapse.weight, kind=synapse.kind)
        return digraph

    def __len__(self):
        return len(self.nodes)

    def __contains__(self, node_id):
        return node_id in self.nodes

    def __repr__(self):
        return (f"Graph(nodes={len(self.nodes)}, synapses={len(self.synapses)}, "
                f"hyperedges={len(self.hyperedges)}, density={self.density:.3f})")
