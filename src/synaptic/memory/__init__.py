"""Graph store for the Synaptic Context Engine."""

from synaptic.memory.graph import (
    CounterIds,
    Graph,
    Hyperedge,
    HyperedgeType,
    Node,
    NodeType,
    RelationType,
    Synapse,
    clamp,
    sanitize_id,
    uuid_ids,
)
from synaptic.memory.relations import ProposedRelation, RelationOutcome, ingest_relations, within_distance
from synaptic.memory.staging import GraphTransaction

__all__ = [
    "Graph",
    "Node",
    "Synapse",
    "Hyperedge",
    "NodeType",
    "RelationType",
    "HyperedgeType",
    "GraphTransaction",
    "ProposedRelation",
    "RelationOutcome",
    "ingest_relations",
    "within_distance",
    "CounterIds",
    "uuid_ids",
    "sanitize_id",
    "clamp",
]
