"""
Synaptic Context Engine

Associative memory for LLM-assisted assistants: spreading activation over a
weighted graph, heat decay, Hebbian reinforcement, MMR context selection and
contradiction detection, orchestrated one query pulse at a time.
"""

__version__ = "0.1.0"

from synaptic.config import EngineConfig, load_config
from synaptic.dynamics import (
    CoActivationTracker,
    CognitivePhase,
    WeightChange,
    boost_heat,
    consolidate,
    decay_salience,
    diffuse_heat,
    reinforce,
    suppress_heat,
)
from synaptic.energy import ActivatedNode, ActivationParams, ActivationTrace, activate, spread_activation
from synaptic.engine import (
    AuditEntry,
    ProposedMemory,
    Pulse,
    PulseResult,
    PulseStage,
    SynapticEngine,
    prefer_stronger,
)
from synaptic.exceptions import (
    ConfigurationError,
    GraphIntegrityError,
    PulseInProgressError,
    PulseStateError,
    SynapticError,
)
from synaptic.knowledge import ContradictionRecord, PruningLog, SelectionResult, detect, select
from synaptic.memory import (
    CounterIds,
    Graph,
    GraphTransaction,
    Hyperedge,
    HyperedgeType,
    Node,
    NodeType,
    ProposedRelation,
    RelationOutcome,
    RelationType,
    Synapse,
    ingest_relations,
)
from synaptic.telemetry import TelemetryPoint, summarize

__all__ = [
    "SynapticEngine",
    "Pulse",
    "PulseResult",
    "PulseStage",
    "ProposedMemory",
    "AuditEntry",
    "prefer_stronger",
    "EngineConfig",
    "load_config",
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
    "CognitivePhase",
    "CounterIds",
    "ActivatedNode",
    "ActivationParams",
    "ActivationTrace",
    "activate",
    "spread_activation",
    "diffuse_heat",
    "boost_heat",
    "suppress_heat",
    "decay_salience",
    "reinforce",
    "WeightChange",
    "CoActivationTracker",
    "consolidate",
    "select",
    "SelectionResult",
    "PruningLog",
    "detect",
    "ContradictionRecord",
    "summarize",
    "TelemetryPoint",
    "SynapticError",
    "ConfigurationError",
    "GraphIntegrityError",
    "PulseInProgressError",
    "PulseStateError",
]
