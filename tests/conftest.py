"""Shared fixtures for the engine tests."""

import pytest

from synaptic import CounterIds, EngineConfig, Graph, Node, NodeType, RelationType, SynapticEngine
from synaptic.energy import ActivatedNode


def activated(node_id, energy, heat=0.5, depth=0, path=None):
    """Build an ActivatedNode with biased energy equal to energy."""
    return ActivatedNode(node_id, energy, heat, energy, depth, tuple(path or (node_id,)))


@pytest.fixture
def chain_graph():
    """Scenario graph A→B (0.9), B→C (0.85)."""
    graph = Graph([Node("A", heat=1.0), Node("B", heat=1.0), Node("C", heat=1.0)])
    graph.connect("A", "B", 0.9, reverse_weight=0.0)
    graph.connect("B", "C", 0.85, reverse_weight=0.0)
    return graph


@pytest.fixture
def project_graph():
    """Small mixed graph with a contradiction relation."""
    graph = Graph([
        Node("alpha", NodeType.PROJECT, "Project Alpha", "Alpha launches the mobile app", heat=0.8),
        Node("budget", NodeType.FACT, "Alpha budget", "Budget for Alpha is approved", heat=0.6),
        Node("alice", NodeType.CONTACT, "Alice", "Alice leads Project Alpha", heat=0.4),
        Node("deadline", NodeType.CONSTRAINT, "Deadline", "Launch before March", heat=0.3),
        Node("delay", NodeType.FACT, "Delay", "Launch after March", heat=0.3),
    ])
    graph.connect("alpha", "budget", 0.9)
    graph.connect("alpha", "alice", 0.8)
    graph.connect("alpha", "deadline", 0.7)
    graph.connect("alpha", "delay", 0.6)
    graph.connect("deadline", "delay", 0.5, kind=RelationType.CONTRADICTION)
    return graph


@pytest.fixture
def engine(project_graph):
    ticks = iter(range(1, 10_000))
    return SynapticEngine(
        project_graph,
        EngineConfig(enable_consolidation=False),
        id_factory=CounterIds("mem"),
        clock=lambda: float(next(ticks)),
    )
