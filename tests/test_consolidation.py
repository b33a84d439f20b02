"""
Unit tests for co-activation tracking and hyperedge consolidation.
"""

import pytest

from conftest import activated
from synaptic import CounterIds, Graph, Hyperedge, HyperedgeType, Node, NodeType, RelationType
from synaptic.dynamics import CoActivationTracker, consolidate, strong_cliques


def _triangle_graph(weight=0.9, types=(NodeType.FACT, NodeType.FACT, NodeType.FACT)):
    graph = Graph([Node(n, t) for n, t in zip("abc", types)])
    for a, b in (("a", "b"), ("b", "c"), ("a", "c")):
        graph.connect(a, b, weight)
    return graph


class TestTracker:
    """Test the co-activation tracker."""

    def test_counts_top_triangles(self):
        """Test that only strong nodes form triangles."""
        tracker = CoActivationTracker()
        counted = tracker.track([activated("a", 0.9), activated("b", 0.8),
                                 activated("c", 0.7), activated("d", 0.1)])

        assert counted == 1
        assert tracker.counts == {("a", "b", "c"): 1.0}

    def test_top_k_limit(self):
        """Test that at most top_k nodes take part."""
        tracker = CoActivationTracker(top_k=3)
        tracker.track([activated(n, 0.9) for n in "abcde"])

        assert list(tracker.counts) == [("a", "b", "c")]

    def test_frequent_and_decay(self):
        """Test frequency threshold and decay forgetting."""
        tracker = CoActivationTracker()
        for _ in range(5):
            tracker.track([activated(n, 0.9) for n in "abc"])

        assert tracker.frequent() == [("a", "b", "c")]
        tracker.decay(0.9)
        assert tracker.frequent() == []
        assert len(tracker) == 1


class TestStrongCliques:
    """Test clique search over strong mutual associations."""

    def test_triangle(self):
        """Test that a strong triangle is found."""
        assert strong_cliques(_triangle_graph()) == [("a", "b", "c")]

    def test_weak_edges_ignored(self):
        """Test the weight threshold."""
        assert strong_cliques(_triangle_graph(weight=0.5)) == []

    def test_one_way_edges_ignored(self):
        """Test that both directions must be strong."""
        graph = _triangle_graph()
        graph.get_synapse("c", "a").weight = 0.1

        assert strong_cliques(graph) == []

    def test_contradictions_ignored(self):
        """Test that contradiction synapses do not form clusters."""
        graph = Graph([Node(n) for n in "abc"])
        for a, b in (("a", "b"), ("b", "c"), ("a", "c")):
            graph.connect(a, b, 0.95, kind=RelationType.CONTRADICTION)

        assert strong_cliques(graph) == []


class TestConsolidate:
    """Test hyperedge creation."""

    def test_cluster_hyperedge(self):
        """Test that a strong clique becomes a cluster hyperedge."""
        graph = _triangle_graph()
        report = consolidate(graph, CoActivationTracker(), CounterIds("hyper"))

        assert report.created == 1
        assert graph.hyperedges[0].kind == HyperedgeType.CLUSTER
        assert graph.hyperedges[0].nodes == ("a", "b", "c")
        assert graph.hyperedges[0].id == "hyper_1"

    def test_too_many_types(self):
        """Test that mixed cliques spanning three types are skipped."""
        graph = _triangle_graph(types=(NodeType.FACT, NodeType.CONTACT, NodeType.PROJECT))

        assert consolidate(graph, CoActivationTracker(), CounterIds()).created == 0

    def test_context_hyperedge_from_history(self):
        """Test that frequent triangles become context hyperedges."""
        graph = Graph([Node(n) for n in "abc"])
        tracker = CoActivationTracker()
        for _ in range(5):
            tracker.track([activated(n, 0.9) for n in "abc"])

        report = consolidate(graph, tracker, CounterIds("ctx"))

        assert report.created == 1
        assert graph.hyperedges[0].kind == HyperedgeType.CONTEXT

    def test_existing_hyperedge_boosted(self):
        """Test that a covering hyperedge gains salience instead of a duplicate."""
        graph = Graph([Node(n) for n in "abc"])
        graph.add_hyperedge(Hyperedge("h", ("c", "b", "a"), salience=0.5))
        tracker = CoActivationTracker()
        for _ in range(5):
            tracker.track([activated(n, 0.9) for n in "abc"])

        report = consolidate(graph, tracker, CounterIds())

        assert report.boosted == 1
        assert len(graph.hyperedges) == 1
        assert graph.hyperedges[0].salience == pytest.approx(0.6)

    def test_never_removes_synapses(self):
        """Test that consolidation leaves synapses alone."""
        graph = _triangle_graph()
        before = len(graph.synapses)
        consolidate(graph, CoActivationTracker(), CounterIds())

        assert len(graph.synapses) == before
