"""
Unit tests for explicit relation ingestion.
"""

import pytest

from synaptic import Graph, Node, ProposedRelation, RelationType, Synapse, ingest_relations
from synaptic.memory import within_distance


def _statuses(outcomes):
    return [o.status for o in outcomes]


@pytest.fixture
def path_graph():
    """Associations a-b-c-d-e in a line."""
    graph = Graph([Node(n, label=n.upper()) for n in "abcde"])
    for x, y in ("ab", "bc", "cd", "de"):
        graph.connect(x, y, 0.5)
    return graph


class TestProposedRelation:
    """Test relation normalisation."""

    def test_unknown_kind_becomes_association(self):
        """Test that an unrecognised relation kind is stored as an association."""
        assert ProposedRelation("a", "b", kind="causes").kind == RelationType.ASSOCIATION

    def test_from_dict(self):
        """Test parsing a relation mapping from the synthesis step."""
        relation = ProposedRelation.from_dict(
            {"source": "a", "target": "b", "type": "contradiction", "confidence": 1.4}
        )

        assert relation.kind == RelationType.CONTRADICTION
        assert relation.confidence == 1.0


class TestIngestion:
    """Test creating and strengthening links."""

    def test_low_confidence_dropped(self, path_graph):
        """Test that relations under 0.7 confidence never touch the graph."""
        before = len(path_graph.synapses)
        outcomes = ingest_relations(path_graph, [ProposedRelation("a", "c", confidence=0.69)])

        assert _statuses(outcomes) == ["low_confidence"]
        assert len(path_graph.synapses) == before

    def test_new_link_is_directed_and_typed(self, path_graph):
        """Test that a new relation adds one synapse of the reported kind."""
        outcomes = ingest_relations(path_graph, [
            ProposedRelation("a", "c", RelationType.CONTRADICTION, confidence=0.9),
        ])
        synapse = path_graph.get_synapse("a", "c")

        assert _statuses(outcomes) == ["created"]
        assert synapse.weight == pytest.approx(0.27)
        assert synapse.kind == RelationType.CONTRADICTION
        assert synapse.co_activations == 0
        assert path_graph.get_synapse("c", "a") is None

    def test_existing_link_strengthened(self, path_graph):
        """Test that a known link gains 0.2 · confidence in both directions."""
        count = len(path_graph.synapses)
        outcomes = ingest_relations(path_graph, [ProposedRelation("b", "a", confidence=0.8)])

        assert _statuses(outcomes) == ["strengthened"]
        assert path_graph.get_synapse("a", "b").weight == pytest.approx(0.66)
        assert path_graph.get_synapse("b", "a").weight == pytest.approx(0.66)
        assert len(path_graph.synapses) == count

    def test_strengthening_capped(self, path_graph):
        """Test that strengthened weights stay within [0, 1]."""
        for _ in range(5):
            ingest_relations(path_graph, [ProposedRelation("a", "b", confidence=1.0)])

        assert path_graph.get_synapse("a", "b").weight == 1.0

    def test_most_confident_first(self, path_graph):
        """Test that relations are processed by descending confidence."""
        outcomes = ingest_relations(path_graph, [
            ProposedRelation("a", "c", confidence=0.75),
            ProposedRelation("b", "d", confidence=0.95),
        ])

        assert [(o.source, o.target) for o in outcomes] == [("b", "d"), ("a", "c")]

    def test_new_links_capped(self):
        """Test that one call creates at most 20 synapses."""
        graph = Graph([Node("hub")] + [Node(f"leaf{i}") for i in range(25)])
        relations = [ProposedRelation("hub", f"leaf{i}", confidence=0.9) for i in range(25)]

        outcomes = ingest_relations(graph, relations)

        assert _statuses(outcomes).count("created") == 20
        assert len(graph.synapses) == 20

    def test_cap_does_not_limit_strengthening(self, path_graph):
        """Test that strengthening continues until the creation cap is hit."""
        relations = [ProposedRelation("a", "b", confidence=0.9)] * 3
        outcomes = ingest_relations(path_graph, relations, max_new=1)

        assert _statuses(outcomes) == ["strengthened"] * 3


class TestResolution:
    """Test endpoint resolution."""

    def test_label_and_sanitised_id(self, path_graph):
        """Test that endpoints resolve by label or sanitised id."""
        path_graph.add_node(Node("launch_risk", label="Launch risk"))

        outcomes = ingest_relations(path_graph, [
            ProposedRelation("Launch Risk!", "C", confidence=0.9),
        ])

        assert [(o.source, o.target, o.status) for o in outcomes] == [("launch_risk", "c", "created")]

    def test_missing_endpoint(self, path_graph):
        """Test that relations to unknown nodes are reported, not created."""
        outcomes = ingest_relations(path_graph, [ProposedRelation("a", "nowhere", confidence=0.9)])

        assert _statuses(outcomes) == ["missing"]

    def test_self_relation(self, path_graph):
        """Test that a node cannot be related to itself."""
        assert _statuses(ingest_relations(path_graph, [ProposedRelation("a", "A")])) == ["invalid"]


class TestDistanceGate:
    """Test the structural distance check."""

    def test_distant_nodes_refused(self, path_graph):
        """Test that nodes four hops apart are not linked."""
        outcomes = ingest_relations(path_graph, [ProposedRelation("a", "e", confidence=0.9)])

        assert _statuses(outcomes) == ["distant"]
        assert path_graph.get_synapse("a", "e") is None

    def test_three_hops_allowed(self, path_graph):
        """Test that nodes three hops apart may be linked."""
        assert within_distance(path_graph, "a", "d")
        assert not within_distance(path_graph, "a", "e")

    def test_isolated_node_links_anywhere(self, path_graph):
        """Test that a node without links can join any region."""
        path_graph.add_node(Node("fresh"))

        assert _statuses(ingest_relations(path_graph, [ProposedRelation("fresh", "e")])) == ["created"]

    def test_direction_ignored(self):
        """Test that distance counts links in either direction."""
        graph = Graph([Node("a"), Node("b"), Node("c")])
        graph.add_synapse(Synapse("a", "b", 0.5))
        graph.add_synapse(Synapse("c", "b", 0.5))

        assert within_distance(graph, "a", "c", max_distance=2)
        assert not within_distance(graph, "a", "c", max_distance=1)
