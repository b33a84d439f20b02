"""
Unit tests for heat dynamics and Hebbian learning.
"""

import numpy as np
import pytest

from conftest import activated
from synaptic import Graph, Hyperedge, Node, RelationType, Synapse
from synaptic.dynamics import (
    PHASE_PROFILES,
    CognitivePhase,
    boost_heat,
    decay_salience,
    diffuse_heat,
    phase_profile,
    reinforce,
    suppress_heat,
)


class TestDiffuseHeat:
    """Test heat decay."""

    def test_geometric_decay(self):
        """Test heat ← heat · (1 − rate)."""
        graph = Graph([Node("a", heat=0.8)])
        diffuse_heat(graph, 0.25)

        assert np.isclose(graph.nodes["a"].heat, 0.6)

    def test_floor(self):
        """Test that decay stops at the floor."""
        graph = Graph([Node("a", heat=0.06)])
        diffuse_heat(graph, 0.5, floor=0.05)

        assert graph.nodes["a"].heat == 0.05

    def test_never_raises_heat(self):
        """Test that nodes already below the floor are not lifted."""
        graph = Graph([Node("a", heat=0.01)])
        diffuse_heat(graph, 0.1, floor=0.05)

        assert graph.nodes["a"].heat == 0.01

    def test_monotonic(self):
        """Test that two decays in a row never increase any heat."""
        heats = [0.0, 0.01, 0.05, 0.3, 0.99, 1.0]
        graph = Graph([Node(str(i), heat=h) for i, h in enumerate(heats)])

        diffuse_heat(graph, 0.1)
        first = {n.id: n.heat for n in graph.nodes.values()}
        diffuse_heat(graph, 0.1)

        for node in graph.nodes.values():
            assert node.heat <= first[node.id] <= heats[int(node.id)]

    @pytest.mark.parametrize("rate", [0.0, 1.0, -0.1, 1.5])
    def test_rate_validated(self, rate):
        """Test that the decay rate must be in (0, 1)."""
        with pytest.raises(ValueError):
            diffuse_heat(Graph(), rate)


class TestHeatAdjustments:
    """Test boost, suppression and salience decay."""

    def test_boost(self):
        """Test boosting toward 1.0 and timestamping."""
        graph = Graph([Node("a", heat=0.4)])
        count = boost_heat(graph, ["a", "ghost"], amount=0.5, timestamp=12.0)

        assert count == 1
        assert np.isclose(graph.nodes["a"].heat, 0.7)
        assert graph.nodes["a"].last_accessed == 12.0

    def test_suppress(self):
        """Test suppression to a level, never upward."""
        graph = Graph([Node("a", heat=0.9), Node("b", heat=0.01)])

        assert suppress_heat(graph, "a", 0.05)
        assert suppress_heat(graph, "b", 0.05)
        assert not suppress_heat(graph, "ghost")
        assert graph.nodes["a"].heat == 0.05
        assert graph.nodes["b"].heat == 0.01

    def test_salience_decay(self):
        """Test hyperedge salience decay."""
        graph = Graph([Node("a"), Node("b")])
        graph.add_hyperedge(Hyperedge("h", ("a", "b"), salience=1.0))
        decay_salience(graph, 0.9)

        assert np.isclose(graph.hyperedges[0].salience, 0.9)


class TestHebbian:
    """Test Hebbian reinforcement."""

    def test_reinforcement(self):
        """Test w ← w + η·E(i)·E(j)·(1 − w) on A→B 0.9 with A 1.0, B 0.2958."""
        graph = Graph([Node("A"), Node("B")])
        graph.add_synapse(Synapse("A", "B", 0.9))

        changes = reinforce(graph, [activated("A", 1.0), activated("B", 0.2958)], eta=0.1)
        synapse = graph.get_synapse("A", "B")

        assert np.isclose(synapse.weight, 0.9 + 0.1 * 1.0 * 0.2958 * 0.1)
        assert np.isclose(synapse.weight, 0.902958, atol=1e-6)
        assert synapse.co_activations == 1
        assert len(changes) == 1
        assert np.isclose(changes[0].delta, synapse.weight - 0.9)

    def test_both_directions_updated(self):
        """Test that both synapses of an association are reinforced."""
        graph = Graph([Node("a"), Node("b")])
        graph.connect("a", "b", 0.5, reverse_weight=0.2)

        reinforce(graph, [activated("a", 1.0), activated("b", 0.5)], eta=0.2)

        assert np.isclose(graph.get_synapse("a", "b").weight, 0.5 + 0.2 * 0.5 * 0.5)
        assert np.isclose(graph.get_synapse("b", "a").weight, 0.2 + 0.2 * 0.5 * 0.8)

    def test_weak_cofiring_decays(self):
        """Test that joint activation under the floor decays the link."""
        graph = Graph([Node("a"), Node("b")])
        graph.connect("a", "b", 0.5)

        reinforce(graph, [activated("a", 0.2), activated("b", 0.2)], eta=0.2,
                  cofiring_floor=0.05, weight_decay=0.1)

        assert np.isclose(graph.get_synapse("a", "b").weight, 0.45)
        assert graph.get_synapse("a", "b").co_activations == 0

    def test_creates_missing_links(self):
        """Test that unlinked co-active pairs get seeded in both directions."""
        graph = Graph([Node("a"), Node("b")])

        changes = reinforce(graph, [activated("a", 1.0), activated("b", 0.5)], eta=0.1)

        for source, target in (("a", "b"), ("b", "a")):
            synapse = graph.get_synapse(source, target)
            assert np.isclose(synapse.weight, 0.05)
            assert synapse.co_activations == 1
        assert all(c.created for c in changes)

    def test_no_link_for_weak_pairs(self):
        """Test that barely co-active pairs are not linked."""
        graph = Graph([Node("a"), Node("b")])
        reinforce(graph, [activated("a", 0.1), activated("b", 0.1)], eta=0.1)

        assert graph.synapses == []

    def test_contradictions_untouched(self):
        """Test that contradiction synapses are neither reinforced nor duplicated."""
        graph = Graph([Node("a"), Node("b")])
        graph.add_synapse(Synapse("a", "b", 0.5, kind=RelationType.CONTRADICTION))

        reinforce(graph, [activated("a", 1.0), activated("b", 1.0)], eta=0.5)

        assert len(graph.synapses) == 1
        assert graph.synapses[0].weight == 0.5

    def test_disabled_is_idempotent(self):
        """Test that disabled learning never mutates weights, however often it runs."""
        graph = Graph([Node("a"), Node("b"), Node("c")])
        graph.connect("a", "b", 0.3)
        before = [(s.key, s.weight, s.co_activations) for s in graph.synapses]
        nodes = [activated("a", 1.0), activated("b", 0.9), activated("c", 0.8)]

        for _ in range(3):
            assert reinforce(graph, nodes, eta=0.5, enabled=False) == []

        assert [(s.key, s.weight, s.co_activations) for s in graph.synapses] == before

    def test_weights_stay_bounded(self):
        """Test that repeated reinforcement stays within [0, 1]."""
        graph = Graph([Node("a"), Node("b")])
        graph.connect("a", "b", 0.9)
        for _ in range(50):
            reinforce(graph, [activated("a", 1.0), activated("b", 1.0)], eta=1.0)

        assert all(0.0 <= s.weight <= 1.0 for s in graph.synapses)

    def test_eta_validated(self):
        """Test that eta must be in (0, 1]."""
        with pytest.raises(ValueError):
            reinforce(Graph(), [], eta=0.0)


class TestPhaseProfiles:
    """Test cognitive phase profiles."""

    def test_every_phase_has_a_profile(self):
        """Test that each phase maps to a learning profile."""
        assert set(PHASE_PROFILES) == set(CognitivePhase)

    def test_explore_keeps_configured_decay(self):
        """Test that exploring uses the configured heat decay and full plasticity."""
        profile = phase_profile("explore")

        assert profile.decay_rate(0.1) == 0.1
        assert profile.plasticity == 1.0
        assert profile.learns and profile.structural_updates

    def test_inference_freezes_structure(self):
        """Test that inference neither learns nor decays salience."""
        profile = phase_profile(CognitivePhase.INFERENCE)

        assert not profile.learns
        assert not profile.structural_updates
        assert profile.salience_retention == 1.0
        assert profile.decay_rate(0.1) == 0.3

    def test_consolidate_learns_slowly(self):
        """Test that consolidation keeps a fifth of the plasticity."""
        profile = phase_profile("Consolidate")

        assert profile.learns
        assert profile.plasticity == 0.2
        assert profile.decay_rate(0.1) == 0.5

    def test_unknown_phase(self):
        """Test that an unknown phase name is rejected."""
        with pytest.raises(ValueError):
            phase_profile("dreaming")
