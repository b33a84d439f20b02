"""
Synaptic Engine: pulse orchestrator for the associative memory.

One pulse is one query-triggered pass:

    seeds → activation → contradiction check (may pause for resolution)
          → context selection → (caller: synthesis, new memories)
          → memory merge and relation ingestion → Hebbian learning
          → heat boost and decay → telemetry

The engine holds a single-writer lock per graph for the lifetime of a pulse.
`begin_pulse` only reads the graph; every mutation is staged on a working copy
in `complete_pulse` and committed in one step, so an abandoned or failed pulse
leaves the graph exactly as it was.
"""

import copy
import itertools
import logging
import threading
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from synaptic.config import EngineConfig, load_config
from synaptic.dynamics.consolidation import CoActivationTracker, ConsolidationReport, consolidate
from synaptic.dynamics.heat import boost_heat, decay_salience, diffuse_heat, suppress_heat
from synaptic.dynamics.hebbian import WeightChange, reinforce
from synaptic.dynamics.phases import CognitivePhase, phase_profile
from synaptic.energy.activation import (
    ActivatedNode,
    ActivationParams,
    ActivationTrace,
    spread_activation,
)
from synaptic.exceptions import PulseInProgressError, PulseStateError
from synaptic.knowledge.contradictions import ContradictionRecord, detect
from synaptic.knowledge.selection import SelectionResult, select
from synaptic.memory.graph import Graph, Node, NodeType, clamp, sanitize_id, uuid_ids
from synaptic.memory.relations import ProposedRelation, RelationOutcome, ingest_relations
from synaptic.memory.staging import GraphTransaction
from synaptic.telemetry import TelemetryPoint, summarize

logger = logging.getLogger(__name__)

AUDIT_LOG_SIZE = 50
HYPEREDGE_SALIENCE_GAIN = 0.05
ANCHOR_FORWARD_WEIGHT = 0.85
ANCHOR_BACKWARD_WEIGHT = 0.5
MESH_WEIGHT = 0.75


class PulseStage(str, Enum):
    """Lifecycle stage of a pulse."""
    AWAITING_RESOLUTION = "awaiting_resolution"
    SELECTED = "selected"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


@dataclass(frozen=True)
class AuditEntry:
    """One event on the engine's audit channel."""
    timestamp: float
    kind: str
    message: str
    status: str = "info"


@dataclass
class ProposedMemory:
    """
    A new memory produced by the external synthesis step.

    Attributes:
        label: Display label; also used to detect duplicates
        content: Free-text content
        type: Category tag (parsed, unknown strings become UNKNOWN)
        id: Optional explicit id, sanitised before use
        embedding: Optional embedding vector
    """
    label: str
    content: str = ""
    type: Union[NodeType, str] = NodeType.FACT
    id: Optional[str] = None
    embedding: Optional[np.ndarray] = None

    @classmethod
    def from_dict(cls, data: Mapping) -> "ProposedMemory":
        return cls(
            label=data.get("label") or data.get("id") or "",
            content=data.get("content", ""),
            type=data.get("type", NodeType.FACT),
            id=data.get("id"),
            embedding=data.get("embedding"),
        )


@dataclass
class Pulse:
    """
    State of one in-flight (or finished) pulse.

    Attributes:
        number: 1-based pulse sequence number
        query: Raw query text
        seeds: Seed ids requested for the pulse (including goal seeds)
        activation: Full activation trace
        contradictions: Detected conflicts, highest priority first
        selection: Selected context and pruning trace (empty until selected)
        stage: Current lifecycle stage
        started_at: Clock value when the pulse began
        suppressed: Losing node ids of resolved contradictions
    """
    number: int
    query: str
    seeds: Tuple[str, ...]
    activation: ActivationTrace
    contradictions: List[ContradictionRecord] = field(default_factory=list)
    selection: SelectionResult = field(default_factory=SelectionResult)
    stage: PulseStage = PulseStage.SELECTED
    started_at: float = 0.0
    suppressed: List[str] = field(default_factory=list)

    @property
    def activated(self) -> List[ActivatedNode]:
        return self.activation.nodes

    @property
    def context(self) -> List[ActivatedNode]:
        return self.selection.selected

    @property
    def pending_contradiction(self) -> Optional[ContradictionRecord]:
        """First conflict whose nodes are both still in play, or None."""
        for record in self.contradictions:
            if record.node_a not in self.suppressed and record.node_b not in self.suppressed:
                return record
        return None


@dataclass
class PulseResult:
    """Everything a completed pulse produced."""
    pulse: Pulse
    telemetry: TelemetryPoint
    weight_changes: List[WeightChange] = field(default_factory=list)
    created_nodes: List[str] = field(default_factory=list)
    consolidation: Optional[ConsolidationReport] = None
    relations: List[RelationOutcome] = field(default_factory=list)

    @property
    def context(self) -> List[ActivatedNode]:
        return self.pulse.context


def prefer_stronger(pulse: Pulse, record: ContradictionRecord) -> str:
    """Default resolver: keep the side with the higher biased energy (ties: smaller id)."""
    energies = {a.node_id: a.biased_energy for a in pulse.activated}
    return min((record.node_a, record.node_b), key=lambda n: (-energies.get(n, 0.0), n))


class SynapticEngine:
    """
    Runs pulses over one graph under a single-writer discipline.

    Attributes:
        graph: The owned memory graph
        config: Validated engine options
        tracker: Co-activation history used for consolidation
        audit_log: Most recent audit entries (bounded)
        telemetry_history: Telemetry of every completed pulse
        pulse_count: Number of completed pulses
    """

    def __init__(self, graph: Optional[Graph] = None,
                 config: Union[None, EngineConfig, Mapping] = None,
                 id_factory: Optional[Callable[[], str]] = None,
                 clock: Callable[[], float] = time.time,
                 audit_hook: Optional[Callable[[AuditEntry], None]] = None):
        """
        Initialize the engine.

        Args:
            graph: Graph to operate on (a new empty graph if None)
            config: EngineConfig or mapping of options (defaults if None)
            id_factory: Generator for new node and hyperedge ids (random UUIDs if None)
            clock: Time source, injectable for deterministic tests
            audit_hook: Optional callable receiving every AuditEntry
        """
        self.graph = graph if graph is not None else Graph()
        self.config = load_config(config)
        self.id_factory = id_factory or uuid_ids()
        self.clock = clock
        self.audit_hook = audit_hook

        self.tracker = CoActivationTracker()
        self.audit_log = deque(maxlen=AUDIT_LOG_SIZE)
        self.telemetry_history: List[TelemetryPoint] = []
        self.pulse_count = 0

        self._lock = threading.Lock()
        self._active: Optional[Pulse] = None
        self._started = 0

    # ------------------------------------------------------------------
    # Audit channel
    # ------------------------------------------------------------------

    def audit(self, kind: str, message: str, status: str = "info") -> AuditEntry:
        entry = AuditEntry(self.clock(), kind, message, status)
        self.audit_log.append(entry)
        level = logging.WARNING if status == "warning" else logging.INFO
        logger.log(level, "[%s] %s", kind, message)
        if self.audit_hook is not None:
            self.audit_hook(entry)
        return entry

    @property
    def in_flight(self) -> bool:
        return self._active is not None

    @property
    def last_telemetry(self) -> Optional[TelemetryPoint]:
        return self.telemetry_history[-1] if self.telemetry_history else None

    def ground(self, terms: Iterable[str]) -> List[str]:
        """
        Map externally extracted terms to node ids for use as seeds.

        Args:
            terms: Ids or labels from the extraction step

        Returns:
            Grounded node ids
        """
        terms = list(terms)
        grounded = self.graph.ground(terms)
        self.audit("grounding", f"Grounded {len(grounded)} nodes from {len(terms)} terms",
                   "ok" if grounded else "empty")
        return grounded

    # ------------------------------------------------------------------
    # Pulse lifecycle
    # ------------------------------------------------------------------

    def begin_pulse(self, query: str, seeds: Iterable[str]) -> Pulse:
        """
        Start a pulse: activate, check contradictions and select context.

        The graph is only read. If a contradiction is found (and checking is
        enabled) the pulse stops in AWAITING_RESOLUTION until every conflict is
        resolved with `resolve_contradiction`.

        Args:
            query: Raw query text
            seeds: Seed node ids from the extraction step

        Returns:
            Pulse in stage SELECTED or AWAITING_RESOLUTION

        Raises:
            PulseInProgressError: If another pulse is in flight on this engine
        """
        if not self._lock.acquire(blocking=False):
            raise PulseInProgressError("A pulse is already in flight on this graph")

        try:
            pulse = self._start(query, seeds)
        except Exception:
            self._lock.release()
            raise

        self._active = pulse
        return pulse

    def _start(self, query: str, seeds: Iterable[str]) -> Pulse:
        config = self.config
        seeds = list(dict.fromkeys(seeds))
        if config.enable_goal_seeding:
            goals = sorted(n.id for n in self.graph.nodes.values()
                           if n.type == NodeType.GOAL and not n.archived and n.id not in seeds)
            seeds.extend(goals)

        self._started += 1
        trace = spread_activation(self.graph, seeds, ActivationParams.from_config(config))
        pulse = Pulse(
            number=self._started,
            query=query,
            seeds=tuple(seeds),
            activation=trace,
            started_at=self.clock(),
        )
        logger.info("Pulse %d: %d seeds, %d activated", pulse.number, len(seeds), len(trace.nodes))

        for source, target in trace.dangling:
            self.audit("corruption", f"Skipped synapse {source}->{target} with a missing endpoint",
                       "warning")
        if not trace.nodes:
            self.audit("activation", "No relevant memory found", "empty")

        if config.enable_contradiction_check:
            pulse.contradictions = detect(self.graph, trace.nodes, config.activity_floor,
                                          config.enable_contradiction_heuristic)

        pending = pulse.pending_contradiction
        if pending is not None:
            pulse.stage = PulseStage.AWAITING_RESOLUTION
            self.audit("contradiction", pending.description, "paused")
        else:
            self._select(pulse)
        return pulse

    def _select(self, pulse: Pulse):
        candidates = [a for a in pulse.activated if a.node_id not in pulse.suppressed]
        pulse.selection = select(self.graph, candidates, pulse.query, self.config.context_size,
                                 self.config.mmr_lambda, self.config.enable_pruning)
        pulse.stage = PulseStage.SELECTED

    def _check(self, pulse: Pulse, *stages: PulseStage):
        if pulse is not self._active:
            raise PulseStateError(f"Pulse {pulse.number} is not the pulse in flight")
        if pulse.stage not in stages:
            raise PulseStateError(
                f"Pulse {pulse.number} is {pulse.stage.value}, expected one of "
                f"{[s.value for s in stages]}"
            )

    def resolve_contradiction(self, pulse: Pulse, winner_id: str) -> Pulse:
        """
        Resolve the pending contradiction by keeping `winner_id`.

        The other side is dropped from this pulse's context and its heat is
        suppressed to the heat floor when the pulse completes. Once no conflict
        remains, context selection runs.

        Raises:
            PulseStateError: If the pulse is not awaiting resolution
            ValueError: If winner_id is not part of the pending contradiction
        """
        self._check(pulse, PulseStage.AWAITING_RESOLUTION)
        record = pulse.pending_contradiction
        loser = record.other(winner_id)
        pulse.suppressed.append(loser)
        self.audit("contradiction", f"Kept {winner_id}, suppressed {loser}", "resolved")

        following = pulse.pending_contradiction
        if following is None:
            self._select(pulse)
        else:
            self.audit("contradiction", following.description, "paused")
        return pulse

    def complete_pulse(self, pulse: Pulse, new_memories: Iterable = (),
                       relations: Iterable = (),
                       latency_ms: Optional[float] = None) -> PulseResult:
        """
        Finish a pulse: merge memories, learn, update heat and commit atomically.

        The configured cognitive phase scales learning: in INFERENCE no memory,
        relation or hyperedge is added and weights are left alone.

        Args:
            pulse: Pulse in stage SELECTED
            new_memories: ProposedMemory objects (or mappings) from synthesis
            relations: ProposedRelation objects (or mappings) from synthesis
            latency_ms: Measured latency; derived from the clock if None

        Returns:
            PulseResult with telemetry and the applied weight changes

        Raises:
            PulseStateError: If the pulse is not the active one or not selected
        """
        self._check(pulse, PulseStage.SELECTED)
        config = self.config
        profile = phase_profile(config.phase)

        try:
            tracker = copy.deepcopy(self.tracker)
            consolidation = None
            outcomes: List[RelationOutcome] = []
            now = self.clock()

            with GraphTransaction(self.graph) as working:
                if profile.structural_updates:
                    created = self._merge_memories(working, pulse, new_memories, now)
                    outcomes = self._ingest(working, relations)
                else:
                    created = []
                    self._skip_structure(new_memories, relations)

                for loser in pulse.suppressed:
                    suppress_heat(working, loser, config.heat_floor)

                learners = [a for a in pulse.activated if a.node_id not in pulse.suppressed]
                learners += [ActivatedNode(node_id, 1.0, 1.0, 1.0, 0, (node_id,))
                             for node_id in created]
                changes: List[WeightChange] = []
                if profile.learns:
                    changes = reinforce(working, learners, config.learning_rate * profile.plasticity,
                                        config.enable_hebbian, config.cofiring_floor, config.weight_decay)

                for item in learners:
                    boost_heat(working, [item.node_id], amount=item.energy, timestamp=now)
                diffuse_heat(working, profile.decay_rate(config.heat_decay_rate), config.heat_floor)

                gain = HYPEREDGE_SALIENCE_GAIN * profile.plasticity
                for hyperedge_id, mean_energy in pulse.activation.fired_hyperedges.items():
                    hyperedge = working.get_hyperedge(hyperedge_id)
                    if hyperedge is not None:
                        hyperedge.salience = clamp(hyperedge.salience + gain * mean_energy)
                decay_salience(working, profile.salience_retention)

                tracker.track(learners)
                due = (self.pulse_count + 1) % config.consolidation_interval == 0
                if config.enable_consolidation and profile.structural_updates and due:
                    consolidation = consolidate(working, tracker, self.id_factory)
        except Exception:
            pulse.stage = PulseStage.ABANDONED
            self._release()
            raise

        try:
            self.tracker = tracker
            self.pulse_count += 1
            pulse.stage = PulseStage.COMPLETED
            if latency_ms is None:
                latency_ms = max(0.0, (self.clock() - pulse.started_at) * 1000.0)

            telemetry = summarize(self.graph, pulse.activated, changes, latency_ms, timestamp=now)
            self.telemetry_history.append(telemetry)

            if consolidation is not None and consolidation.created:
                self.audit("consolidation", f"Created {consolidation.created} hyperedges", "ok")
        finally:
            self._release()
        logger.info("Pulse %d completed: %d context nodes, %d weight changes, health %.3f",
                    pulse.number, len(pulse.context), len(changes), telemetry.cognitive_health)

        return PulseResult(pulse, telemetry, changes, created, consolidation, outcomes)

    def set_phase(self, phase: Union[CognitivePhase, str]) -> EngineConfig:
        """
        Switch the cognitive phase used by subsequent pulses.

        Raises:
            ConfigurationError: If the phase name is unknown
        """
        self.config = self.config.replace(phase=phase)
        self.audit("phase", f"Cognitive phase set to {self.config.phase.value}", "ok")
        return self.config

    def abandon_pulse(self, pulse: Pulse):
        """Drop an in-flight pulse without touching the graph."""
        self._check(pulse, PulseStage.AWAITING_RESOLUTION, PulseStage.SELECTED)
        pulse.stage = PulseStage.ABANDONED
        self.audit("pulse", f"Pulse {pulse.number} abandoned", "abandoned")
        self._release()

    def _release(self):
        self._active = None
        self._lock.release()

    @contextmanager
    def pulse(self, query: str, seeds: Iterable[str]):
        """
        Context manager around begin_pulse that abandons the pulse on exit
        unless it was completed inside the block.

        Example:
            with engine.pulse("who owns the budget?", seeds) as current:
                answer = llm(current.context)
                engine.complete_pulse(current, new_memories)
        """
        current = self.begin_pulse(query, seeds)
        try:
            yield current
        finally:
            if current is self._active:
                self.abandon_pulse(current)

    def run_pulse(self, query: str, seeds: Iterable[str],
                  synthesize: Optional[Callable[[Pulse], Iterable]] = None,
                  resolver: Callable[[Pulse, ContradictionRecord], str] = prefer_stronger) -> PulseResult:
        """
        Run a whole pulse in one call.

        Args:
            query: Raw query text
            seeds: Seed node ids
            synthesize: Optional callback receiving the pulse after selection and
                returning proposed memories and relations in one iterable
            resolver: Picks the winner id of each contradiction

        Returns:
            PulseResult of the completed pulse
        """
        with self.pulse(query, seeds) as current:
            while current.stage == PulseStage.AWAITING_RESOLUTION:
                record = current.pending_contradiction
                self.resolve_contradiction(current, resolver(current, record))
            proposals = synthesize(current) if synthesize is not None else ()
            memories, relations = [], []
            for item in proposals or ():
                if isinstance(item, ProposedRelation) or (isinstance(item, Mapping) and "source" in item):
                    relations.append(item)
                else:
                    memories.append(item)
            return self.complete_pulse(current, memories, relations)

    # ------------------------------------------------------------------
    # Memory expansion
    # ------------------------------------------------------------------

    def _merge_memories(self, working: Graph, pulse: Pulse, memories: Iterable,
                        now: float) -> List[str]:
        memories = [m if isinstance(m, ProposedMemory) else ProposedMemory.from_dict(m)
                    for m in memories]
        if not memories:
            return []
        if not self.config.enable_memory_expansion:
            self.audit("expansion", f"Ignored {len(memories)} proposed memories", "disabled")
            return []

        by_label = {node.label.lower().strip(): node.id for node in working.nodes.values()}
        created: List[str] = []

        for memory in memories:
            node_id = sanitize_id(memory.id) if memory.id else ""
            existing = node_id if node_id in working.nodes else by_label.get(memory.label.lower().strip())
            if existing is not None:
                node = working.nodes[existing]
                if memory.content and memory.content not in node.content:
                    node.content = f"{node.content}\n{memory.content}".strip()
                self.audit("expansion", f"Merged proposed memory into {existing}", "merged")
                continue

            while not node_id or node_id in working.nodes:
                node_id = self.id_factory()
            working.add_node(Node(node_id, memory.type, memory.label, memory.content, heat=1.0,
                                  created_at=now, last_accessed=now, embedding=memory.embedding))
            by_label[working.nodes[node_id].label.lower().strip()] = node_id
            created.append(node_id)

        anchors = self._anchors(working, pulse)
        for node_id in created:
            for anchor in anchors:
                if anchor != node_id and not working.synapses_between(anchor, node_id):
                    working.connect(anchor, node_id, ANCHOR_FORWARD_WEIGHT, ANCHOR_BACKWARD_WEIGHT)
        for a, b in itertools.combinations(created, 2):
            if not working.synapses_between(a, b):
                working.connect(a, b, MESH_WEIGHT)

        if created:
            self.audit("expansion", f"Created {len(created)} memories: {', '.join(created)}", "ok")
        return created

    def _ingest(self, working: Graph, relations: Iterable) -> List[RelationOutcome]:
        relations = list(relations)
        if not relations:
            return []
        if not self.config.enable_memory_expansion:
            self.audit("relations", f"Ignored {len(relations)} proposed relations", "disabled")
            return []

        outcomes = ingest_relations(working, relations)
        counts = {}
        for outcome in outcomes:
            counts[outcome.status] = counts.get(outcome.status, 0) + 1
        summary = ", ".join(f"{count} {status}" for status, count in sorted(counts.items()))
        self.audit("relations", f"Processed {len(outcomes)} of {len(relations)} relations: {summary}",
                   "ok" if counts.get("created") or counts.get("strengthened") else "empty")
        return outcomes

    def _skip_structure(self, memories: Iterable, relations: Iterable):
        memories, relations = list(memories), list(relations)
        if memories or relations:
            self.audit("phase", f"Inference phase: ignored {len(memories)} memories and "
                                f"{len(relations)} relations", "skipped")

    @staticmethod
    def _anchors(working: Graph, pulse: Pulse) -> Sequence[str]:
        """Top node of the selected context, else the pulse's seeds still in the graph."""
        for item in pulse.context:
            if item.node_id in working.nodes:
                return [item.node_id]
        return [s for s in pulse.seeds if s in working.nodes and s not in pulse.suppressed]
