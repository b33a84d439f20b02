"""
Context selection with Maximal Marginal Relevance (MMR).

Candidates are picked greedily by

    score = λ · relevance − (1 − λ) · redundancy

where relevance is the share of query terms found in a node's label or
content (with a small floor so purely energy-driven candidates stay in play),
and redundancy is the similarity to the most similar node already selected:
cosine similarity when both nodes carry embeddings, a category-equality
heuristic otherwise. Equal scores keep the activation order, so the highest
biased energy wins ties.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Sequence

from synaptic.energy.activation import ActivatedNode
from synaptic.energy.similarity import embedding_similarity
from synaptic.knowledge.text import terms
from synaptic.memory.graph import Graph, Node

logger = logging.getLogger(__name__)

RELEVANCE_FLOOR = 0.1
SAME_TYPE_REDUNDANCY = 0.8
CROSS_TYPE_REDUNDANCY = 0.1


@dataclass(frozen=True)
class PruningLog:
    """
    One candidate's row in the selection trace.

    Attributes:
        node_id: Candidate node id
        relevance: Lexical relevance to the query
        redundancy: Similarity to the closest selected node when scored
        energy: Candidate biased energy
        score: MMR score (information gain) when last evaluated
        selected: Whether the candidate made it into the context
        rank: Selection order (0-based), None if not selected
    """
    node_id: str
    relevance: float
    redundancy: float
    energy: float
    score: float
    selected: bool
    rank: Optional[int] = None


@dataclass
class SelectionResult:
    """Selected context plus the full pruning trace."""
    selected: List[ActivatedNode] = field(default_factory=list)
    trace: List[PruningLog] = field(default_factory=list)


def relevance(node: Optional[Node], query_terms: FrozenSet[str]) -> float:
    """
    Normalised lexical overlap of query terms with a node's label and content.

    Returns:
        Fraction of query terms present in the node, at least RELEVANCE_FLOOR
    """
    if node is None or not query_terms:
        return RELEVANCE_FLOOR
    node_terms = terms(node.label) | terms(node.content)
    overlap = len(query_terms & node_terms) / len(query_terms)
    return max(RELEVANCE_FLOOR, overlap)


def pair_redundancy(a: Optional[Node], b: Optional[Node]) -> float:
    """Similarity of two nodes in [0, 1]: embedding cosine if possible, else category match."""
    if a is None or b is None:
        return 0.0
    cosine = embedding_similarity(a.embedding, b.embedding)
    if cosine is not None:
        return max(0.0, cosine)
    return SAME_TYPE_REDUNDANCY if a.type == b.type else CROSS_TYPE_REDUNDANCY


def select(graph: Graph, activated: Sequence[ActivatedNode], query_text: str, k: int,
           mmr_lambda: float = 0.7, enabled: bool = True) -> SelectionResult:
    """
    Re-rank and truncate the activated set for downstream synthesis.

    Args:
        graph: Graph the activated nodes belong to (read only)
        activated: Activated nodes, ordered by biased energy
        query_text: Raw user query
        k: Maximum number of nodes to select
        mmr_lambda: Relevance/diversity trade-off in [0, 1]
        enabled: When False, return the top-k by biased energy without MMR

    Returns:
        SelectionResult with the selected nodes in pick order and a trace
        row for every candidate
    """
    result = SelectionResult()
    if not activated:
        return result
    k = max(0, k)

    if not enabled:
        for position, item in enumerate(activated):
            chosen = position < k
            if chosen:
                result.selected.append(item)
            result.trace.append(PruningLog(
                item.node_id, 0.0, 0.0, item.biased_energy, item.biased_energy,
                chosen, position if chosen else None,
            ))
        return result

    query_terms = terms(query_text)
    relevances: Dict[str, float] = {
        a.node_id: relevance(graph.nodes.get(a.node_id), query_terms) for a in activated
    }
    redundancies: Dict[str, float] = {a.node_id: 0.0 for a in activated}
    pool = list(activated)

    while pool and len(result.selected) < k:
        best_index, best_score = 0, None
        for index, candidate in enumerate(pool):
            score = (mmr_lambda * relevances[candidate.node_id]
                     - (1.0 - mmr_lambda) * redundancies[candidate.node_id])
            if best_score is None or score > best_score:
                best_index, best_score = index, score

        chosen = pool.pop(best_index)
        result.trace.append(PruningLog(
            chosen.node_id, relevances[chosen.node_id], redundancies[chosen.node_id],
            chosen.biased_energy, best_score, True, len(result.selected),
        ))
        result.selected.append(chosen)

        chosen_node = graph.nodes.get(chosen.node_id)
        for candidate in pool:
            similarity = pair_redundancy(graph.nodes.get(candidate.node_id), chosen_node)
            redundancies[candidate.node_id] = max(redundancies[candidate.node_id], similarity)

    for candidate in pool:
        score = (mmr_lambda * relevances[candidate.node_id]
                 - (1.0 - mmr_lambda) * redundancies[candidate.node_id])
        result.trace.append(PruningLog(
            candidate.node_id, relevances[candidate.node_id], redundancies[candidate.node_id],
            candidate.biased_energy, score, False,
        ))

    logger.debug("MMR selected %d of %d candidates", len(result.selected), len(activated))
    return result
