"""Context selection and contradiction detection over activated memory."""

from synaptic.knowledge.contradictions import ContradictionRecord, detect, heuristic_conflict
from synaptic.knowledge.selection import PruningLog, SelectionResult, pair_redundancy, relevance, select

__all__ = [
    "select",
    "relevance",
    "pair_redundancy",
    "PruningLog",
    "SelectionResult",
    "detect",
    "heuristic_conflict",
    "ContradictionRecord",
]
