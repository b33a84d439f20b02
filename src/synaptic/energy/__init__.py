"""Spreading activation and similarity for the Synaptic Context Engine."""

from synaptic.energy.activation import (
    ActivatedNode,
    ActivationParams,
    ActivationTrace,
    activate,
    fire,
    spread_activation,
)
from synaptic.energy.similarity import cosine_similarity_pairwise, embedding_similarity

__all__ = [
    "ActivatedNode",
    "ActivationParams",
    "ActivationTrace",
    "activate",
    "spread_activation",
    "fire",
    "cosine_similarity_pairwise",
    "embedding_similarity",
]
