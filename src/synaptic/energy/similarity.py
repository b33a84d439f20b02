"""
Similarity metrics for memory nodes.

Embeddings are optional on nodes, so similarity is computed opportunistically:
cosine similarity σ(u, v) = uᵀv / (‖u‖ ‖v‖) when both vectors exist and share
a dimension, otherwise callers fall back to lexical or type heuristics.
"""

from typing import Optional

import numpy as np


def cosine_similarity_pairwise(v1: np.ndarray, v2: np.ndarray) -> float:
    """
    Compute cosine similarity between two vectors.
    
    Args:
        v1: Shape (d,) - first vector
        v2: Shape (d,) - second vector
        
    Returns:
        float: Cosine similarity in [-1, 1] (0 for near-zero vectors)
    """
    norm1 = np.linalg.norm(v1)
    norm2 = np.linalg.norm(v2)
    
    if norm1 < 1e-10 or norm2 < 1e-10:
        return 0.0
    
    return float(np.clip(np.dot(v1, v2) / (norm1 * norm2), -1.0, 1.0))


def embedding_similarity(a: Optional[np.ndarray], b: Optional[np.ndarray]) -> Optional[float]:
    """
    Cosine similarity of two optional embeddings.

    Returns:
        Similarity in [-1, 1], or None when either embedding is missing or
        the dimensions differ.
    """
    if a is None or b is None:
        return None
    if a.shape != b.shape:
        return None
    return cosine_similarity_pairwise(a, b)
