"""
Copy-on-write staging for pulse mutations.

Every structural change a pulse makes (new memories, weight updates, heat
changes, hyperedge salience) is applied to a working copy of the graph. The
copy is written back onto the live graph only when the whole block succeeds,
so an abandoned or failed pulse leaves the caller's graph untouched.
"""

import logging

from synaptic.memory.graph import Graph

logger = logging.getLogger(__name__)


class GraphTransaction:
    """
    Context manager yielding a working copy that is committed on clean exit.

    Example:
        with GraphTransaction(graph) as working:
            reinforce(working, activated, eta=0.1)
            diffuse_heat(working, 0.1)
    """

    def __init__(self, graph: Graph):
        self.graph = graph
        self.working = None
        self.committed = False

    def __enter__(self) -> Graph:
        self.working = self.graph.copy()
        return self.working

    def __exit__(self, exc_type, exc, tb):
        if exc_type is not None:
            logger.warning("Discarding staged graph changes after %s: %s", exc_type.__name__, exc)
            self.working = None
            return False
        self.graph.restore(self.working)
        self.committed = True
        return False
