"""Depth-weighted score walker over the prerequisite graph."""

from __future__ import annotations

import contextlib
import logging
import sys

from cpan_dependency.graph import DependencyGraph

logger = logging.getLogger(__name__)


class DependencyScorer:
    """Assign scores and reverse edges by walking every prerequisite chain.

    Each edge adds the current depth to its target when the two packages
    have different authors. The depth grows by one for every cross-author
    hop. A package that is already on the active path is not re-entered,
    so cycles terminate while diamonds still collect every path.
    """

    def __init__(self, graph: DependencyGraph):
        self.graph = graph

    def score(self) -> dict[str, int]:
        """Rescore the whole graph from zero and return the scores."""
        self.graph.reset_scores()
        roots = list(self.graph)
        with self._recursion_headroom():
            for root in roots:
                self._walk(root, 1, set())
        logger.info("scored %d distributions", len(self.graph))
        return self.graph.scores()

    def score_from(self, root: str, depth: int = 1) -> None:
        """Walk a single root, adding to the current scores."""
        with self._recursion_headroom():
            self._walk(root, depth, set())

    @contextlib.contextmanager
    def _recursion_headroom(self):
        # One frame per hop; a path visits each record at most once
        previous = sys.getrecursionlimit()
        needed = len(self.graph) * 4 + 100
        if needed > previous:
            sys.setrecursionlimit(needed)
        try:
            yield
        finally:
            sys.setrecursionlimit(previous)

    def _walk(self, dist_id: str, depth: int, visiting: set[str]) -> None:
        if dist_id in visiting:
            return
        record = self.graph.get(dist_id)
        if record is None:
            return

        visiting.add(dist_id)
        try:
            for prereq_id, cross_author in list(record.prereqs.items()):
                weight = 1 if cross_author else 0
                target = self.graph.get_or_create(prereq_id)
                self.graph.add_score(prereq_id, depth * weight)
                self.graph.set_used_by(
                    prereq_id, dist_id, target.author_id != record.author_id,
                )
                self._walk(prereq_id, depth + weight, visiting)
        finally:
            visiting.discard(dist_id)
