"""Facade tying ingestion, scoring and persistence together."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import fields
from pathlib import Path
from typing import Any

from cpan_dependency.errors import InvalidArgument
from cpan_dependency.graph import DependencyGraph
from cpan_dependency.ingestion import Ingester
from cpan_dependency.models import ALL_CPAN, DependencyConfig, PackageRecord
from cpan_dependency.persistence import load_graph, read_cpants_db, save_graph
from cpan_dependency.resolver.base import BaseResolver
from cpan_dependency.scorer import DependencyScorer

logger = logging.getLogger(__name__)

_CONFIG_FIELDS = {f.name for f in fields(DependencyConfig)}


class CPANDependency:
    """Analyze CPAN distributions and rank them by how much they are depended upon.

    Usage::

        deps = CPANDependency(process=["WWW::Mechanize", "Template"])
        deps.run()
        top = sorted(deps.scores().items(), key=lambda kv: -kv[1])[:10]

    Args:
        config: Shared configuration. Keyword options matching a
            :class:`DependencyConfig` field override it.
        resolver: Package index client. Defaults to :class:`MetaCpanResolver`.
        process: Names to add to the worklist, or :data:`ALL_CPAN`.
    """

    def __init__(
        self,
        config: DependencyConfig | None = None,
        resolver: BaseResolver | None = None,
        process: Iterable[str] | str | None = None,
        **options: Any,
    ):
        self.config = config or DependencyConfig()
        for key, value in options.items():
            if key in _CONFIG_FIELDS:
                setattr(self.config, key, value)
            else:
                logger.warning("unknown option '%s': ignoring", key)

        if resolver is None:
            from cpan_dependency.resolver.metacpan import MetaCpanResolver
            resolver = MetaCpanResolver(self.config)
        self.resolver = resolver

        self.graph = DependencyGraph()
        self.ingester = Ingester(self.graph, self.resolver, self.config)
        self.scorer = DependencyScorer(self.graph)
        self.worklist: list[str] = []
        if process is not None:
            self.process(process)

    # ── Worklist ────────────────────────────────────────────

    def process(self, names: Iterable[str] | str) -> None:
        """Add names to the worklist; :data:`ALL_CPAN` adds every distribution."""
        worklist = self._as_list(names)
        if not worklist:
            logger.warning("no argument given to 'process'")
            return
        if ALL_CPAN in worklist:
            worklist = self.resolver.all_package_names()
        self.worklist.extend(worklist)

    def skip(self, names: Iterable[str] | str) -> None:
        """Names of modules or distributions not to process."""
        worklist = self._as_list(names)
        if not worklist:
            logger.warning("no argument given to 'skip'")
            return
        self.ingester.add_skip(worklist)

    def run(self) -> dict[str, int]:
        """Ingest the worklist and score the graph."""
        self.ingest_discovery(self.worklist)
        return self.score()

    # ── Ingestion ───────────────────────────────────────────

    def ingest_discovery(self, names: Iterable[str] | str) -> int:
        try:
            return self.ingester.ingest_discovery(names)
        except InvalidArgument as e:
            logger.warning("%s", e)
            return 0

    def ingest_bulk(self, db_path: Path) -> int:
        """Rebuild the graph from a CPANTS database snapshot."""
        dists = read_cpants_db(Path(db_path))
        self.graph.replace({})
        return self.ingester.ingest_bulk(dists)

    # ── Scoring ─────────────────────────────────────────────

    def score(self) -> dict[str, int]:
        return self.scorer.score()

    # ── Persistence ─────────────────────────────────────────

    def export_graph(self, path: Path) -> Path:
        return save_graph(self.graph.records(), Path(path))

    def import_graph(self, path: Path) -> None:
        """Replace the graph with the contents of a saved file."""
        self.graph.replace(load_graph(Path(path)))

    # ── Accessors ───────────────────────────────────────────

    def records(self) -> dict[str, PackageRecord]:
        return self.graph.records()

    def scores(self) -> dict[str, int]:
        return self.graph.scores()

    deps_by_dists = records
    score_by_dists = scores

    def close(self) -> None:
        self.resolver.close()

    @staticmethod
    def _as_list(names: Iterable[str] | str | None) -> list[str]:
        if names is None:
            return []
        if isinstance(names, str):
            return [names]
        return list(names)
