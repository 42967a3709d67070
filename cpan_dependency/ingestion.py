"""Merge resolved prerequisite facts into the dependency graph."""

from __future__ import annotations

import enum
import logging
import tempfile
from collections.abc import Iterable
from pathlib import Path

from cpan_dependency.errors import (
    CPANDependencyError,
    InvalidArgument,
    PackageResolutionFailed,
)
from cpan_dependency.graph import DependencyGraph
from cpan_dependency.models import (
    ALL_CPAN,
    DEFAULT_SKIP,
    DependencyConfig,
    SnapshotDist,
    is_cross_author,
    is_meta_bundle_name,
    is_perl_release,
)
from cpan_dependency.resolver.base import BaseResolver

logger = logging.getLogger(__name__)


class PrereqKind(enum.Enum):
    IGNORE = "ignore"
    STANDARD_LIBRARY = "standard_library"
    UNRESOLVABLE = "unresolvable"
    NORMAL = "normal"


class Ingester:
    """Populate a :class:`DependencyGraph` from resolver facts.

    Discovery ingestion fetches each distribution and reads its declared
    prerequisites. Bulk ingestion takes pre-extracted names from a
    relational snapshot. Both go through :meth:`build_prereqs`.
    """

    def __init__(
        self,
        graph: DependencyGraph,
        resolver: BaseResolver,
        config: DependencyConfig | None = None,
    ):
        self.graph = graph
        self.resolver = resolver
        self.config = config or DependencyConfig()
        self.ignored: set[str] = set(DEFAULT_SKIP) | set(self.config.ignore)
        self.processed: set[str] = set(DEFAULT_SKIP)
        if self.config.skip:
            self.add_skip(self.config.skip)

    # ── Classification ──────────────────────────────────────

    def classify(self, raw_name: str) -> tuple[PrereqKind, str, str]:
        """Classify one raw prerequisite name.

        Returns ``(kind, dist_id, author_id)``; the author id is empty unless
        the name resolved to a normal distribution.
        """
        if raw_name in self.ignored or is_perl_release(raw_name):
            return PrereqKind.IGNORE, raw_name, ""
        if self.resolver.is_standard_library(raw_name):
            return PrereqKind.STANDARD_LIBRARY, raw_name, ""

        resolved = self.resolver.resolve(raw_name)
        if resolved is None:
            return PrereqKind.UNRESOLVABLE, raw_name, ""
        if resolved.is_core_library:
            return PrereqKind.STANDARD_LIBRARY, resolved.canonical_id, ""
        if resolved.canonical_id in self.ignored:
            return PrereqKind.IGNORE, resolved.canonical_id, ""
        return PrereqKind.NORMAL, resolved.canonical_id, resolved.author_id

    def build_prereqs(self, author_id: str, raw_names: Iterable[str]) -> dict[str, bool]:
        """Turn raw prerequisite names into ``{dist_id: cross_author}``."""
        prereqs: dict[str, bool] = {}
        for raw in sorted({name.strip() for name in raw_names if name and name.strip()}):
            kind, dist_id, prereq_author = self.classify(raw)
            if kind is PrereqKind.IGNORE:
                continue
            if kind is PrereqKind.STANDARD_LIBRARY:
                logger.debug("  %s is in Perl core", raw)
                continue
            if kind is PrereqKind.UNRESOLVABLE:
                logger.info("  no dist found for %s", raw)
                prereqs[dist_id] = True
                continue
            prereqs[dist_id] = is_cross_author(author_id, prereq_author)
        return prereqs

    # ── Skip list ───────────────────────────────────────────

    def add_skip(self, names: Iterable[str]) -> None:
        """Mark distributions as already processed so discovery passes over them."""
        for name in names:
            resolved = self.resolver.resolve(name)
            self.processed.add(resolved.canonical_id if resolved else name)

    # ── Discovery ───────────────────────────────────────────

    def ingest_discovery(self, names: Iterable[str] | str) -> int:
        """Fetch and ingest each named module or distribution.

        Returns the number of distributions written to the graph. Failures
        are logged per package and never stop the worklist.
        """
        if names == ALL_CPAN:
            worklist = self.resolver.all_package_names()
        else:
            worklist = [names] if isinstance(names, str) else list(names)
        if not worklist:
            raise InvalidArgument("no package given to process")

        ingested = 0
        for name in worklist:
            try:
                if self._ingest_one(name):
                    ingested += 1
            except CPANDependencyError as e:
                logger.warning("%s: %s", name, e)
            except Exception:
                logger.exception("%s: unexpected error", name)
        logger.info("end processing: %d of %d ingested", ingested, len(worklist))
        return ingested

    def _ingest_one(self, name: str) -> bool:
        resolved = self.resolver.resolve(name)
        if resolved is None:
            raise PackageResolutionFailed(name)

        dist_id = resolved.canonical_id
        if dist_id in self.processed or resolved.is_core_library:
            logger.info("%s >> skip", name)
            return False
        if resolved.is_meta_bundle:
            logger.info("%s >> skip meta-bundle %s", name, dist_id)
            return False
        self.processed.add(dist_id)

        logger.info(
            "%s => %s %s by %s (%s)",
            name, dist_id, resolved.version, resolved.author_id, resolved.author_name,
        )

        with self._workspace() as workdir:
            dist_dir = self.resolver.fetch_and_extract(dist_id, Path(workdir))
            raw_names = self.resolver.extract_declared_prereqs(dist_dir)

        logger.info("  prereqs: %s", ", ".join(sorted(raw_names)))
        prereqs = self.build_prereqs(resolved.author_id, raw_names)
        self.graph.put(dist_id, resolved.author_name, resolved.author_id, prereqs)
        return True

    def _workspace(self) -> tempfile.TemporaryDirectory:
        build_dir = self.config.build_dir
        if build_dir is not None:
            build_dir.mkdir(parents=True, exist_ok=True)
        return tempfile.TemporaryDirectory(
            prefix="cpandep-", dir=build_dir, ignore_cleanup_errors=True,
        )

    # ── Bulk import ─────────────────────────────────────────

    def ingest_bulk(self, dists: Iterable[SnapshotDist]) -> int:
        """Ingest distributions whose raw prerequisites are already known.

        The author id from a live lookup wins; the id carried by the
        snapshot row is used only when the lookup fails. A distribution
        whose prerequisites cannot be classified is left out.
        """
        ingested = 0
        for dist in dists:
            if (
                is_meta_bundle_name(dist.name)
                or dist.name in self.ignored
                or is_perl_release(dist.name)
            ):
                logger.debug("%s >> skip", dist.name)
                continue
            try:
                live = self.resolver.resolve(dist.name)
            except PackageResolutionFailed as e:
                logger.info("%s: %s; using snapshot author", dist.name, e)
                live = None
            author_id = live.author_id if live and live.author_id else dist.author_id
            author_name = live.author_name if live and live.author_name else dist.author_name

            try:
                prereqs = self.build_prereqs(author_id, dist.requires)
            except CPANDependencyError as e:
                logger.warning("%s: %s", dist.name, e)
                continue
            self.graph.put(dist.name, author_name, author_id, prereqs)
            self.processed.add(dist.name)
            ingested += 1
        logger.info("imported %d distributions", ingested)
        return ingested
