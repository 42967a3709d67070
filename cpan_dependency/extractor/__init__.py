"""Prerequisite extractor registry and dispatcher."""

from __future__ import annotations

import logging
from pathlib import Path

from cpan_dependency.errors import DependencyExtractionFailed
from cpan_dependency.extractor.base import BaseExtractor
from cpan_dependency.extractor.build_extractor import BuildPLExtractor
from cpan_dependency.extractor.makefile_extractor import MakefilePLExtractor
from cpan_dependency.extractor.meta_extractor import MetaFileExtractor

logger = logging.getLogger(__name__)


def _get_extractors() -> list[BaseExtractor]:
    # Order matters: the first strategy that succeeds wins
    return [
        MetaFileExtractor(),
        MakefilePLExtractor(),
        BuildPLExtractor(),
    ]


def extract_declared_prereqs(dist_dir: Path) -> set[str]:
    """Return the raw prerequisite names declared by an unpacked distribution."""
    for extractor in _get_extractors():
        if not extractor.applies_to(dist_dir):
            continue
        try:
            names = extractor.extract(dist_dir)
        except OSError as e:
            logger.debug("%s extractor failed on %s: %s", extractor.name, dist_dir, e)
            continue
        if names is not None:
            logger.debug("prereqs from %s: %s", extractor.name, ", ".join(sorted(names)))
            return names
        logger.info("no usable %s; trying next method", extractor.name)
    raise DependencyExtractionFailed(f"no META file, Makefile.PL or Build.PL usable in {dist_dir}")


__all__ = [
    "BaseExtractor",
    "BuildPLExtractor",
    "MakefilePLExtractor",
    "MetaFileExtractor",
    "extract_declared_prereqs",
]
