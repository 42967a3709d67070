"""Analyze CPAN distributions and build their dependency graph."""

from __future__ import annotations

from cpan_dependency.dependency import CPANDependency
from cpan_dependency.errors import (
    CPANDependencyError,
    DependencyExtractionFailed,
    FetchExtractFailed,
    InvalidArgument,
    MalformedSnapshotFile,
    PackageResolutionFailed,
    ResolverUnavailable,
)
from cpan_dependency.graph import DependencyGraph
from cpan_dependency.models import ALL_CPAN, DependencyConfig, PackageRecord, ResolvedPackage
from cpan_dependency.scorer import DependencyScorer

__version__ = "0.3.0"

__all__ = [
    "ALL_CPAN",
    "CPANDependency",
    "CPANDependencyError",
    "DependencyConfig",
    "DependencyExtractionFailed",
    "DependencyGraph",
    "DependencyScorer",
    "FetchExtractFailed",
    "InvalidArgument",
    "MalformedSnapshotFile",
    "PackageRecord",
    "PackageResolutionFailed",
    "ResolvedPackage",
    "ResolverUnavailable",
]
