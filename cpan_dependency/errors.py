"""Exceptions raised by the dependency graph builder."""

from __future__ import annotations


class CPANDependencyError(Exception):
    """Base class for all errors raised by this package."""


class ResolverUnavailable(CPANDependencyError):
    """The package index client could not be constructed."""


class PackageResolutionFailed(CPANDependencyError):
    """A module or distribution name is unknown to the package index."""

    def __init__(self, name: str, reason: str = ""):
        self.name = name
        message = f"no distribution found for {name}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class FetchExtractFailed(CPANDependencyError):
    """The distribution archive could not be downloaded or unpacked."""


class DependencyExtractionFailed(CPANDependencyError):
    """None of the prerequisite extraction strategies produced a result."""


class MalformedSnapshotFile(CPANDependencyError):
    """A graph file or relational snapshot could not be parsed."""


class InvalidArgument(CPANDependencyError):
    """An entry point was called without usable arguments."""
