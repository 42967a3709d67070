"""Abstract package index resolver."""

from __future__ import annotations

import abc
from pathlib import Path

from cpan_dependency.extractor import extract_declared_prereqs
from cpan_dependency.models import ResolvedPackage


class BaseResolver(abc.ABC):
    """Everything the graph builder needs to know from the package index."""

    @abc.abstractmethod
    def resolve(self, name: str) -> ResolvedPackage | None:
        """Map a module or distribution name to its distribution, or ``None``."""

    @abc.abstractmethod
    def fetch_and_extract(self, dist_id: str, workdir: Path) -> Path:
        """Download and unpack a distribution under ``workdir``.

        Returns the unpacked distribution directory. Raises
        :class:`~cpan_dependency.errors.FetchExtractFailed`.
        """

    @abc.abstractmethod
    def all_package_names(self) -> list[str]:
        """Every distribution known to the index."""

    def is_standard_library(self, name: str) -> bool:
        resolved = self.resolve(name)
        return resolved is not None and resolved.is_core_library

    def extract_declared_prereqs(self, dist_dir: Path) -> set[str]:
        return extract_declared_prereqs(dist_dir)

    def close(self) -> None:
        """Release any client resources."""
