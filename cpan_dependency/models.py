"""Data models for the CPAN dependency graph."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

ALL_CPAN = "all CPAN modules"

# Names that are never processed as distributions of their own.
DEFAULT_SKIP: frozenset[str] = frozenset({"perl", "parrot", "ponie"})

DEFAULT_METACPAN_URL = "https://fastapi.metacpan.org/v1"

# Distribution name prefixes for aggregates without code of their own
META_BUNDLE_PREFIXES: tuple[str, ...] = ("Bundle-", "Task-")


@dataclass
class PackageRecord:
    """One distribution in the dependency graph."""
    author_name: str = ""
    author_id: str = ""
    score: int = 0
    prereqs: dict[str, bool] = field(default_factory=dict)  # prereq -> cross_author
    used_by: dict[str, bool] = field(default_factory=dict)  # dependent -> cross_author


@dataclass
class ResolvedPackage:
    """Identity of a module or distribution as reported by the package index."""
    canonical_id: str
    author_id: str = ""
    author_name: str = ""
    version: str = ""
    download_url: str = ""
    is_core_library: bool = False
    is_meta_bundle: bool = False


@dataclass
class SnapshotDist:
    """A distribution row from a relational snapshot, with its raw prerequisites."""
    name: str
    author_id: str = ""
    author_name: str = ""
    requires: list[str] = field(default_factory=list)


@dataclass
class DependencyConfig:
    """Configuration shared by the resolver and the ingestion layer."""
    verbose: bool = False
    debug: int = 0
    color: bool = True
    prefer_bin: bool = False
    base_url: str = ""
    timeout: float = 30.0
    build_dir: Path | None = None
    skip: list[str] = field(default_factory=list)
    ignore: list[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.base_url:
            self.base_url = os.getenv("CPANDEP_METACPAN_URL", DEFAULT_METACPAN_URL)
        if self.build_dir is None and os.getenv("CPANDEP_BUILD_DIR"):
            self.build_dir = Path(os.environ["CPANDEP_BUILD_DIR"])
        self.base_url = self.base_url.rstrip("/")


def is_cross_author(author_id: str, other_id: str) -> bool:
    """Two packages share an author only when both ids are known and equal."""
    if not author_id or not other_id:
        return True
    return author_id != other_id


def is_meta_bundle_name(dist_name: str) -> bool:
    return dist_name.startswith(META_BUNDLE_PREFIXES)


def is_perl_release(name: str) -> bool:
    """``perl`` itself or a versioned release such as ``perl-5.8.6``."""
    if name in DEFAULT_SKIP:
        return True
    return name.startswith("perl-5")
