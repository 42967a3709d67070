"""Shared fixtures: an in-process resolver standing in for MetaCPAN."""

from __future__ import annotations

from pathlib import Path

import pytest

from cpan_dependency.errors import FetchExtractFailed, PackageResolutionFailed
from cpan_dependency.models import ResolvedPackage
from cpan_dependency.resolver.base import BaseResolver


class FakeResolver(BaseResolver):
    """Resolver backed by dictionaries.

    Args:
        dists: dist id -> (author_id, author_name)
        modules: module name -> dist id
        files: dist id -> {filename: content} written on fetch
        core: module names that ship with perl
        bundles: dist ids that are meta-bundles
        broken: dist ids whose fetch fails
        unavailable: names whose lookup fails as if the index were down
    """

    def __init__(self, dists=None, modules=None, files=None, core=(), bundles=(), broken=(), unavailable=()):
        self.dists = dict(dists or {})
        self.modules = dict(modules or {})
        self.files = dict(files or {})
        self.core = set(core)
        self.bundles = set(bundles)
        self.broken = set(broken)
        self.unavailable = set(unavailable)
        self.workdirs: list[Path] = []
        self.fetched: list[str] = []

    def resolve(self, name):
        if name in self.unavailable:
            raise PackageResolutionFailed(name, "index unavailable")
        if name in self.core:
            return ResolvedPackage(canonical_id="perl", is_core_library=True)
        dist_id = self.modules.get(name, name)
        if dist_id not in self.dists:
            return None
        author_id, author_name = self.dists[dist_id]
        return ResolvedPackage(
            canonical_id=dist_id,
            author_id=author_id,
            author_name=author_name,
            version="1.00",
            is_meta_bundle=dist_id in self.bundles,
        )

    def is_standard_library(self, name):
        return name in self.core

    def fetch_and_extract(self, dist_id, workdir):
        self.workdirs.append(Path(workdir))
        self.fetched.append(dist_id)
        if dist_id in self.broken:
            raise FetchExtractFailed(f"cannot fetch {dist_id}")
        dist_dir = Path(workdir) / f"{dist_id}-1.00"
        dist_dir.mkdir()
        for filename, content in self.files.get(dist_id, {}).items():
            (dist_dir / filename).write_text(content)
        return dist_dir

    def all_package_names(self):
        return sorted(self.dists)


def makefile_pl(*modules: str) -> str:
    prereqs = "\n".join(f"        '{m}' => 0," for m in modules)
    return (
        "use ExtUtils::MakeMaker;\n"
        "WriteMakefile(\n"
        "    NAME => 'Some::Module',\n"
        "    PREREQ_PM => {\n"
        f"{prereqs}\n"
        "    },\n"
        ");\n"
    )


@pytest.fixture
def resolver():
    """A small CPAN: three authors, a core module and a bundle."""
    return FakeResolver(
        dists={
            "WWW-Mechanize": ("PETDANCE", "Andy Lester"),
            "libwww-perl": ("GAAS", "Gisle Aas"),
            "URI": ("GAAS", "Gisle Aas"),
            "HTML-Parser": ("GAAS", "Gisle Aas"),
            "Test-Warn": ("CHORNY", "Alexandr Ciornii"),
            "Bundle-LWP": ("GAAS", "Gisle Aas"),
        },
        modules={
            "WWW::Mechanize": "WWW-Mechanize",
            "LWP": "libwww-perl",
            "LWP::UserAgent": "libwww-perl",
            "URI": "URI",
            "URI::URL": "URI",
            "HTML::Parser": "HTML-Parser",
            "HTML::TokeParser": "HTML-Parser",
            "Test::Warn": "Test-Warn",
            "Bundle::LWP": "Bundle-LWP",
        },
        files={
            "WWW-Mechanize": {
                "Makefile.PL": makefile_pl(
                    "LWP::UserAgent", "URI::URL", "HTML::TokeParser",
                    "Test::Warn", "Carp", "Acme::Missing", "perl",
                ),
            },
            "libwww-perl": {
                "Makefile.PL": makefile_pl("URI", "HTML::Parser", "File::Spec"),
            },
            "URI": {"Makefile.PL": makefile_pl("Scalar::Util")},
            "HTML-Parser": {"Makefile.PL": makefile_pl()},
            "Test-Warn": {"Makefile.PL": makefile_pl("Test::More")},
            "Bundle-LWP": {"Makefile.PL": makefile_pl("LWP")},
        },
        core={"Carp", "File::Spec", "Scalar::Util", "Test::More"},
        bundles={"Bundle-LWP"},
    )
