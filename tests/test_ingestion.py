"""Tests for discovery and bulk ingestion."""

import logging

from cpan_dependency.dependency import CPANDependency
from cpan_dependency.graph import DependencyGraph
from cpan_dependency.ingestion import Ingester, PrereqKind
from cpan_dependency.models import ALL_CPAN, DependencyConfig, SnapshotDist

from conftest import FakeResolver, makefile_pl


def _ingester(resolver, **config):
    return Ingester(DependencyGraph(), resolver, DependencyConfig(**config))


class TestClassify:
    def test_normal(self, resolver):
        ing = _ingester(resolver)
        assert ing.classify("LWP::UserAgent") == (PrereqKind.NORMAL, "libwww-perl", "GAAS")

    def test_core_module(self, resolver):
        assert _ingester(resolver).classify("Carp")[0] is PrereqKind.STANDARD_LIBRARY

    def test_perl_is_ignored(self, resolver):
        ing = _ingester(resolver)
        assert ing.classify("perl")[0] is PrereqKind.IGNORE
        assert ing.classify("perl-5.8.6")[0] is PrereqKind.IGNORE

    def test_configured_ignore(self, resolver):
        ing = _ingester(resolver, ignore=["Test-Warn"])
        assert ing.classify("Test::Warn")[0] is PrereqKind.IGNORE

    def test_unresolvable(self, resolver):
        assert _ingester(resolver).classify("Acme::Missing") == (
            PrereqKind.UNRESOLVABLE, "Acme::Missing", "",
        )

    def test_build_prereqs(self, resolver):
        ing = _ingester(resolver)
        prereqs = ing.build_prereqs("GAAS", ["URI", " HTML::Parser ", "Carp", "Acme::Missing", "", "Test::Warn"])
        assert prereqs == {
            "URI": False,
            "HTML-Parser": False,
            "Acme::Missing": True,
            "Test-Warn": True,
        }

    def test_build_prereqs_unknown_author_is_cross(self):
        resolver = FakeResolver(dists={"A": ("", ""), "B": ("", "")})
        ing = _ingester(resolver)
        assert ing.build_prereqs("", ["B"]) == {"B": True}


class TestDiscovery:
    def test_ingest_worklist(self, resolver):
        ing = _ingester(resolver)
        count = ing.ingest_discovery(["WWW::Mechanize", "LWP", "URI"])
        assert count == 3

        mech = ing.graph.get("WWW-Mechanize")
        assert mech.author_id == "PETDANCE"
        assert mech.author_name == "Andy Lester"
        assert mech.prereqs == {
            "libwww-perl": True,
            "URI": True,
            "HTML-Parser": True,
            "Test-Warn": True,
            "Acme::Missing": True,
        }
        assert ing.graph.get("libwww-perl").prereqs == {"URI": False, "HTML-Parser": False}
        assert ing.graph.get("URI").prereqs == {}

    def test_unresolved_prereq_has_no_record(self, resolver):
        ing = _ingester(resolver)
        ing.ingest_discovery(["WWW::Mechanize"])
        assert "Acme::Missing" not in ing.graph
        assert "libwww-perl" not in ing.graph

    def test_core_prereq_never_recorded(self, resolver):
        ing = _ingester(resolver)
        ing.ingest_discovery(["libwww-perl"])
        assert "File::Spec" not in ing.graph.get("libwww-perl").prereqs
        assert "perl" not in ing.graph.get("libwww-perl").prereqs

    def test_meta_bundle_skipped(self, resolver):
        ing = _ingester(resolver)
        assert ing.ingest_discovery(["Bundle::LWP"]) == 0
        assert "Bundle-LWP" not in ing.graph
        assert "Bundle-LWP" not in ing.processed
        assert resolver.fetched == []

    def test_already_processed_skipped(self, resolver):
        ing = _ingester(resolver)
        ing.ingest_discovery(["LWP", "LWP::UserAgent", "libwww-perl"])
        assert resolver.fetched == ["libwww-perl"]

    def test_perl_in_worklist_skipped(self, resolver):
        ing = _ingester(resolver)
        assert ing.ingest_discovery(["perl", "Carp"]) == 0
        assert resolver.fetched == []

    def test_skip_list(self, resolver):
        ing = _ingester(resolver, skip=["URI::URL"])
        ing.ingest_discovery(["URI", "LWP"])
        assert "URI" not in ing.graph
        assert "libwww-perl" in ing.graph

    def test_failures_do_not_stop_worklist(self, resolver, caplog):
        resolver.broken.add("URI")
        resolver.files["HTML-Parser"] = {"README": "no build files here"}
        ing = _ingester(resolver)
        with caplog.at_level(logging.WARNING, logger="cpan_dependency"):
            count = ing.ingest_discovery(["Acme::Missing", "URI", "HTML::Parser", "Test::Warn"])
        assert count == 1
        assert list(ing.graph) == ["Test-Warn"]
        assert "no distribution found for Acme::Missing" in caplog.text
        assert "cannot fetch URI" in caplog.text

    def test_workspace_removed_on_every_path(self, resolver, tmp_path):
        resolver.broken.add("URI")
        ing = _ingester(resolver, build_dir=tmp_path / "build")
        ing.ingest_discovery(["URI", "Test::Warn"])
        assert len(resolver.workdirs) == 2
        for workdir in resolver.workdirs:
            assert workdir.parent == tmp_path / "build"
            assert not workdir.exists()

    def test_all_cpan(self, resolver):
        ing = _ingester(resolver)
        ing.ingest_discovery(ALL_CPAN)
        assert set(ing.graph) == {"WWW-Mechanize", "libwww-perl", "URI", "HTML-Parser", "Test-Warn"}

    def test_reingest_overwrites(self, resolver):
        ing = _ingester(resolver)
        ing.ingest_discovery(["URI"])
        ing.graph.add_score("URI", 5)
        ing.processed.discard("URI")
        resolver.files["URI"] = {"Makefile.PL": makefile_pl("HTML::Parser")}
        ing.ingest_discovery(["URI"])
        record = ing.graph.get("URI")
        assert record.score == 0
        assert record.prereqs == {"HTML-Parser": False}


class TestBulk:
    def test_live_author_wins(self, resolver):
        ing = _ingester(resolver)
        ing.ingest_bulk([
            SnapshotDist(name="URI", author_id="STALE", author_name="Old Name", requires=["HTML::Parser"]),
        ])
        record = ing.graph.get("URI")
        assert record.author_id == "GAAS"
        assert record.author_name == "Gisle Aas"
        assert record.prereqs == {"HTML-Parser": False}

    def test_snapshot_author_fallback(self, resolver):
        ing = _ingester(resolver)
        ing.ingest_bulk([
            SnapshotDist(name="Private-Dist", author_id="GAAS", author_name="Gisle Aas",
                         requires=["URI", "Carp", "Acme::Missing"]),
        ])
        record = ing.graph.get("Private-Dist")
        assert record.author_id == "GAAS"
        assert record.prereqs == {"URI": False, "Acme::Missing": True}

    def test_bundles_skipped(self, resolver):
        ing = _ingester(resolver)
        count = ing.ingest_bulk([
            SnapshotDist(name="Bundle-LWP", requires=["LWP"]),
            SnapshotDist(name="perl", requires=["Carp"]),
            SnapshotDist(name="perl-5.8.9", requires=["Carp"]),
            SnapshotDist(name="perl-5.36.0", requires=["Carp"]),
        ])
        assert count == 0
        assert len(ing.graph) == 0

    def test_lookup_failure_uses_snapshot_author(self, resolver):
        resolver.unavailable.add("URI")
        ing = _ingester(resolver)
        count = ing.ingest_bulk([
            SnapshotDist(name="URI", author_id="OALDERS", author_name="Olaf Alders", requires=["HTML::Parser"]),
        ])
        assert count == 1
        record = ing.graph.get("URI")
        assert record.author_id == "OALDERS"
        assert record.prereqs == {"HTML-Parser": True}

    def test_unclassifiable_prereqs_skip_dist(self, resolver, caplog):
        resolver.unavailable.add("HTML::Parser")
        ing = _ingester(resolver)
        with caplog.at_level(logging.WARNING, logger="cpan_dependency"):
            count = ing.ingest_bulk([
                SnapshotDist(name="URI", requires=["HTML::Parser"]),
                SnapshotDist(name="Test-Warn", requires=["Test::More"]),
            ])
        assert count == 1
        assert list(ing.graph) == ["Test-Warn"]
        assert "no distribution found for HTML::Parser" in caplog.text


class TestFacade:
    def test_run_and_scores(self, resolver):
        deps = CPANDependency(resolver=resolver, process=["WWW::Mechanize", "LWP", "URI", "HTML::Parser"])
        deps.run()
        scores = deps.scores()
        assert scores["WWW-Mechanize"] == 0
        assert scores["libwww-perl"] == 1
        assert scores["URI"] == 1
        assert scores["Acme::Missing"] == 1
        assert deps.records()["URI"].used_by == {"WWW-Mechanize": True, "libwww-perl": False}
        assert deps.score_by_dists() == scores
        assert deps.deps_by_dists().keys() == deps.records().keys()

    def test_empty_ingestion_is_noop(self, resolver, caplog):
        deps = CPANDependency(resolver=resolver)
        with caplog.at_level(logging.WARNING, logger="cpan_dependency"):
            assert deps.ingest_discovery([]) == 0
            deps.process([])
            deps.skip([])
        assert len(deps.records()) == 0
        assert "no package given to process" in caplog.text
        assert "no argument given to 'process'" in caplog.text

    def test_process_all_cpan(self, resolver):
        deps = CPANDependency(resolver=resolver, process=ALL_CPAN)
        assert deps.worklist == resolver.all_package_names()

    def test_unknown_option_warns(self, resolver, caplog):
        with caplog.at_level(logging.WARNING, logger="cpan_dependency"):
            deps = CPANDependency(resolver=resolver, verbose=True, frobnicate=1)
        assert deps.config.verbose is True
        assert "unknown option 'frobnicate'" in caplog.text

    def test_skip(self, resolver):
        deps = CPANDependency(resolver=resolver)
        deps.skip("LWP")
        deps.ingest_discovery(["libwww-perl", "URI"])
        assert set(deps.records()) == {"URI"}
