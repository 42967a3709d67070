"""Read PREREQ_PM from a Makefile.PL."""

from __future__ import annotations

import re
from pathlib import Path

from cpan_dependency.extractor.base import BaseExtractor, parse_perl_hash_keys, read_text

_PREREQ_PM = re.compile(r"PREREQ_PM.*?=>.*?\{(.*?)\}", re.DOTALL)


class MakefilePLExtractor(BaseExtractor):
    name = "Makefile.PL"
    filenames = ("Makefile.PL",)

    def extract(self, dist_dir: Path) -> set[str] | None:
        path = dist_dir / "Makefile.PL"
        if not path.is_file():
            return None
        m = _PREREQ_PM.search(read_text(path))
        if not m:
            # A Makefile.PL without PREREQ_PM has no prerequisites
            return set()
        return parse_perl_hash_keys(m.group(1))
