"""Read the requires hash from a Build.PL."""

from __future__ import annotations

import re
from pathlib import Path

from cpan_dependency.extractor.base import BaseExtractor, parse_perl_hash_keys, read_text

# "build_requires" and "configure_requires" are not runtime prerequisites
_REQUIRES = re.compile(r"(?<![\w])['\"]?requires['\"]?\s*=>\s*\{(.*?)\}", re.DOTALL)


class BuildPLExtractor(BaseExtractor):
    name = "Build.PL"
    filenames = ("Build.PL",)

    def extract(self, dist_dir: Path) -> set[str] | None:
        path = dist_dir / "Build.PL"
        if not path.is_file():
            return None
        m = _REQUIRES.search(read_text(path))
        if not m:
            return set()
        return parse_perl_hash_keys(m.group(1))
