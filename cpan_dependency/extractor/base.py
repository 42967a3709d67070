"""Abstract base prerequisite extractor."""

from __future__ import annotations

import abc
import re
from pathlib import Path

# Hash keys in a Perl prerequisite list: Foo::Bar => 1, 'Baz' => '0.5'
_PERL_HASH_KEY = re.compile(r"""(['"]?)([A-Za-z_][\w:]*)\1\s*=>""")


class BaseExtractor(abc.ABC):
    """Base class for the strategies that read declared prerequisites."""

    name: str
    filenames: tuple[str, ...]

    def applies_to(self, dist_dir: Path) -> bool:
        return any((dist_dir / name).is_file() for name in self.filenames)

    @abc.abstractmethod
    def extract(self, dist_dir: Path) -> set[str] | None:
        """Return the raw prerequisite names, or ``None`` when unable to."""


def parse_perl_hash_keys(body: str) -> set[str]:
    """Pull the keys out of the body of a Perl hash literal."""
    lines = [line.split("#", 1)[0] for line in body.splitlines()]
    return {m.group(2) for m in _PERL_HASH_KEY.finditer("\n".join(lines))}


def read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")
