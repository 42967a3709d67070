"""Read runtime prerequisites from META.json / META.yml."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from cpan_dependency.extractor.base import BaseExtractor, read_text

logger = logging.getLogger(__name__)


class MetaFileExtractor(BaseExtractor):
    name = "meta"
    filenames = ("META.json", "META.yml")

    def extract(self, dist_dir: Path) -> set[str] | None:
        for filename in self.filenames:
            path = dist_dir / filename
            if not path.is_file():
                continue
            meta = self._load(path)
            requires = self._requires(meta) if isinstance(meta, dict) else None
            if requires is not None:
                return requires
            logger.debug("unusable %s in %s", filename, dist_dir)
        return None

    @staticmethod
    def _load(path: Path) -> Any:
        text = read_text(path)
        try:
            if path.suffix == ".json":
                return json.loads(text)
            return yaml.safe_load(text)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            logger.debug("cannot parse %s: %s", path, e)
            return None

    @staticmethod
    def _requires(meta: dict[str, Any]) -> set[str] | None:
        """Runtime requirement names, or ``None`` when the layout is malformed."""
        # CPAN::Meta::Spec v2 nests prerequisites by phase
        prereqs = meta.get("prereqs")
        if isinstance(prereqs, dict):
            runtime = prereqs.get("runtime") or {}
            if not isinstance(runtime, dict):
                return None
            requires = runtime.get("requires") or {}
        else:
            requires = meta.get("requires") or {}
        if not isinstance(requires, dict):
            return None
        return {str(name) for name in requires}
