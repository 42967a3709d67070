"""Save and load the dependency graph; read CPANTS database snapshots."""

from __future__ import annotations

import json
import logging
import os
import sqlite3
import stat
import tempfile
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cpan_dependency.errors import MalformedSnapshotFile
from cpan_dependency.models import PackageRecord, SnapshotDist

logger = logging.getLogger(__name__)

_JSON_SUFFIXES = {".json"}
_DEFAULT_MODE = 0o644


class RecordDocument(BaseModel):
    """On-disk shape of one package record."""
    model_config = ConfigDict(extra="forbid")

    author: str | None = ""
    cpanid: str | None = ""
    score: int = Field(default=0, ge=0)
    prereqs: dict[str, int] = Field(default_factory=dict)
    used_by: dict[str, int] = Field(default_factory=dict)


def record_to_document(record: PackageRecord) -> dict[str, Any]:
    return {
        "author": record.author_name,
        "cpanid": record.author_id,
        "score": record.score,
        "prereqs": {k: int(v) for k, v in sorted(record.prereqs.items())},
        "used_by": {k: int(v) for k, v in sorted(record.used_by.items())},
    }


def document_to_record(doc: RecordDocument) -> PackageRecord:
    return PackageRecord(
        author_name=doc.author or "",
        author_id=doc.cpanid or "",
        score=doc.score,
        prereqs={k: bool(v) for k, v in doc.prereqs.items()},
        used_by={k: bool(v) for k, v in doc.used_by.items()},
    )


# ── Graph snapshot ──────────────────────────────────────────


def save_graph(records: dict[str, PackageRecord], path: Path) -> Path:
    """Write the graph to ``path`` as YAML, or JSON for a ``.json`` suffix.

    The file is written next to the target and renamed over it.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    document = {dist_id: record_to_document(records[dist_id]) for dist_id in sorted(records)}

    if path.suffix in _JSON_SUFFIXES:
        text = json.dumps(document, indent=2) + "\n"
    else:
        text = yaml.safe_dump(document, default_flow_style=False, sort_keys=True, allow_unicode=True)

    try:
        mode = stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        mode = _DEFAULT_MODE

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
        # mkstemp creates the file 0600
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.info("saved %d distributions to %s", len(records), path)
    return path


def load_graph(path: Path) -> dict[str, PackageRecord]:
    """Read a graph file written by :func:`save_graph`.

    The whole file is parsed and validated before anything is returned.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise MalformedSnapshotFile(f"cannot read {path}: {e}") from e

    try:
        if path.suffix in _JSON_SUFFIXES:
            raw = json.loads(text)
        else:
            raw = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise MalformedSnapshotFile(f"cannot parse {path}: {e}") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise MalformedSnapshotFile(f"{path}: top level must be a mapping of distributions")

    records: dict[str, PackageRecord] = {}
    for dist_id, value in raw.items():
        try:
            doc = RecordDocument.model_validate(value)
        except ValidationError as e:
            raise MalformedSnapshotFile(f"{path}: invalid record {dist_id!r}: {e}") from e
        records[str(dist_id)] = document_to_record(doc)
    logger.info("loaded %d distributions from %s", len(records), path)
    return records


# ── CPANTS relational snapshot ──────────────────────────────

_DISTS_SQL = """
SELECT dist.id, dist.dist, author.pauseid, author.name
FROM dist LEFT JOIN author ON author.id = dist.author
ORDER BY dist.dist
"""

_PREREQS_SQL = "SELECT dist, requires FROM prereq ORDER BY rowid"


def read_cpants_db(path: Path) -> list[SnapshotDist]:
    """Read distributions and their raw prerequisite names from a CPANTS SQLite file."""
    path = Path(path)
    if not path.is_file():
        raise MalformedSnapshotFile(f"no such database: {path}")

    try:
        conn = sqlite3.connect(f"{path.resolve().as_uri()}?mode=ro", uri=True)
    except sqlite3.Error as e:
        raise MalformedSnapshotFile(f"cannot open {path}: {e}") from e

    try:
        dists: dict[int, SnapshotDist] = {}
        for dist_id, name, pauseid, author_name in conn.execute(_DISTS_SQL):
            if not name:
                continue
            dists[dist_id] = SnapshotDist(
                name=name, author_id=pauseid or "", author_name=author_name or "",
            )
        for dist_id, requires in conn.execute(_PREREQS_SQL):
            dist = dists.get(dist_id)
            if dist is None or not requires:
                continue
            for token in str(requires).split():
                if token not in dist.requires:
                    dist.requires.append(token)
    except sqlite3.Error as e:
        raise MalformedSnapshotFile(f"{path} is not a CPANTS database: {e}") from e
    finally:
        conn.close()

    return list(dists.values())
