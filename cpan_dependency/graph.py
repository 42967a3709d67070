"""In-memory dependency graph store."""

from __future__ import annotations

from collections.abc import Iterator

from cpan_dependency.models import PackageRecord


class DependencyGraph:
    """Mapping of distribution id to :class:`PackageRecord`.

    All mutation goes through the methods below. Setting an edge that
    already exists overwrites its cross-author flag.
    """

    def __init__(self, records: dict[str, PackageRecord] | None = None):
        self._records: dict[str, PackageRecord] = dict(records or {})

    def __contains__(self, dist_id: object) -> bool:
        return dist_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def get(self, dist_id: str) -> PackageRecord | None:
        return self._records.get(dist_id)

    def get_or_create(self, dist_id: str) -> PackageRecord:
        record = self._records.get(dist_id)
        if record is None:
            record = PackageRecord()
            self._records[dist_id] = record
        return record

    def put(
        self,
        dist_id: str,
        author_name: str,
        author_id: str,
        prereqs: dict[str, bool],
    ) -> PackageRecord:
        """Store a freshly ingested record, replacing any previous one."""
        record = PackageRecord(
            author_name=author_name,
            author_id=author_id,
            prereqs=dict(prereqs),
        )
        self._records[dist_id] = record
        return record

    def set_prereq(self, dist_id: str, prereq_id: str, cross_author: bool) -> None:
        self.get_or_create(dist_id).prereqs[prereq_id] = bool(cross_author)

    def set_used_by(self, dist_id: str, dependent_id: str, cross_author: bool) -> None:
        self.get_or_create(dist_id).used_by[dependent_id] = bool(cross_author)

    def add_score(self, dist_id: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"score increment must be non-negative, got {amount}")
        self.get_or_create(dist_id).score += amount

    def reset_scores(self) -> None:
        """Zero every score and drop the reverse index before a rescore."""
        for record in self._records.values():
            record.score = 0
            record.used_by.clear()

    def replace(self, records: dict[str, PackageRecord]) -> None:
        self._records = dict(records)

    def records(self) -> dict[str, PackageRecord]:
        """Shallow snapshot of the store."""
        return dict(self._records)

    def scores(self) -> dict[str, int]:
        return {dist_id: record.score for dist_id, record in self._records.items()}
