"""MetaCPAN REST client used as the default package index resolver."""

from __future__ import annotations

import logging
import shutil
import subprocess
import tarfile
import zipfile
from pathlib import Path
from typing import Any

import httpx

from cpan_dependency.errors import (
    FetchExtractFailed,
    PackageResolutionFailed,
    ResolverUnavailable,
)
from cpan_dependency.models import (
    DependencyConfig,
    ResolvedPackage,
    is_meta_bundle_name,
    is_perl_release,
)
from cpan_dependency.resolver.base import BaseResolver

logger = logging.getLogger(__name__)

SCROLL_SIZE = 1000
SCROLL_TTL = "2m"


class MetaCpanResolver(BaseResolver):
    """Synchronous client for the MetaCPAN API."""

    def __init__(self, config: DependencyConfig | None = None, client: httpx.Client | None = None):
        self.config = config or DependencyConfig()
        if not self.config.base_url.startswith(("http://", "https://")):
            raise ResolverUnavailable(f"invalid MetaCPAN URL: {self.config.base_url!r}")
        try:
            self.client = client or httpx.Client(
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                follow_redirects=True,
                headers={"Accept": "application/json"},
            )
        except (httpx.HTTPError, ValueError) as e:
            raise ResolverUnavailable(f"cannot create MetaCPAN client: {e}") from e
        if self.config.debug:
            logging.getLogger("httpx").setLevel(logging.DEBUG)
        self._cache: dict[str, ResolvedPackage | None] = {}
        self._authors: dict[str, str] = {}

    # ── Resolution ──────────────────────────────────────────

    def resolve(self, name: str) -> ResolvedPackage | None:
        if name in self._cache:
            return self._cache[name]
        try:
            resolved = self._resolve_uncached(name)
        except (httpx.HTTPError, ValueError) as e:
            # Not cached, so the next lookup retries
            raise PackageResolutionFailed(name, f"MetaCPAN request failed: {e}") from e
        self._cache[name] = resolved
        return resolved

    def _resolve_uncached(self, name: str) -> ResolvedPackage | None:
        dist_name = None
        module_version = ""

        # Module names use "::", distribution names use "-"
        if "-" not in name:
            module = self._get_json(f"/module/{name}")
            if module:
                dist_name = module.get("distribution")
                module_version = str(module.get("version") or "")

        if dist_name is None:
            dist_name = name

        if is_perl_release(dist_name):
            return ResolvedPackage(canonical_id="perl", is_core_library=True, version=module_version)

        release = self._get_json(f"/release/{dist_name}")
        if not release:
            logger.debug("no release found for %s", name)
            return None

        canonical = release.get("distribution") or dist_name
        pauseid = release.get("author") or ""
        return ResolvedPackage(
            canonical_id=canonical,
            author_id=pauseid,
            author_name=self._author_name(pauseid),
            version=str(release.get("version") or module_version),
            download_url=release.get("download_url") or "",
            is_core_library=False,
            is_meta_bundle=is_meta_bundle_name(canonical),
        )

    def _author_name(self, pauseid: str) -> str:
        if not pauseid:
            return ""
        if pauseid not in self._authors:
            author = self._get_json(f"/author/{pauseid}") or {}
            name = author.get("name") or ""
            if isinstance(name, list):
                name = name[0] if name else ""
            self._authors[pauseid] = name
        return self._authors[pauseid]

    def _get_json(self, path: str) -> dict[str, Any] | None:
        """GET ``path``; ``None`` only when MetaCPAN answers 404.

        Transport errors, other error statuses and bad JSON propagate.
        """
        response = self.client.get(path)
        if response.status_code == 404:
            return None
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"unexpected response body for {path}")
        return data

    def all_package_names(self) -> list[str]:
        """Scroll through every distribution on MetaCPAN."""
        try:
            return self._scroll_distributions()
        except (httpx.HTTPError, ValueError, KeyError) as e:
            raise ResolverUnavailable(f"cannot list CPAN distributions: {e}") from e

    def _scroll_distributions(self) -> list[str]:
        names: list[str] = []
        response = self.client.post(
            "/distribution/_search",
            params={"scroll": SCROLL_TTL},
            json={"size": SCROLL_SIZE, "_source": ["name"], "query": {"match_all": {}}},
        )
        response.raise_for_status()
        data = response.json()
        while True:
            hits = data.get("hits", {}).get("hits", [])
            if not hits:
                break
            names.extend(hit["_source"]["name"] for hit in hits if hit.get("_source"))
            scroll_id = data.get("_scroll_id")
            if not scroll_id:
                break
            response = self.client.post(
                "/_search/scroll",
                json={"scroll": SCROLL_TTL, "scroll_id": scroll_id},
            )
            response.raise_for_status()
            data = response.json()
        return sorted(set(names))

    # ── Fetch & extract ─────────────────────────────────────

    def fetch_and_extract(self, dist_id: str, workdir: Path) -> Path:
        resolved = self.resolve(dist_id)
        if resolved is None or not resolved.download_url:
            raise FetchExtractFailed(f"no archive available for {dist_id}")

        archive = workdir / resolved.download_url.rsplit("/", 1)[-1]
        try:
            with self.client.stream("GET", resolved.download_url) as response:
                response.raise_for_status()
                with archive.open("wb") as fh:
                    for chunk in response.iter_bytes():
                        fh.write(chunk)
        except httpx.HTTPError as e:
            raise FetchExtractFailed(f"download of {dist_id} failed: {e}") from e

        target = workdir / "src"
        target.mkdir(exist_ok=True)
        try:
            self._unpack(archive, target)
        except (OSError, tarfile.TarError, zipfile.BadZipFile, subprocess.CalledProcessError) as e:
            raise FetchExtractFailed(f"cannot unpack {archive.name}: {e}") from e

        entries = [p for p in target.iterdir()]
        if len(entries) == 1 and entries[0].is_dir():
            return entries[0]
        return target

    def _unpack(self, archive: Path, target: Path) -> None:
        if archive.suffix == ".zip":
            with zipfile.ZipFile(archive) as zf:
                zf.extractall(target)
            return

        tar_bin = shutil.which("tar") if self.config.prefer_bin else None
        if tar_bin:
            subprocess.run(
                [tar_bin, "-xf", str(archive), "-C", str(target)],
                check=True,
                capture_output=True,
            )
            return

        with tarfile.open(archive) as tf:
            tf.extractall(target, filter="data")

    def close(self) -> None:
        self.client.close()
