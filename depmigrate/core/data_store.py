"""Hosted registry data store for depmigrate.

Provides an async-safe cache for package listings served by a
pub-compatible registry (``GET {hosted_url}/api/packages/{name}``) so that
the capability prober, the resolver and the reporter share a single fetch
per package and invocation.

Every successful fetch is also written to an on-disk cache. In offline
mode the store serves *only* from that cache and raises
:class:`~depmigrate.exceptions.RegistryError` for packages it has never
seen, so degraded data is never passed off as a fresh listing.

Typical usage::

    async with HTTPClient() as client:
        store = HostedDataStore(client, cache_dir=Path("~/.cache/depmigrate"))
        data = await store.get_package_data("http")
        print(data.versions[-1])        # newest parseable version
"""

from __future__ import annotations

import json
import asyncio
from pathlib import Path
from urllib.parse import quote, urlparse
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from semver import Version

from depmigrate.exceptions import FileOperationError, RegistryError
from depmigrate.utils.http import HTTPClient
from depmigrate.utils.logger import get_logger
from depmigrate.utils.filesystem import safe_read_file, safe_write_file
from depmigrate.models.constraint import InvalidConstraint, parse_version
from depmigrate.constants import (
    DEFAULT_CONCURRENT_LIMIT,
    DEFAULT_HOSTED_URL,
    HOSTED_API_ACCEPT,
    HOSTED_PACKAGE_API,
)

logger = get_logger("data_store")

__all__ = ["HostedDataStore", "HostedPackageData"]


# ---------------------------------------------------------------------------
# Data container
# ---------------------------------------------------------------------------


@dataclass
class HostedPackageData:
    """Immutable-by-convention snapshot of one registry listing.

    Attributes:
        name: Package name.
        versions: Parseable, non-retracted versions in ascending order.
        pubspecs: Raw manifest of each version, keyed by :class:`Version`.
        from_cache: ``True`` when the listing came from the on-disk cache
            instead of the registry.
    """

    name: str
    versions: List[Version] = field(default_factory=list)
    pubspecs: Dict[Version, Dict[str, Any]] = field(default_factory=dict)
    from_cache: bool = False

    def pubspec_for(self, version: Version) -> Dict[str, Any]:
        """Return the manifest published with *version*.

        Raises:
            RegistryError: The version is not part of this listing.
        """
        try:
            return self.pubspecs[version]
        except KeyError:
            raise RegistryError(
                f"Version {version} of '{self.name}' is not published",
                package_name=self.name,
            ) from None


# ---------------------------------------------------------------------------
# Async data-store with double-checked locking
# ---------------------------------------------------------------------------


class HostedDataStore:
    """Per-invocation cache of registry listings for one hosted url.

    Each package name triggers at most one registry request. A semaphore
    bounds concurrent fetches, and a second cache check inside it keeps
    coroutines asking for the same package from fetching it twice.

    Args:
        http_client: Shared :class:`HTTPClient`; may be ``None`` offline.
        hosted_url: Registry base url.
        cache_dir: Root of the on-disk cache, or ``None`` to disable it.
        offline: Serve only from the on-disk cache.
        concurrent_limit: Maximum number of fetches in flight.
    """

    def __init__(
        self,
        http_client: Optional[HTTPClient],
        *,
        hosted_url: str = DEFAULT_HOSTED_URL,
        cache_dir: Optional[Path] = None,
        offline: bool = False,
        concurrent_limit: int = DEFAULT_CONCURRENT_LIMIT,
    ) -> None:
        if http_client is None and not offline:
            raise TypeError("http_client is required unless offline is set")

        self.http_client = http_client
        self.hosted_url = hosted_url.rstrip("/")
        self.cache_dir = cache_dir
        self.offline = offline
        self._semaphore = asyncio.Semaphore(concurrent_limit)
        self._package_data: Dict[str, HostedPackageData] = {}

    # ------------------------------------------------------------------
    # Public async accessors
    # ------------------------------------------------------------------

    async def get_package_data(self, name: str) -> HostedPackageData:
        """Fetch (or return cached) listing for *name*.

        Raises:
            RegistryError: Unknown package, or not cached while offline.
            NetworkError: The registry could not be reached.
        """
        # Fast path, no lock needed
        if name in self._package_data:
            return self._package_data[name]

        async with self._semaphore:
            # Another coroutine may have populated it while we waited
            if name in self._package_data:
                return self._package_data[name]

            if self.offline:
                raw = self._read_cache(name)
                from_cache = True
            else:
                raw = await self._fetch_from_registry(name)
                self._write_cache(name, raw)
                from_cache = False

            data = self._parse_listing(name, raw, from_cache=from_cache)
            self._package_data[name] = data
            return data

    def cached_packages(self) -> List[str]:
        """Names whose listing was read from the on-disk cache, sorted."""
        return sorted(
            name for name, data in self._package_data.items() if data.from_cache
        )

    # ------------------------------------------------------------------
    # Network helpers (private)
    # ------------------------------------------------------------------

    async def _fetch_from_registry(self, name: str) -> Dict[str, Any]:
        assert self.http_client is not None

        url = HOSTED_PACKAGE_API.format(
            hosted_url=self.hosted_url, package=quote(name, safe="")
        )
        logger.debug("Fetching %s", url)
        response = await self.http_client.get(url, headers={"Accept": HOSTED_API_ACCEPT})

        if response.status_code == 404:
            raise RegistryError(
                f"Package '{name}' not found on {self.hosted_url}",
                package_name=name,
                url=url,
                status_code=404,
            )
        if response.status_code != 200:
            raise RegistryError(
                f"Registry returned status {response.status_code} for '{name}'",
                package_name=name,
                url=url,
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise RegistryError(
                f"Registry returned invalid JSON for '{name}'",
                package_name=name,
                url=url,
                response_body=response.text,
            ) from exc

        if not isinstance(body, dict):
            raise RegistryError(
                f"Registry returned an unexpected listing for '{name}'",
                package_name=name,
                url=url,
            )
        return body

    # ------------------------------------------------------------------
    # On-disk cache (private)
    # ------------------------------------------------------------------

    def _cache_path(self, name: str) -> Optional[Path]:
        if self.cache_dir is None:
            return None
        host = urlparse(self.hosted_url).netloc or "default"
        return self.cache_dir / "hosted" / host / f"{name}.json"

    def _read_cache(self, name: str) -> Dict[str, Any]:
        path = self._cache_path(name)
        if path is None or not path.is_file():
            raise RegistryError(
                f"Package '{name}' is not available in the offline cache",
                package_name=name,
            )

        try:
            body = json.loads(safe_read_file(path))
        except ValueError as exc:
            raise RegistryError(
                f"Corrupt cache entry for '{name}': {path}",
                package_name=name,
            ) from exc

        logger.debug("Loaded %s from offline cache %s", name, path)
        return body

    def _write_cache(self, name: str, body: Dict[str, Any]) -> None:
        path = self._cache_path(name)
        if path is None:
            return

        # A stale or missing cache entry only affects later offline runs
        try:
            safe_write_file(path, json.dumps(body))
        except FileOperationError as exc:
            logger.warning("Could not update cache for %s: %s", name, exc)

    # ------------------------------------------------------------------
    # Parsing helpers (private, synchronous)
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_listing(
        name: str,
        body: Dict[str, Any],
        *,
        from_cache: bool,
    ) -> HostedPackageData:
        pubspecs: Dict[Version, Dict[str, Any]] = {}

        for entry in body.get("versions") or []:
            raw_version = entry.get("version")
            if entry.get("retracted"):
                logger.debug("Skipping retracted %s %s", name, raw_version)
                continue
            try:
                version = parse_version(str(raw_version))
            except InvalidConstraint:
                logger.debug("Skipping unparseable %s version %r", name, raw_version)
                continue
            pubspecs[version] = entry.get("pubspec") or {}

        return HostedPackageData(
            name=name,
            versions=sorted(pubspecs),
            pubspecs=pubspecs,
            from_cache=from_cache,
        )
