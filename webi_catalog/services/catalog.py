"""
Package catalog service.

Assembles the catalog from GitHub (tree -> package directories -> README per
package -> PackageRecord), keeps it in a TTL cache and answers the queries
the UI needs: search, filter by category or platform, categories and stats.

Lifecycle of the catalog:

    empty --get_all_packages()--> populating --> populated
    populated --force_refresh / TTL expiry--> populating

At most one population sweep runs at a time; concurrent callers share it.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional

from webi_catalog.domain.catalog_utils import match_any
from webi_catalog.domain.errors import CatalogUnavailable
from webi_catalog.domain.models import (
    PLATFORMS,
    CatalogStats,
    PackageRecord,
    PlatformCounts,
    RepositoryStats,
    RepositoryTree,
)
from webi_catalog.domain.package_parser import (
    DEFAULT_HOMEPAGE_BASE,
    is_valid_package,
    parse_package,
)
from webi_catalog.domain.tree_index import extract_package_directories, find_package_files
from webi_catalog.services.cache import TTLCache
from webi_catalog.services.github_client import GitHubClient

logger = logging.getLogger(__name__)

CATALOG_CACHE_KEY = "packages"


class PackageCatalogService:
    """
    Orchestrates GitHubClient, the tree indexer and the README parser into a
    validated, de-duplicated list of PackageRecord.
    """

    def __init__(
        self,
        client: GitHubClient,
        catalog_cache: TTLCache[List[PackageRecord]],
        batch_size: int = 10,
        batch_delay: float = 0.1,
        homepage_base: str = DEFAULT_HOMEPAGE_BASE,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.client = client
        self.catalog_cache = catalog_cache
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.homepage_base = homepage_base

        self.last_refreshed: Optional[datetime] = None
        self._inflight: Optional[asyncio.Task] = None
        # Bumped by clear_cache(); a sweep from an older generation never writes the catalog.
        self._generation = 0
        self._reload_tree = False

    @property
    def is_refreshing(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    # ========================================================================
    # Population
    # ========================================================================

    async def get_all_packages(self, force_refresh: bool = False) -> List[PackageRecord]:
        """
        Return the whole catalog, populating it first if needed.

        Callers that arrive while a sweep is running await that same sweep,
        including callers passing ``force_refresh``.
        """
        if not force_refresh:
            cached = self.catalog_cache.get(CATALOG_CACHE_KEY)
            if cached is not None:
                return cached

        task = self._inflight
        if task is None or task.done():
            logger.info("Fetching packages from GitHub API...")
            force_tree = force_refresh or self._reload_tree
            self._reload_tree = False
            task = asyncio.ensure_future(self._perform_fetch(force_tree, self._generation))
            self._inflight = task
            task.add_done_callback(self._clear_inflight)

        # Shielded so a cancelled caller does not abort the sweep for the rest.
        return await asyncio.shield(task)

    def _clear_inflight(self, task: asyncio.Task) -> None:
        if self._inflight is task:
            self._inflight = None

    async def _perform_fetch(self, force_tree: bool, generation: int) -> List[PackageRecord]:
        try:
            tree = await self.client.get_tree(force=force_tree)
        except Exception as e:
            previous = self.catalog_cache.get_stale(CATALOG_CACHE_KEY)
            if previous is not None:
                logger.error(f"Failed to fetch repository tree, returning cached packages: {e}")
                return previous
            logger.error(f"Failed to fetch repository tree and no cached packages exist: {e}")
            raise CatalogUnavailable(f"Unable to load package catalog: {e}") from e

        package_names = extract_package_directories(tree)
        logger.info(f"Found {len(package_names)} potential packages")

        packages: List[PackageRecord] = []
        for start in range(0, len(package_names), self.batch_size):
            batch = package_names[start:start + self.batch_size]
            results = await asyncio.gather(
                *(self._fetch_single_package(tree, name) for name in batch),
                return_exceptions=True,
            )
            for name, result in zip(batch, results):
                if isinstance(result, BaseException):
                    if isinstance(result, asyncio.CancelledError):
                        raise result
                    logger.warning(f"Failed to fetch package {name}: {result}")
                elif result is not None:
                    packages.append(result)

            if start + self.batch_size < len(package_names) and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)

        valid_packages = [pkg for pkg in packages if is_valid_package(pkg)]
        logger.info(f"Successfully fetched {len(valid_packages)} valid packages")

        if generation != self._generation:
            logger.info("Cache was cleared during the fetch; not storing its result")
            return valid_packages

        self.catalog_cache.set(CATALOG_CACHE_KEY, valid_packages)
        self.last_refreshed = datetime.now(timezone.utc)
        return valid_packages

    async def _fetch_single_package(self, tree: RepositoryTree, package_name: str) -> Optional[PackageRecord]:
        files = find_package_files(tree, package_name)
        if not files.has_readme:
            logger.warning(f"Package {package_name} has no README.md, skipping")
            return None

        readme = await self.client.get_file_content(files.readme)
        return parse_package(
            package_name,
            readme.content,
            has_install_sh=files.has_install_sh,
            has_install_ps1=files.has_install_ps1,
            last_updated=datetime.now(timezone.utc),
            is_base64=True,
            homepage_base=self.homepage_base,
        )

    def clear_cache(self) -> None:
        """
        Drop the catalog and every upstream cache; the next call starts over.

        A sweep already running is detached: its current callers still get
        its result, but it no longer fills the catalog cache and later
        callers start a new sweep that refetches the tree.
        """
        self._generation += 1
        self._inflight = None
        self._reload_tree = True
        self.catalog_cache.clear()
        self.client.clear_caches()
        self.last_refreshed = None

    async def aclose(self) -> None:
        """
        Cancel a running sweep, wait for it to unwind, then close the client.
        """
        task = self._inflight
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        await self.client.aclose()

    # ========================================================================
    # Queries
    # ========================================================================

    async def get_package(self, package_name: str) -> Optional[PackageRecord]:
        for pkg in await self.get_all_packages():
            if pkg.name == package_name:
                return pkg
        return None

    async def search_packages(self, query: str) -> List[PackageRecord]:
        """
        Case-insensitive substring search over name, title, tagline,
        description and category. A blank query returns everything.
        """
        packages = await self.get_all_packages()
        term = (query or "").strip()
        if not term:
            return packages
        return [
            pkg
            for pkg in packages
            if match_any((pkg.name, pkg.title, pkg.tagline, pkg.description, pkg.category), term)
        ]

    async def get_packages_by_category(self, category: str) -> List[PackageRecord]:
        return [pkg for pkg in await self.get_all_packages() if pkg.category == category]

    async def get_packages_by_platform(self, platform: str) -> List[PackageRecord]:
        if platform not in PLATFORMS:
            raise ValueError(f"Unknown platform: {platform}")
        return [pkg for pkg in await self.get_all_packages() if pkg.platforms.supports(platform)]

    async def get_categories(self) -> List[str]:
        return sorted({pkg.category for pkg in await self.get_all_packages()})

    async def get_stats(self) -> CatalogStats:
        packages = await self.get_all_packages()
        return CatalogStats(
            total_packages=len(packages),
            categories_count=len({pkg.category for pkg in packages}),
            platform_counts=PlatformCounts(
                linux=sum(1 for pkg in packages if pkg.platforms.linux),
                macos=sum(1 for pkg in packages if pkg.platforms.macos),
                windows=sum(1 for pkg in packages if pkg.platforms.windows),
            ),
        )

    async def get_repository_stats(self) -> RepositoryStats:
        meta = await self.client.get_repository_metadata()
        return RepositoryStats(
            full_name=meta.full_name or self.client.repo_path.removeprefix("/repos/"),
            html_url=meta.html_url,
            stars=meta.stargazers_count,
            forks=meta.forks_count,
        )
