import time
from typing import Callable, List, Optional

import httpx

from webi_catalog.core.config import Settings
from webi_catalog.domain.models import FileContent, PackageRecord, RepositoryMetadata, RepositoryTree
from webi_catalog.services.cache import TTLCache
from webi_catalog.services.catalog import PackageCatalogService
from webi_catalog.services.github_client import GitHubClient

_settings: Optional[Settings] = None
_catalog_service: Optional[PackageCatalogService] = None

def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings

def build_catalog_service(
    settings: Settings,
    http_client: Optional[httpx.AsyncClient] = None,
    clock: Callable[[], float] = time.monotonic,
) -> PackageCatalogService:
    """
    Wire a client, its caches and a catalog service from settings.
    """
    client = GitHubClient(
        settings,
        tree_cache=TTLCache[RepositoryTree](
            max_entries=1, ttl=settings.tree_ttl_seconds, allow_stale=True, name="tree", clock=clock,
        ),
        file_cache=TTLCache[FileContent](
            max_entries=settings.file_cache_size, ttl=settings.file_ttl_seconds, allow_stale=True, name="files",
            clock=clock,
        ),
        metadata_cache=TTLCache[RepositoryMetadata](
            max_entries=1, ttl=settings.tree_ttl_seconds, allow_stale=True, name="repository", clock=clock,
        ),
        http_client=http_client,
    )
    catalog_cache = TTLCache[List[PackageRecord]](
        max_entries=1,
        ttl=settings.catalog_ttl_seconds,
        allow_stale=True,
        update_age_on_get=False,
        name="catalog",
        clock=clock,
    )
    return PackageCatalogService(
        client,
        catalog_cache,
        batch_size=settings.batch_size,
        batch_delay=settings.batch_delay_seconds,
        homepage_base=settings.homepage_base,
    )

def initialize_catalog_service() -> PackageCatalogService:
    global _catalog_service
    if _catalog_service is None:
        _catalog_service = build_catalog_service(get_settings())
    return _catalog_service

def get_catalog_service() -> PackageCatalogService:
    return initialize_catalog_service()

async def shutdown_catalog_service() -> None:
    global _catalog_service
    if _catalog_service is not None:
        await _catalog_service.aclose()
        _catalog_service = None
