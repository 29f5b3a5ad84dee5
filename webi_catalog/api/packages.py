"""
JSON endpoints consumed by the WebInstall UI.

Every response uses the envelope ``{"success": ..., "data": ..., "timestamp": ...}``;
failures return ``{"success": false, "error": ..., "message": ...}``.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from webi_catalog.core.dependencies import get_catalog_service
from webi_catalog.domain.catalog_utils import strip_nulls
from webi_catalog.domain.errors import RateLimitExceeded
from webi_catalog.domain.models import PLATFORMS, PackageRecord
from webi_catalog.services.catalog import PackageCatalogService

logger = logging.getLogger(__name__)
router = APIRouter()


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _dump(value: Any) -> Any:
    if isinstance(value, list):
        return [_dump(v) for v in value]
    if hasattr(value, "model_dump"):
        return strip_nulls(value.model_dump(mode="json", by_alias=True))
    return value


def _ok(data: Any, with_count: bool = True) -> dict:
    body = {"success": True, "data": _dump(data)}
    if with_count:
        body["count"] = len(data)
    body["timestamp"] = _timestamp()
    return body


def _error(summary: str, exc: Exception) -> JSONResponse:
    # CatalogUnavailable carries the upstream failure as its cause.
    rate_limit = exc if isinstance(exc, RateLimitExceeded) else exc.__cause__
    if isinstance(rate_limit, RateLimitExceeded):
        headers = {}
        if rate_limit.reset_at is not None:
            retry_after = max(0, int((rate_limit.reset_at - datetime.now(timezone.utc)).total_seconds()))
            headers["Retry-After"] = str(retry_after)
        return JSONResponse(
            status_code=503,
            headers=headers,
            content={"success": False, "error": summary, "message": str(exc)},
        )
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": summary, "message": str(exc)},
    )


# ---------------------------------------------------------------------------
# GET /api/packages
# ---------------------------------------------------------------------------

@router.get("/packages")
async def list_packages(
    q: Optional[str] = Query(default=None, description="Search term."),
    category: Optional[str] = Query(default=None),
    platform: Optional[str] = Query(default=None, description="linux, macos or windows."),
    refresh: bool = Query(default=False, description="Force a refresh from GitHub."),
    service: PackageCatalogService = Depends(get_catalog_service),
):
    """
    List packages. ``q`` takes precedence over ``category``, which takes
    precedence over ``platform``. Unknown platforms are ignored.
    """
    try:
        packages: List[PackageRecord]
        if q:
            packages = await service.search_packages(q)
        elif category:
            packages = await service.get_packages_by_category(category)
        elif platform in PLATFORMS:
            packages = await service.get_packages_by_platform(platform)
        else:
            packages = await service.get_all_packages(force_refresh=refresh)
    except Exception as e:
        logger.error(f"Packages API error: {e}", exc_info=True)
        return _error("Failed to fetch packages", e)

    return _ok(packages)


@router.get("/packages/{name}")
async def get_package(
    name: str,
    service: PackageCatalogService = Depends(get_catalog_service),
):
    try:
        pkg = await service.get_package(name)
    except Exception as e:
        logger.error(f"Package API error for {name}: {e}", exc_info=True)
        return _error("Failed to fetch package", e)

    if pkg is None:
        return JSONResponse(
            status_code=404,
            content={"success": False, "error": "Package not found", "message": name},
        )
    return _ok(pkg, with_count=False)


# ---------------------------------------------------------------------------
# GET /api/categories, /api/stats, /api/repository
# ---------------------------------------------------------------------------

@router.get("/categories")
async def list_categories(service: PackageCatalogService = Depends(get_catalog_service)):
    try:
        categories = await service.get_categories()
    except Exception as e:
        logger.error(f"Categories API error: {e}", exc_info=True)
        return _error("Failed to fetch categories", e)
    return _ok(categories)


@router.get("/stats")
async def get_stats(service: PackageCatalogService = Depends(get_catalog_service)):
    try:
        stats = await service.get_stats()
    except Exception as e:
        logger.error(f"Stats API error: {e}", exc_info=True)
        return _error("Failed to fetch statistics", e)
    return _ok(stats, with_count=False)


@router.get("/repository")
async def get_repository(service: PackageCatalogService = Depends(get_catalog_service)):
    """
    Star and fork counts of the upstream repository.
    """
    try:
        stats = await service.get_repository_stats()
    except Exception as e:
        logger.error(f"Repository API error: {e}", exc_info=True)
        return _error("Failed to fetch repository information", e)
    return _ok(stats, with_count=False)


# ---------------------------------------------------------------------------
# POST /api/cache/clear
# ---------------------------------------------------------------------------

@router.post("/cache/clear")
async def clear_cache(service: PackageCatalogService = Depends(get_catalog_service)) -> dict:
    service.clear_cache()
    logger.info("Package caches cleared")
    return {"success": True, "timestamp": _timestamp()}
