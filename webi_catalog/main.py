import asyncio
import logging
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from webi_catalog.api.packages import router as packages_router
from webi_catalog.core.dependencies import (
    get_catalog_service,
    get_settings,
    initialize_catalog_service,
    shutdown_catalog_service,
)
from webi_catalog.services.catalog import PackageCatalogService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


app = FastAPI(
    title="WebInstall UI catalog",
    version="0.1.0",
    description="Cached read-through catalog of webi-installers packages sourced from GitHub.",
)

# HTML templates (Jinja2)
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))

_warmup_task: Optional[asyncio.Task] = None


async def _warm_catalog(service: PackageCatalogService) -> None:
    try:
        packages = await service.get_all_packages()
        logger.info(f"Catalog warmed with {len(packages)} packages")
    except Exception as e:
        logger.error(f"Catalog warmup failed: {e}")


@app.on_event("startup")
async def startup_event() -> None:
    """
    Build the catalog service and, unless disabled, start populating the
    catalog in the background so the first request finds it ready.
    """
    global _warmup_task
    service = initialize_catalog_service()
    if get_settings().warm_catalog:
        _warmup_task = asyncio.create_task(_warm_catalog(service))


@app.on_event("shutdown")
async def shutdown_event() -> None:
    if _warmup_task is not None and not _warmup_task.done():
        _warmup_task.cancel()
        await asyncio.gather(_warmup_task, return_exceptions=True)
    # Cancels the shared sweep itself before the HTTP client goes away.
    await shutdown_catalog_service()


@app.get("/", response_class=HTMLResponse)
async def index(
    request: Request,
    service: PackageCatalogService = Depends(get_catalog_service),
) -> HTMLResponse:
    """
    Simple landing page so you can see something in a browser.
    """
    stats = None
    try:
        stats = await service.get_stats()
    except Exception as e:
        logger.error(f"Failed to load catalog for landing page: {e}")

    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "title": "WebInstall packages",
            "stats": stats,
        },
    )


@app.get("/health")
async def health() -> dict:
    """
    Lightweight health check endpoint.
    """
    return {"status": "ok"}


app.include_router(packages_router, prefix="/api", tags=["packages"])


if __name__ == "__main__":
    """
    Allow running `python -m webi_catalog.main` to start the Uvicorn
    development server.
    """
    import uvicorn

    uvicorn.run(
        "webi_catalog.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
