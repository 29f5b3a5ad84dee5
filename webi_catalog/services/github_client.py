"""
Thin async client for the GitHub REST API, scoped to one repository.

Every request goes through a TTLCache keyed by its request path, so repeated
reads of the tree or of a README within the TTL never leave the process.
There is no retry loop: a failed request either falls back to a stale cached
value or raises to the caller.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional

import httpx

from webi_catalog.core.config import Settings
from webi_catalog.domain.errors import RateLimitExceeded, UpstreamHttpError
from webi_catalog.domain.models import FileContent, RepositoryMetadata, RepositoryTree
from webi_catalog.services.cache import TTLCache, get_cached

logger = logging.getLogger(__name__)

USER_AGENT = "webi-installers-ui"


def _header_int(headers: httpx.Headers, name: str) -> Optional[int]:
    raw = headers.get(name)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


class GitHubClient:
    """
    Read-only access to the configured repository's tree, files and metadata.

    If no ``http_client`` is passed, the client creates and owns an
    ``httpx.AsyncClient`` and closes it in ``aclose()``.
    """

    def __init__(
        self,
        settings: Settings,
        tree_cache: TTLCache[RepositoryTree],
        file_cache: TTLCache[FileContent],
        metadata_cache: TTLCache[RepositoryMetadata],
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings
        self.tree_cache = tree_cache
        self.file_cache = file_cache
        self.metadata_cache = metadata_cache

        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": USER_AGENT,
        }
        if settings.github_token:
            headers["Authorization"] = f"Bearer {settings.github_token}"

        self._owns_http_client = http_client is None
        if http_client is None:
            http_client = httpx.AsyncClient(
                base_url=settings.github_api_url,
                timeout=settings.http_timeout,
                follow_redirects=True,
            )
        self._http = http_client
        self._headers = headers

    @property
    def authenticated(self) -> bool:
        return bool(self.settings.github_token)

    @property
    def repo_path(self) -> str:
        return f"/repos/{self.settings.repo_owner}/{self.settings.repo_name}"

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http.aclose()

    def clear_caches(self) -> None:
        self.tree_cache.clear()
        self.file_cache.clear()
        self.metadata_cache.clear()

    # ------------------------------------------------------------------------
    # Request dispatch
    # ------------------------------------------------------------------------

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.is_success:
            return

        if response.status_code == 403:
            reset_epoch = _header_int(response.headers, "x-ratelimit-reset")
            reset_at = (
                datetime.fromtimestamp(reset_epoch, tz=timezone.utc)
                if reset_epoch is not None
                else None
            )
            raise RateLimitExceeded(
                remaining=_header_int(response.headers, "x-ratelimit-remaining"),
                limit=_header_int(response.headers, "x-ratelimit-limit"),
                reset_at=reset_at,
                authenticated=self.authenticated,
            )

        raise UpstreamHttpError(
            status_code=response.status_code,
            url=str(response.request.url),
            reason=response.reason_phrase,
        )

    async def _request(self, endpoint: str, params: Optional[dict] = None) -> dict:
        logger.debug(f"GET {endpoint}")
        try:
            response = await self._http.get(endpoint, params=params, headers=self._headers)
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch {endpoint}: {e}")
            raise
        self._raise_for_status(response)
        return response.json()

    # ------------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------------

    async def get_tree(self, force: bool = False) -> RepositoryTree:
        """
        Recursive tree listing of the configured branch.
        """
        endpoint = f"{self.repo_path}/git/trees/{self.settings.repo_branch}"

        async def fetch() -> RepositoryTree:
            tree = RepositoryTree(**await self._request(endpoint, params={"recursive": "1"}))
            if tree.truncated:
                logger.warning(f"Tree listing for {endpoint} was truncated by GitHub; some packages may be missing")
            return tree

        return await get_cached(self.tree_cache, f"{endpoint}?recursive=1", fetch, force=force)

    async def get_file_content(self, path: str, force: bool = False) -> FileContent:
        """
        Contents payload (base64 body) of a single file.
        """
        endpoint = f"{self.repo_path}/contents/{path}"

        async def fetch() -> FileContent:
            return FileContent(**await self._request(endpoint))

        return await get_cached(self.file_cache, endpoint, fetch, force=force)

    async def get_multiple_file_contents(self, paths: List[str]) -> List[FileContent]:
        """
        Fetch several files concurrently. Fails if any single fetch fails.
        """
        return list(await asyncio.gather(*(self.get_file_content(p) for p in paths)))

    async def get_repository_metadata(self, force: bool = False) -> RepositoryMetadata:
        endpoint = self.repo_path

        async def fetch() -> RepositoryMetadata:
            return RepositoryMetadata(**await self._request(endpoint))

        return await get_cached(self.metadata_cache, endpoint, fetch, force=force)
