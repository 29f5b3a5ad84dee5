"""
Pydantic models for the package catalog.

This module defines the data models used throughout the application, including:
- GitHub tree listing and file content payloads
- Per-package file sets located in the tree
- README frontmatter metadata
- Package records and catalog statistics served to the UI

Models exposed over HTTP serialize with camelCase aliases so the UI receives
``installCommand``, ``updatedAt`` and so on.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Categories and platforms
# ---------------------------------------------------------------------------

Category = Literal[
    "JavaScript Runtime",
    "Python",
    "Go",
    "Rust",
    "Java/JVM",
    "Version Control",
    "Containers",
    "Kubernetes",
    "Infrastructure",
    "Editors",
    "Build Tools",
    "CLI Utilities",
    "Databases",
    "Web Servers",
    "Security",
    "Monitoring",
    "Other",
]

Platform = Literal["linux", "macos", "windows"]

PLATFORMS: List[str] = ["linux", "macos", "windows"]

FrontmatterValue = Union[str, bool]


class CamelModel(BaseModel):
    """Base model that reads snake_case or camelCase and writes camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# GitHub payloads
# ---------------------------------------------------------------------------


class TreeEntry(BaseModel):
    """
    A single entry of a recursive git tree listing.

    ``type`` is ``tree`` for directories and ``blob`` for files; ``commit``
    shows up for submodules and is ignored by the indexer.
    """

    model_config = ConfigDict(extra="ignore")

    path: str
    type: Literal["tree", "blob", "commit"]
    sha: str = ""
    size: Optional[int] = None
    mode: Optional[str] = None
    url: Optional[str] = None


class RepositoryTree(BaseModel):
    """Flat recursive listing of the repository's default branch."""

    model_config = ConfigDict(extra="ignore")

    sha: str = ""
    url: Optional[str] = None
    tree: List[TreeEntry] = Field(default_factory=list)
    truncated: bool = False


class FileContent(BaseModel):
    """Response of the GitHub contents endpoint for a single file."""

    model_config = ConfigDict(extra="ignore")

    name: str = ""
    path: str
    sha: str = ""
    size: int = 0
    content: str = Field(default="", description="Base64 encoded file body, possibly wrapped with newlines.")
    encoding: str = "base64"
    html_url: Optional[str] = None
    download_url: Optional[str] = None


class RepositoryMetadata(BaseModel):
    """Subset of the GitHub repository resource used for display."""

    model_config = ConfigDict(extra="ignore")

    full_name: str = ""
    description: Optional[str] = None
    html_url: Optional[str] = None
    default_branch: str = "main"
    stargazers_count: int = 0
    forks_count: int = 0
    open_issues_count: int = 0


class PackageFileSet(BaseModel):
    """Paths of the well-known files found under a package directory."""

    readme: Optional[str] = None
    releases: Optional[str] = None
    install_sh: Optional[str] = None
    install_ps1: Optional[str] = None

    @property
    def has_readme(self) -> bool:
        return self.readme is not None

    @property
    def has_install_sh(self) -> bool:
        return self.install_sh is not None

    @property
    def has_install_ps1(self) -> bool:
        return self.install_ps1 is not None


# ---------------------------------------------------------------------------
# README metadata
# ---------------------------------------------------------------------------


class PackageMetadata(BaseModel):
    """
    Typed view of a README frontmatter block.

    Every recognized key is optional and defaults to ``None`` (unset).
    Platform flags only count when the frontmatter holds a literal
    ``true``/``false``; anything else lands in ``extra`` and the flag stays
    unset. Keys the catalog does not know about are kept in ``extra`` as-is.
    """

    title: Optional[str] = None
    homepage: Optional[str] = None
    tagline: Optional[str] = None
    description: Optional[str] = None
    version: Optional[str] = None
    linux: Optional[bool] = None
    macos: Optional[bool] = None
    windows: Optional[bool] = None
    extra: Dict[str, FrontmatterValue] = Field(default_factory=dict)

    @classmethod
    def from_frontmatter(cls, values: Dict[str, FrontmatterValue]) -> "PackageMetadata":
        known: Dict[str, object] = {}
        extra: Dict[str, FrontmatterValue] = {}
        for key, value in values.items():
            if key in PLATFORMS:
                if isinstance(value, bool):
                    known[key] = value
                else:
                    extra[key] = value
            elif key in ("title", "homepage", "tagline", "description", "version"):
                # A bare `true` in a text field is still text.
                known[key] = str(value).lower() if isinstance(value, bool) else value
            else:
                extra[key] = value
        return cls(extra=extra, **known)


# ---------------------------------------------------------------------------
# Package records
# ---------------------------------------------------------------------------


class PlatformSupport(CamelModel):
    linux: bool = False
    macos: bool = False
    windows: bool = False

    def any(self) -> bool:
        return self.linux or self.macos or self.windows

    def supports(self, platform: str) -> bool:
        return bool(getattr(self, platform, False))


class InstallCommands(CamelModel):
    curl: str
    wget: str
    powershell: str


class PackageRecord(CamelModel):
    """
    A developer tool advertised for one-command installation.

    ``name`` is the repository directory name and the unique key of the
    catalog. ``updated_at`` is the time the record was fetched, not the time
    the package last changed upstream.
    """

    name: str
    title: str
    tagline: str
    description: str
    homepage: str
    category: Category
    platforms: PlatformSupport
    install_command: InstallCommands
    version: Optional[str] = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class PlatformCounts(CamelModel):
    linux: int = 0
    macos: int = 0
    windows: int = 0


class CatalogStats(CamelModel):
    total_packages: int = 0
    categories_count: int = 0
    platform_counts: PlatformCounts = Field(default_factory=PlatformCounts)


class RepositoryStats(CamelModel):
    """Repository figures shown next to the site header."""

    full_name: str
    html_url: Optional[str] = None
    stars: int = 0
    forks: int = 0
