"""
Derive packages and their files from a flat repository tree listing.

The tree is the only source of truth for what exists upstream; nothing here
touches the network.
"""
from __future__ import annotations

from typing import Dict, List

from webi_catalog.domain.models import PackageFileSet, RepositoryTree

# Top-level directories of webi-installers that are not packages.
RESERVED_DIRECTORIES = frozenset({"docs", "scripts", "tests", "_webi"})

# Lower-cased basename -> PackageFileSet field
PACKAGE_FILE_NAMES: Dict[str, str] = {
    "readme.md": "readme",
    "releases.js": "releases",
    "install.sh": "install_sh",
    "install.ps1": "install_ps1",
}


def extract_package_directories(tree: RepositoryTree) -> List[str]:
    """
    Return the sorted, de-duplicated names of top-level package directories.

    Hidden directories (leading ``.``) and the reserved repository folders are
    skipped.
    """
    package_dirs = set()
    for item in tree.tree:
        if item.type != "tree" or not item.path:
            continue
        if "/" in item.path:
            continue
        if item.path.startswith(".") or item.path in RESERVED_DIRECTORIES:
            continue
        package_dirs.add(item.path)
    return sorted(package_dirs)


def find_package_files(tree: RepositoryTree, package_name: str) -> PackageFileSet:
    """
    Locate README.md, releases.js, install.sh and install.ps1 for a package.

    Basenames are compared case-insensitively. When the same basename occurs
    more than once below the package directory, the shallowest path wins and
    ties go to the entry that comes first in the tree listing.
    """
    prefix = f"{package_name}/"
    found: Dict[str, str] = {}

    for item in tree.tree:
        if item.type != "blob" or not item.path.startswith(prefix):
            continue
        field = PACKAGE_FILE_NAMES.get(item.path.rsplit("/", 1)[-1].lower())
        if field is None:
            continue
        current = found.get(field)
        if current is None or item.path.count("/") < current.count("/"):
            found[field] = item.path

    return PackageFileSet(**found)
