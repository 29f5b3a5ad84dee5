"""
Turn a webi-installers README into a PackageRecord.

READMEs start with a small frontmatter block:

    ---
    title: Node.js
    homepage: https://nodejs.org
    tagline: JavaScript V8 runtime
    ---

Only flat ``key: value`` pairs are understood; this is not a YAML parser.
"""
from __future__ import annotations

import base64
import binascii
import logging
import re
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from webi_catalog.domain.models import (
    Category,
    FrontmatterValue,
    InstallCommands,
    PackageMetadata,
    PackageRecord,
    PlatformSupport,
)

logger = logging.getLogger(__name__)

WEBI_INSTALL_URL = "https://webinstall.dev"
DEFAULT_HOMEPAGE_BASE = "https://github.com/webinstall/webi-installers/tree/main"

FRONTMATTER_DELIMITER = "---"

# Example and test entries that live in the repository but are not real tools.
EXCLUDED_PACKAGES = frozenset({"_npm", "Foo Bar", "vim-example"})

# Checked in order; no name appears in more than one list.
CATEGORY_MEMBERS: List[Tuple[Category, Tuple[str, ...]]] = [
    ("JavaScript Runtime", ("node", "npm", "yarn", "pnpm", "deno", "bun")),
    ("Python", ("python", "python3", "pip", "pip3", "poetry", "pipenv")),
    ("Go", ("go", "golang", "gofmt", "goimports")),
    ("Rust", ("rust", "cargo", "rustc", "rustup")),
    ("Java/JVM", ("java", "javac", "maven", "gradle", "kotlin")),
    ("Version Control", ("git", "gh", "gitlab-cli", "hub")),
    ("Containers", ("docker", "docker-compose", "podman", "containerd")),
    ("Kubernetes", ("kubectl", "helm", "k9s", "kubectx", "kustomize")),
    ("Infrastructure", ("terraform", "ansible", "vagrant", "packer")),
    ("Editors", ("vim", "nvim", "neovim", "emacs", "nano", "code", "cursor")),
    ("Build Tools", ("make", "cmake", "ninja", "bazel", "meson")),
    ("CLI Utilities", ("curl", "wget", "jq", "yq", "fzf", "rg", "fd", "bat", "exa", "lsd")),
    ("Databases", ("postgres", "postgresql", "mysql", "redis", "mongodb", "sqlite")),
    ("Web Servers", ("nginx", "apache", "caddy", "traefik")),
    ("Security", ("gpg", "ssh", "openssl", "age", "sops")),
    ("Monitoring", ("prometheus", "grafana", "jaeger", "zipkin")),
]

KNOWN_DESCRIPTIONS: Dict[str, str] = {
    "node": "JavaScript runtime built on Chrome's V8 JavaScript engine",
    "npm": "Package manager for Node.js packages and modules",
    "yarn": "Fast, reliable, and secure dependency management for Node.js",
    "git": "Distributed version control system for tracking changes in source code",
    "docker": "Platform for developing, shipping, and running applications in containers",
    "python": "High-level programming language for general-purpose programming",
    "go": "Open source programming language that makes it easy to build simple, reliable, and efficient software",
    "rust": "Systems programming language focused on safety, speed, and concurrency",
    "vim": "Highly configurable text editor built to make creating and changing any kind of text very efficient",
    "nvim": "Hyperextensible Vim-based text editor",
    "code": "Free, open-source code editor developed by Microsoft",
    "kubectl": "Command line tool for controlling Kubernetes clusters",
    "terraform": "Infrastructure as code tool for building, changing, and versioning infrastructure",
    "ansible": "Simple IT automation platform that makes your applications and systems easier to deploy",
    "jq": "Lightweight and flexible command-line JSON processor",
    "curl": "Command line tool and library for transferring data with URLs",
    "wget": "Free software package for retrieving files using HTTP, HTTPS, FTP and FTPS",
    "make": "Build automation tool that automatically builds executable programs and libraries from source code",
    "cmake": "Cross-platform build system generator",
    "nginx": "High-performance HTTP server and reverse proxy",
    "postgres": "Advanced open source relational database system",
    "redis": "In-memory data structure store used as a database, cache, and message broker",
    "gh": "GitHub's official command line tool",
    "helm": "Package manager for Kubernetes",
    "k9s": "Terminal based UI to interact with your Kubernetes clusters",
    "fzf": "General-purpose command-line fuzzy finder",
    "bat": "Cat clone with syntax highlighting and Git integration",
    "fd": "Simple, fast and user-friendly alternative to find",
    "rg": "Recursively searches directories for a regex pattern while respecting your gitignore",
    "exa": "Modern replacement for ls with Git integration and color coding",
}

CATEGORY_PHRASES: Dict[str, str] = {
    "JavaScript Runtime": "JavaScript development tool",
    "Python": "Python development tool",
    "Go": "Go programming language tool",
    "Rust": "Rust programming language tool",
    "Java/JVM": "Java development tool",
    "Version Control": "Version control tool",
    "Containers": "Container management tool",
    "Kubernetes": "Kubernetes tool",
    "Infrastructure": "Infrastructure automation tool",
    "Editors": "Text editor and development tool",
    "Build Tools": "Build automation tool",
    "CLI Utilities": "Command line utility",
    "Databases": "Database system",
    "Web Servers": "Web server",
    "Security": "Security tool",
    "Monitoring": "Monitoring and observability tool",
}

_QUOTES_RE = re.compile(r"^[\"']|[\"']$")


def decode_base64_content(content: str) -> str:
    """
    Decode a GitHub contents payload. Malformed input is logged and yields "".
    """
    try:
        raw = base64.b64decode(content.replace("\n", ""), validate=True)
    except (binascii.Error, ValueError) as e:
        logger.error(f"Failed to decode base64 content: {e}")
        return ""
    return raw.decode("utf-8", errors="replace")


def _split_frontmatter(content: str) -> Tuple[Optional[List[str]], List[str]]:
    """
    Return (frontmatter lines, remaining lines). The first element is None
    when the content does not open with a complete ``---`` block.
    """
    lines = content.splitlines()
    if not lines or lines[0].rstrip() != FRONTMATTER_DELIMITER:
        return None, lines
    for idx in range(1, len(lines)):
        if lines[idx].rstrip() == FRONTMATTER_DELIMITER:
            return lines[1:idx], lines[idx + 1:]
    return None, lines


def parse_frontmatter(content: str) -> Dict[str, FrontmatterValue]:
    """
    Parse the leading ``---`` block into a flat key/value map.

    Values have one leading and one trailing quote removed; ``true`` and
    ``false`` (any case) become booleans. Missing or unterminated frontmatter
    gives an empty map.
    """
    block, _ = _split_frontmatter(content)
    if block is None:
        return {}

    metadata: Dict[str, FrontmatterValue] = {}
    for line in block:
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("#"):
            continue
        key, sep, value = trimmed.partition(":")
        key = key.strip()
        if not sep or not key:
            continue

        clean_value = _QUOTES_RE.sub("", value.strip())
        if clean_value.lower() == "true":
            metadata[key] = True
        elif clean_value.lower() == "false":
            metadata[key] = False
        else:
            metadata[key] = clean_value

    return metadata


def extract_description(content: str) -> str:
    """
    First non-blank line after the frontmatter that is neither a heading nor
    a code fence marker.
    """
    _, body = _split_frontmatter(content)
    for line in body:
        trimmed = line.strip()
        if trimmed and not trimmed.startswith("#") and not trimmed.startswith("```"):
            return trimmed
    return ""


def generate_install_commands(package_name: str) -> InstallCommands:
    return InstallCommands(
        curl=f"curl -sS {WEBI_INSTALL_URL}/{package_name} | bash",
        wget=f"wget -qO- {WEBI_INSTALL_URL}/{package_name} | bash",
        powershell=f'curl.exe -A "MS" {WEBI_INSTALL_URL}/{package_name} | powershell',
    )


def categorize_package(package_name: str, metadata: Optional[PackageMetadata] = None) -> Category:
    """
    Map a package name onto one of the fixed categories. Unknown names are "Other".
    """
    name = package_name.lower()
    for category, members in CATEGORY_MEMBERS:
        if name in members:
            return category
    return "Other"


def detect_platforms(
    metadata: PackageMetadata,
    has_install_sh: bool,
    has_install_ps1: bool,
) -> PlatformSupport:
    """
    Linux and macOS are opt-out: supported whenever install.sh exists unless
    the frontmatter says ``false``. Windows is opt-in: supported only when the
    frontmatter says ``true`` or an install.ps1 exists.
    """
    return PlatformSupport(
        linux=metadata.linux is not False and has_install_sh,
        macos=metadata.macos is not False and has_install_sh,
        windows=metadata.windows is True or has_install_ps1,
    )


def generate_fallback_description(package_name: str, category: str) -> str:
    known = KNOWN_DESCRIPTIONS.get(package_name.lower())
    if known:
        return known
    phrase = CATEGORY_PHRASES.get(category, "Development tool")
    return f"{phrase} for {package_name}"


def parse_package(
    package_name: str,
    readme_content: str,
    has_install_sh: bool = False,
    has_install_ps1: bool = False,
    last_updated: Optional[datetime] = None,
    is_base64: bool = False,
    homepage_base: str = DEFAULT_HOMEPAGE_BASE,
) -> PackageRecord:
    """
    Build a PackageRecord from a README.

    ``is_base64`` marks ``readme_content`` as the raw GitHub contents payload
    that still needs decoding.
    """
    text = decode_base64_content(readme_content) if is_base64 else readme_content

    metadata = PackageMetadata.from_frontmatter(parse_frontmatter(text))
    category = categorize_package(package_name, metadata)

    description = (
        extract_description(text)
        or metadata.description
        or generate_fallback_description(package_name, category)
    )

    return PackageRecord(
        name=package_name,
        title=metadata.title or package_name,
        tagline=metadata.tagline or description,
        description=description,
        homepage=metadata.homepage or f"{homepage_base.rstrip('/')}/{package_name}",
        category=category,
        platforms=detect_platforms(metadata, has_install_sh, has_install_ps1),
        install_command=generate_install_commands(package_name),
        version=metadata.version,
        updated_at=last_updated or datetime.now(timezone.utc),
    )


def is_valid_package(pkg: PackageRecord) -> bool:
    """
    Reject example/test entries and records without a name, title or platform.
    """
    if pkg.name in EXCLUDED_PACKAGES or pkg.title in EXCLUDED_PACKAGES:
        return False
    return bool(pkg.name and pkg.title and pkg.platforms.any())
