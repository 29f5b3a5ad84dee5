"""
Shared fixtures: an in-process fake of the GitHub REST API served through
httpx.MockTransport, and helpers to build catalog services against it.
"""

import base64
import os
from collections import Counter
from typing import Dict, List, Optional, Set

import httpx
import pytest

from webi_catalog.core.config import Settings
from webi_catalog.core.dependencies import build_catalog_service
from webi_catalog.domain.models import InstallCommands, PackageRecord, PlatformSupport

REPO_PATH = "/repos/webinstall/webi-installers"
TREE_PATH = f"{REPO_PATH}/git/trees/main"


def readme(title: str, tagline: str = "", body: str = "", **extra: str) -> str:
    lines = ["---", f"title: {title}"]
    if tagline:
        lines.append(f"tagline: {tagline}")
    for key, value in extra.items():
        lines.append(f"{key}: {value}")
    lines.append("---")
    lines.append("")
    lines.append(f"# {title}")
    lines.append("")
    if body:
        lines.append(body)
    return "\n".join(lines) + "\n"


def encode(text: str) -> str:
    # GitHub wraps base64 bodies at 60 characters.
    return base64.encodebytes(text.encode("utf-8")).decode("ascii")


class FakeGitHub:
    """
    Minimal GitHub API: tree listing, contents and repository resource.

    ``packages`` maps a package name to a dict with ``readme`` (text or None),
    ``install_sh`` and ``install_ps1`` flags.
    """

    def __init__(self, packages: Dict[str, dict], extra_tree: Optional[List[dict]] = None):
        self.packages = packages
        self.extra_tree = extra_tree or []
        self.calls: Counter = Counter()
        self.fail_paths: Set[str] = set()
        self.tree_status: int = 200
        self.tree_headers: Dict[str, str] = {}

    def tree_json(self) -> dict:
        entries = [{"path": ".github", "type": "tree", "sha": "gh"}]
        for name, entry in self.packages.items():
            entries.append({"path": name, "type": "tree", "sha": f"t-{name}"})
            if entry.get("readme") is not None:
                entries.append({"path": f"{name}/README.md", "type": "blob", "sha": f"r-{name}", "size": 10})
            if entry.get("install_sh", True):
                entries.append({"path": f"{name}/install.sh", "type": "blob", "sha": f"s-{name}", "size": 10})
            if entry.get("install_ps1", False):
                entries.append({"path": f"{name}/install.ps1", "type": "blob", "sha": f"p-{name}", "size": 10})
        entries.extend(self.extra_tree)
        return {"sha": "root", "url": "", "tree": entries, "truncated": False}

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls[path] += 1

        if path == TREE_PATH:
            if self.tree_status != 200:
                return httpx.Response(self.tree_status, headers=self.tree_headers, json={"message": "nope"})
            return httpx.Response(200, json=self.tree_json())

        if path.startswith(f"{REPO_PATH}/contents/"):
            file_path = path[len(f"{REPO_PATH}/contents/"):]
            if file_path in self.fail_paths:
                return httpx.Response(500, json={"message": "boom"})
            name = file_path.split("/", 1)[0]
            text = self.packages.get(name, {}).get("readme")
            if text is None:
                return httpx.Response(404, json={"message": "Not Found"})
            return httpx.Response(
                200,
                json={
                    "name": file_path.rsplit("/", 1)[-1],
                    "path": file_path,
                    "sha": f"r-{name}",
                    "size": len(text),
                    "content": encode(text),
                    "encoding": "base64",
                },
            )

        if path == REPO_PATH:
            return httpx.Response(
                200,
                json={
                    "full_name": "webinstall/webi-installers",
                    "html_url": "https://github.com/webinstall/webi-installers",
                    "stargazers_count": 2345,
                    "forks_count": 210,
                },
            )

        return httpx.Response(404, json={"message": "Not Found"})

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url="https://api.github.com",
            transport=httpx.MockTransport(self.handler),
        )


def make_service(fake: FakeGitHub, clock=None, **overrides):
    settings = Settings(batch_delay_seconds=0, **overrides)
    if clock is None:
        return build_catalog_service(settings, http_client=fake.http_client())
    return build_catalog_service(settings, http_client=fake.http_client(), clock=clock)


def make_record(name: str, linux=False, macos=False, windows=False, category="Other", **fields) -> PackageRecord:
    return PackageRecord(
        name=name,
        title=fields.pop("title", name),
        tagline=fields.pop("tagline", f"{name} tagline"),
        description=fields.pop("description", f"{name} description"),
        homepage=f"https://example.com/{name}",
        category=category,
        platforms=PlatformSupport(linux=linux, macos=macos, windows=windows),
        install_command=InstallCommands(curl="c", wget="w", powershell="p"),
        **fields,
    )


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    # Settings read the process environment; tests start from defaults.
    for name in list(os.environ):
        if name.startswith("WEBI_") or name == "GITHUB_TOKEN":
            monkeypatch.delenv(name)
    return monkeypatch


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def five_packages():
    return {
        "bat": {"readme": readme("bat", "A cat clone", "Shows files with wings.")},
        "docker": {"readme": readme("Docker", "Build and run containers", "Docker Engine.")},
        "jq": {"readme": readme("jq", "JSON processor", "Slice and filter JSON.")},
        "node": {"readme": readme("Node.js", "JavaScript runtime", "Runs JavaScript.", windows="true"),
                 "install_ps1": True},
        "rustup": {"readme": readme("rustup", "Rust toolchain installer", "Installs Rust.")},
    }
