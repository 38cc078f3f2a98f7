"""
Shared test fixtures and configuration.

Nothing here touches the network: HTTP goes through ``FakeOpener``,
which serves canned bodies (or raises canned errors) per URL.
"""

from __future__ import annotations

import hashlib
import io
import json
import urllib.error
import urllib.request
import zipfile
from pathlib import Path
from typing import Any

import pytest

from nodekeep.core.config.settings import NodekeepConfig, Settings
from nodekeep.core.services.runtime_install.domain.platform import (
    HostArch,
    HostOs,
    HostPlatform,
)

CATALOG_URL = "https://nodejs.org/dist/index.json"
DIST = "https://nodejs.org/dist"

WINDOWS_X64 = HostPlatform(HostOs.WINDOWS, HostArch.X64)
LINUX_X64 = HostPlatform(HostOs.LINUX, HostArch.X64)

_ALL_FILES = ["linux-x64", "linux-arm64", "osx-arm64-tar", "osx-x64-tar", "win-x64-zip"]

# Deliberately out of order: the catalog must sort it.
INDEX_ENTRIES: list[dict[str, Any]] = [
    {"version": "v20.10.0", "lts": "Iron", "date": "2023-11-22", "files": _ALL_FILES},
    {"version": "v21.6.0", "lts": False, "date": "2024-01-14", "files": _ALL_FILES},
    {"version": "v18.19.0", "lts": "Hydrogen", "date": "2023-11-29", "files": _ALL_FILES},
    {"version": "v20.11.0", "lts": "Iron", "date": "2024-01-09", "files": _ALL_FILES},
]


class FakeResponse:
    """Minimal stand-in for the object ``urlopen`` returns."""

    def __init__(self, body: bytes, *, content_length: bool = True, status: int = 200):
        self._buf = io.BytesIO(body)
        self.status = status
        self.headers: dict[str, str] = {}
        if content_length:
            self.headers["Content-Length"] = str(len(body))

    def read(self, n: int = -1) -> bytes:
        return self._buf.read(n)

    def __enter__(self) -> FakeResponse:
        return self

    def __exit__(self, *exc: object) -> None:
        self._buf.close()


class FakeOpener:
    """Callable with ``urlopen``'s signature, routing by URL.

    A route is bytes, an exception instance, or a list of those served
    in order (the last one repeats).
    """

    def __init__(self, routes: dict[str, Any] | None = None):
        self.routes: dict[str, Any] = dict(routes or {})
        self.calls: list[str] = []

    def __call__(self, req: urllib.request.Request | str, timeout: float | None = None):
        url = req.full_url if isinstance(req, urllib.request.Request) else req
        self.calls.append(url)
        if url not in self.routes:
            raise urllib.error.URLError(f"no route for {url}")
        route = self.routes[url]
        if isinstance(route, list):
            route = route.pop(0) if len(route) > 1 else route[0]
        if isinstance(route, BaseException):
            raise route
        if isinstance(route, FakeResponse):
            return route
        return FakeResponse(route)

    def count(self, url: str) -> int:
        return self.calls.count(url)


def sha256(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def make_runtime_zip(version: str = "20.11.0", *, binary: bytes = b"MZ fake node") -> bytes:
    """Zip laid out like the upstream Windows build."""
    top = f"node-v{version}-win-x64"
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        zf.writestr(f"{top}/", "")
        zf.writestr(f"{top}/node.exe", binary)
        zf.writestr(f"{top}/README.md", "# Node.js\n")
    return buf.getvalue()


def shasums_for(file_name: str, data: bytes) -> bytes:
    lines = [
        f"{'0' * 64}  node-v0.0.0-headers.tar.gz",
        f"{sha256(data)}  {file_name}",
    ]
    return ("\n".join(lines) + "\n").encode()


@pytest.fixture
def config(tmp_path: Path) -> NodekeepConfig:
    """Config rooted in a temporary home with fast retries."""
    return NodekeepConfig(
        home=tmp_path / "home",
        settings=Settings(retry_base_delay=0.0),
    )


@pytest.fixture
def index_body() -> bytes:
    return json.dumps(INDEX_ENTRIES).encode()


@pytest.fixture
def opener(index_body: bytes) -> FakeOpener:
    """Opener serving the catalog and a valid 20.11.0 Windows build."""
    name = "node-v20.11.0-win-x64.zip"
    data = make_runtime_zip("20.11.0")
    return FakeOpener({
        CATALOG_URL: index_body,
        f"{DIST}/v20.11.0/SHASUMS256.txt": shasums_for(name, data),
        f"{DIST}/v20.11.0/{name}": data,
    })
