"""
L3 Detection — Host platform, disk and network checks.

Read-only checks used by the orchestrator's preflight stage.
"""

from __future__ import annotations

import logging
import platform
import shutil
import time
import urllib.request
import uuid
from collections.abc import Callable
from pathlib import Path
from typing import Any

from nodekeep.core.services.runtime_install.data.constants import USER_AGENT
from nodekeep.core.services.runtime_install.domain.platform import (
    HostPlatform,
    arch_from_machine,
    os_from_system,
)

logger = logging.getLogger(__name__)


def detect_host() -> HostPlatform:
    """The platform this process is running on."""
    host = HostPlatform(
        os=os_from_system(platform.system()),
        arch=arch_from_machine(platform.machine()),
    )
    logger.debug("Detected host platform %s", host)
    return host


def can_write(directory: Path) -> bool:
    """Check write access by creating and deleting a scratch file.

    The directory is created first if it does not exist.
    """
    scratch = directory / f".write_test_{uuid.uuid4().hex}"
    try:
        directory.mkdir(parents=True, exist_ok=True)
        scratch.write_bytes(b"ok")
        scratch.unlink()
        return True
    except OSError as e:
        logger.debug("Write check in %s failed: %s", directory, e)
        try:
            scratch.unlink(missing_ok=True)
        except OSError:
            pass
        return False


def free_disk_bytes(path: Path) -> int | None:
    """Free bytes on the volume holding ``path`` (None if unknown).

    Walks up to the nearest existing ancestor so it works before the
    home directory has been created.
    """
    candidate = path
    while not candidate.exists() and candidate.parent != candidate:
        candidate = candidate.parent
    try:
        return shutil.disk_usage(candidate).free
    except OSError as e:
        logger.debug("Cannot read disk usage for %s: %s", candidate, e)
        return None


def check_url_reachable(
    url: str,
    timeout: float = 10.0,
    *,
    opener: Callable[..., Any] = urllib.request.urlopen,
) -> dict[str, Any]:
    """HEAD ``url`` and report reachability.

    Returns::

        {"reachable": True, "url": "https://...", "latency_ms": 42}
        or
        {"reachable": False, "url": "https://...", "error": "timeout"}
    """
    start = time.monotonic()
    req = urllib.request.Request(url, method="HEAD", headers={"User-Agent": USER_AGENT})
    try:
        with opener(req, timeout=timeout) as resp:
            return {
                "reachable": True,
                "url": url,
                "status": getattr(resp, "status", None),
                "latency_ms": int((time.monotonic() - start) * 1000),
            }
    except Exception as exc:
        return {
            "reachable": False,
            "url": url,
            "error": str(exc)[:200],
            "latency_ms": int((time.monotonic() - start) * 1000),
        }
