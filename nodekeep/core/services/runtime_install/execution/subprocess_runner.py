"""
L4 Execution — Subprocess runner.

The single place where ``subprocess.run`` is called for install
operations.  Callers get a result dict, never an exception.
"""

from __future__ import annotations

import logging
import subprocess
import time
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_OUTPUT_TAIL = 2000


def run_command(
    cmd: list[str],
    *,
    timeout: float = 300,
    cwd: Path | str | None = None,
    tail: int | None = _OUTPUT_TAIL,
) -> dict[str, Any]:
    """Run ``cmd`` and capture its output.

    Only the last 2000 characters of stdout are kept unless ``tail`` is
    None; stderr is always trimmed.

    Returns::

        {"ok": True, "returncode": 0, "stdout": "...", "stderr": "", "elapsed_ms": N}
        or
        {"ok": False, "returncode": 2, "error": "...", "stderr": "...", ...}
    """
    logger.debug("Running: %s", " ".join(cmd))
    start = time.monotonic()
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            cwd=str(cwd) if cwd else None,
        )
    except subprocess.TimeoutExpired:
        return {"ok": False, "returncode": None, "error": f"Command timed out ({timeout}s)", "stderr": ""}
    except FileNotFoundError:
        return {"ok": False, "returncode": None, "error": f"Command not found: {cmd[0]}", "stderr": ""}
    except OSError as e:
        logger.exception("Subprocess error: %s", cmd)
        return {"ok": False, "returncode": None, "error": str(e), "stderr": ""}

    elapsed_ms = int((time.monotonic() - start) * 1000)
    stdout = _tail(result.stdout, tail)
    stderr = _tail(result.stderr, _OUTPUT_TAIL)

    if result.returncode == 0:
        return {
            "ok": True,
            "returncode": 0,
            "stdout": stdout,
            "stderr": stderr,
            "elapsed_ms": elapsed_ms,
        }

    return {
        "ok": False,
        "returncode": result.returncode,
        "error": f"Command failed (exit {result.returncode})",
        "stdout": stdout,
        "stderr": stderr,
        "elapsed_ms": elapsed_ms,
    }


def _tail(text: str | None, limit: int | None) -> str:
    if not text:
        return ""
    return text if limit is None else text[-limit:]
