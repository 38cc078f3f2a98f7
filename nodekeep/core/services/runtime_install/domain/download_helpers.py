"""
L1 Domain — Download helpers (pure).

Size formatting and checksum-manifest parsing.  No I/O.
"""

from __future__ import annotations


def fmt_size(n: int | float) -> str:
    """Format byte count to human-readable string."""
    for unit in ("B", "KB", "MB", "GB"):
        if n < 1024:
            return f"{n:.1f} {unit}"
        n /= 1024
    return f"{n:.1f} TB"


def parse_checksum_manifest(text: str, file_name: str) -> str | None:
    """Find ``file_name`` in a ``SHASUMS256.txt`` body.

    Lines look like ``<hex>  <file>``; the file name comparison is
    case-insensitive and the digest is returned lowercased.
    """
    wanted = file_name.casefold()
    for line in text.splitlines():
        parts = line.split()
        if len(parts) < 2:
            continue
        digest, name = parts[0], parts[-1].lstrip("*")
        if name.casefold() == wanted:
            return digest.lower()
    return None


def split_checksum(expected: str) -> tuple[str, str]:
    """``"sha256:ABC"`` → ``("sha256", "abc")``; bare hex means sha256."""
    expected = expected.strip()
    if ":" in expected:
        algo, digest = expected.split(":", 1)
        return algo.strip().lower() or "sha256", digest.strip().lower()
    return "sha256", expected.lower()
