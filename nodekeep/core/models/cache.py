"""
Cache entry model — one downloaded artifact kept in ``<home>/cache``.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel


class CacheEntry(BaseModel):
    file_name: str
    path: Path
    size_bytes: int
    modified_at: datetime
