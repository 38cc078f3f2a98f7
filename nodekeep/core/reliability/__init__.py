"""Locking and retry primitives."""

from nodekeep.core.reliability.file_lock import (  # noqa: F401
    LockHandle,
    LockManager,
    validate_lock_name,
)
from nodekeep.core.reliability.retry import RetryPolicy  # noqa: F401
