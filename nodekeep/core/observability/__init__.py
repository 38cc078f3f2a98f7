from nodekeep.core.observability.logging_config import (  # noqa: F401
    level_from_flags,
    setup_logging,
)
