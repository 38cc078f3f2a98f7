from nodekeep.core.use_cases.cache import (  # noqa: F401
    clean_cache,
    clear_cache,
    list_cache,
)
from nodekeep.core.use_cases.runtimes import (  # noqa: F401
    Services,
    build_services,
    cleanup_locks,
    detect_project_version,
    install_from_version_file,
    install_runtime,
    list_remote,
    list_runtimes,
    remove_runtime,
    resolve_version,
    use_runtime,
)
