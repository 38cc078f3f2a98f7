from nodekeep.core.persistence.registry import (  # noqa: F401
    InstallationRegistry,
    RegistryDocument,
)
