"""
Runtime installation service — package re-exports.

Each symbol lives in its single-responsibility module inside the
appropriate layer (data → domain → resolver → detection → execution
→ orchestration)::

    from nodekeep.core.services.runtime_install import InstallOrchestrator
"""

# ── L1: Domain ──
from nodekeep.core.services.runtime_install.domain.aliases import validate_alias  # noqa: F401
from nodekeep.core.services.runtime_install.domain.platform import (  # noqa: F401
    HostArch,
    HostOs,
    HostPlatform,
)
from nodekeep.core.services.runtime_install.domain.version_files import (  # noqa: F401
    engines_to_expression,
    parse_version_file,
)
from nodekeep.core.services.runtime_install.domain.versions import (  # noqa: F401
    is_exact_version,
    normalize_version_input,
)

# ── L2: Resolver ──
from nodekeep.core.services.runtime_install.resolver.artifacts import (  # noqa: F401
    ArtifactLocator,
    ArtifactTarget,
)
from nodekeep.core.services.runtime_install.resolver.catalog import RemoteCatalog  # noqa: F401
from nodekeep.core.services.runtime_install.resolver.version_resolver import (  # noqa: F401
    VersionResolver,
)

# ── L3: Detection ──
from nodekeep.core.services.runtime_install.detection.host import detect_host  # noqa: F401
from nodekeep.core.services.runtime_install.detection.version_file import (  # noqa: F401
    VersionFileMatch,
    detect_version_file,
)

# ── L4: Execution ──
from nodekeep.core.services.runtime_install.execution.archive import (  # noqa: F401
    ArchiveExtractor,
    ArchiveFormat,
)
from nodekeep.core.services.runtime_install.execution.cache import ArtifactCache  # noqa: F401
from nodekeep.core.services.runtime_install.execution.download import (  # noqa: F401
    Downloader,
    compute_checksum,
    verify_checksum,
)

# ── L5: Orchestration ──
from nodekeep.core.services.runtime_install.orchestration.orchestrator import (  # noqa: F401
    InstallOrchestrator,
)
