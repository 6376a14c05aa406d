"""
check-auto-updatable - Decide whether packages can be auto-updated.

Core Modules:
- Detection: source locators, GitHub/GitLab tag lookup, Repology uniqueness
- Resolution: ordered strategy chain producing a Verdict
- Build files: reading build.sh declarations, recording verdicts
- Driver: sequential batch checks and reporting
"""

__version__ = "1.0.0"

# Foundation
from .common import (
    FatalError,
    NoConnectivityError,
    MissingCredentialError,
    RegistryFetchError,
)
from .config import Config, Preferences, Endpoints, load_config, load_config_file, validate_config
from .locator import SourceLocator

# Detection
from .tags import (
    TagType,
    Provider,
    TagFound,
    NoTagFound,
    AuthMissing,
    HttpFailure,
    LookupFailed,
    TagLookup,
)
from .repology import UniquePackageCache, fetch_unique_package_names

# Resolution
from .resolver import (
    Outcome,
    Verdict,
    Resolver,
    HostingTagStrategy,
    RegistryStrategy,
    build_resolver,
)

# Build files
from .build_file import Package, PackageError, load_package, parse_assignments
from .writer import insert_declaration, persist_verdict

# Logging
from .logging_config import setup_logging, get_logger

# Driver
from .checker import PackageStatus, PackageResult, BatchResult, check_package, check_packages

__all__ = [
    "__version__",
    "FatalError",
    "NoConnectivityError",
    "MissingCredentialError",
    "RegistryFetchError",
    "Config",
    "Preferences",
    "Endpoints",
    "load_config",
    "load_config_file",
    "validate_config",
    "SourceLocator",
    "TagType",
    "Provider",
    "TagFound",
    "NoTagFound",
    "AuthMissing",
    "HttpFailure",
    "LookupFailed",
    "TagLookup",
    "UniquePackageCache",
    "fetch_unique_package_names",
    "Outcome",
    "Verdict",
    "Resolver",
    "HostingTagStrategy",
    "RegistryStrategy",
    "build_resolver",
    "Package",
    "PackageError",
    "load_package",
    "parse_assignments",
    "insert_declaration",
    "persist_verdict",
    "PackageStatus",
    "PackageResult",
    "BatchResult",
    "check_package",
    "check_packages",
    # Logging
    "setup_logging",
    "get_logger",
]
