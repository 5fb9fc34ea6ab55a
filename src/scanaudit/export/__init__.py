"""CSV export with deep links into source hosting providers.

Provides:
- Package identifier parsing and provider adapters (GitHub, GitLab)
- Per-export default-branch cache with fallback revision
- CSV export engine
- Background export task with progress and cancellation
"""

from .branches import BranchResolver
from .engine import (
    CancellationToken,
    ExportEngine,
    ExportProgress,
    ExportReport,
    build_header,
    default_csv_path,
    max_deeplink_columns,
)
from .providers import GitHubProvider, GitLabProvider, HostingProvider, default_providers
from .purl import PackageRef, parse_package_ref
from .task import ExportCoordinator, ExportTask

__all__ = [
    "BranchResolver",
    "CancellationToken",
    "ExportEngine",
    "ExportProgress",
    "ExportReport",
    "build_header",
    "default_csv_path",
    "max_deeplink_columns",
    "GitHubProvider",
    "GitLabProvider",
    "HostingProvider",
    "default_providers",
    "PackageRef",
    "parse_package_ref",
    "ExportCoordinator",
    "ExportTask",
]
