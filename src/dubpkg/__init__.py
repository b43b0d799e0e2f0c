"""
dub package manager

Local package registry and installation engine: discovers packages on the
machine, installs them from archives, removes them safely and resolves
name/version queries.
"""

from .config import Config, load_config
from .errors import (
    AlienFilesError, AlreadyInstalledError, ArchiveError, InstallIOError,
    InvalidFormatError, MissingJournalError, NotFoundError, PackageManagerError,
    VersionConflictError
)
from .journal import EntryType, Journal, JournalEntry
from .manifest import PackageManifest
from .package import Package
from .package_manager import PackageManager
from .repository import LocalPackageType, Repository
from .version import Dependency, Version

__all__ = [
    'PackageManager',
    'Package',
    'PackageManifest',
    'Repository',
    'LocalPackageType',
    'Journal',
    'JournalEntry',
    'EntryType',
    'Version',
    'Dependency',
    'Config',
    'load_config',
    'PackageManagerError',
    'AlreadyInstalledError',
    'ArchiveError',
    'InstallIOError',
    'NotFoundError',
    'VersionConflictError',
    'MissingJournalError',
    'AlienFilesError',
    'InvalidFormatError'
]
