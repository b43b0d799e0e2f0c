"""
Exception classes for the dub package manager

Every fatal condition raised by the package manager derives from
PackageManagerError so callers can catch the whole family at once.
"""

from pathlib import Path
from typing import Optional, Union


class PackageManagerError(Exception):
    """Base exception for package manager errors"""

    def __init__(
        self,
        message: str,
        name: Optional[str] = None,
        version: Optional[str] = None,
        path: Optional[Union[str, Path]] = None
    ):
        super().__init__(message)
        self.name = name
        self.version = version
        self.path = Path(path) if path is not None else None


class AlreadyInstalledError(PackageManagerError):
    """Install destination already exists"""
    pass


class ArchiveError(PackageManagerError):
    """Archive is unreadable or has an unsupported layout"""
    pass


class InstallIOError(PackageManagerError):
    """Creating or writing a file failed while extracting a package"""
    pass


class NotFoundError(PackageManagerError, LookupError):
    """Package, local registration or search path not found"""
    pass


class VersionConflictError(PackageManagerError):
    """The same path is referenced with two different versions"""
    pass


class MissingJournalError(PackageManagerError):
    """No installation journal exists for the package being uninstalled"""
    pass


class AlienFilesError(PackageManagerError):
    """Untracked files remain in a package directory after uninstall"""
    pass


class InvalidFormatError(PackageManagerError, ValueError):
    """A JSON sidecar file, descriptor or version spec is malformed"""
    pass
