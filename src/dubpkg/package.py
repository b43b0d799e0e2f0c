"""
Package entity

A Package is a loaded descriptor bound to a directory and a version. It may
own sub-packages declared inline or in nested directories.
"""

import logging
import os
from pathlib import Path
from typing import List, Optional, Union

from .errors import PackageManagerError
from .manifest import PackageManifest
from .version import Version

logger = logging.getLogger(__name__)


def normalize_path(path: Union[str, Path]) -> Path:
    """Absolute, normalized form of path used as package identity"""
    return Path(os.path.normpath(os.path.abspath(os.path.expanduser(str(path)))))


class Package:
    """A package loaded from a descriptor and bound to a directory"""

    def __init__(
        self,
        path: Union[str, Path],
        manifest: Optional[PackageManifest] = None,
        parent: Optional['Package'] = None
    ):
        self.path = normalize_path(path)
        self.manifest = manifest if manifest is not None else PackageManifest.load(self.path)
        self.parent = parent

        if parent is not None:
            self.version = parent.version
        elif self.manifest.version:
            self.version = Version(self.manifest.version)
        else:
            self.version = Version.master()

        self._sub_packages: Optional[List['Package']] = None

    @property
    def name(self) -> str:
        if self.parent is not None:
            return f"{self.parent.name}:{self.manifest.name}"
        return self.manifest.name

    @property
    def version_string(self) -> str:
        """The version as written in the descriptor, e.g. "~master" or "1.0.0" """
        return str(self.version)

    @property
    def base_package(self) -> Optional['Package']:
        return self.parent

    @property
    def sub_packages(self) -> List['Package']:
        """Sub-packages, loaded on first access"""
        if self._sub_packages is None:
            self._sub_packages = self._load_sub_packages()
        return self._sub_packages

    def _load_sub_packages(self) -> List['Package']:
        packages = []
        for entry in self.manifest.sub_packages:
            try:
                if isinstance(entry, dict):
                    packages.append(Package(self.path, PackageManifest.from_dict(entry), parent=self))
                elif isinstance(entry, str):
                    sub_path = self.path / entry
                    packages.append(Package(sub_path, PackageManifest.load(sub_path), parent=self))
                else:
                    logger.warning("Ignoring malformed sub-package entry in %s: %r", self.path, entry)
            except (OSError, PackageManagerError) as e:
                logger.warning("Failed to load sub-package of %s (%r): %s", self.name, entry, e)
        return packages

    def __repr__(self) -> str:
        return f"Package({self.name!r}, {self.version_string!r}, {str(self.path)!r})"
