"""
Local package repositories

A repository is a root directory (user or system) holding installed
packages under packages/ and a local-packages.json list of search paths and
explicitly registered local packages.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .errors import InvalidFormatError
from .package import Package, normalize_path

logger = logging.getLogger(__name__)


LOCAL_PACKAGES_FILENAME = "local-packages.json"
SEARCH_PATH_NAME = "*"


class LocalPackageType(Enum):
    USER = "user"
    SYSTEM = "system"


@dataclass
class LocalPackageEntry:
    """One element of local-packages.json"""
    name: str
    path: Path
    version: Optional[str] = None

    @property
    def is_search_path(self) -> bool:
        return self.name == SEARCH_PATH_NAME

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LocalPackageEntry':
        if not isinstance(data, dict):
            raise InvalidFormatError(f"Local package entry must be an object: {data!r}")
        name, path = data.get("name"), data.get("path")
        if not isinstance(name, str) or not isinstance(path, str):
            raise InvalidFormatError(f"Local package entry needs a name and a path: {data!r}")
        if name == SEARCH_PATH_NAME:
            return cls(name, normalize_path(path))
        version = data.get("version")
        if not isinstance(version, str):
            raise InvalidFormatError(f"Local package {name} has no version", name=name, path=path)
        return cls(name, normalize_path(path), version)


class Repository:
    """A named package source on the local machine"""

    def __init__(self, root_path: Union[str, Path]):
        self.root_path = normalize_path(root_path)
        self.search_paths: List[Path] = []
        self.local_packages: List[Package] = []

    @property
    def package_path(self) -> Path:
        return self.root_path / "packages"

    @property
    def local_packages_file(self) -> Path:
        return self.package_path / LOCAL_PACKAGES_FILENAME

    def read_local_package_list(self) -> List[LocalPackageEntry]:
        """
        Read local-packages.json

        Returns an empty list when the file does not exist. Malformed entries
        are logged and skipped; a file that is not a JSON array raises
        InvalidFormatError.
        """
        list_file = self.local_packages_file
        if not list_file.exists():
            return []

        with open(list_file, 'r', encoding='utf-8') as f:
            try:
                data = json.load(f)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise InvalidFormatError(f"Invalid JSON in {list_file}: {e}", path=list_file) from e

        if not isinstance(data, list):
            raise InvalidFormatError(f"{LOCAL_PACKAGES_FILENAME} must contain an array", path=list_file)

        entries = []
        for item in data:
            try:
                entries.append(LocalPackageEntry.from_dict(item))
            except InvalidFormatError as e:
                logger.warning("Error adding local package: %s", e)
        return entries

    def write_local_package_list(self) -> None:
        """Write search paths followed by local packages to local-packages.json"""
        data: List[Dict[str, str]] = []
        for path in self.search_paths:
            data.append({"name": SEARCH_PATH_NAME, "path": str(path)})

        for pkg in self.local_packages:
            data.append({
                "name": pkg.name,
                "version": pkg.version_string,
                "path": str(pkg.path)
            })

        self.package_path.mkdir(parents=True, exist_ok=True)
        with open(self.local_packages_file, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)

    def __repr__(self) -> str:
        return f"Repository({str(self.root_path)!r})"
