"""
Package descriptor handling

A descriptor (package.json) names a package and carries its version once
installed. Keys this module does not interpret are kept and written back
unchanged.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .errors import InvalidFormatError


PACKAGE_JSON_FILENAME = "package.json"

_KNOWN_KEYS = ("name", "version", "description", "authors", "license", "dependencies", "subPackages")


def descriptor_path(path: Path) -> Path:
    """Return the descriptor file for a package directory or file path"""
    path = Path(path)
    return path / PACKAGE_JSON_FILENAME if path.is_dir() else path


@dataclass
class PackageManifest:
    """Package descriptor (package.json)"""
    name: str
    version: Optional[str] = None
    description: str = ""
    authors: List[str] = field(default_factory=list)
    license: str = ""
    dependencies: Dict[str, Union[str, Dict[str, Any]]] = field(default_factory=dict)
    sub_packages: List[Union[str, Dict[str, Any]]] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def load(cls, path: Path) -> 'PackageManifest':
        """Load descriptor from a package directory or a package.json file"""
        return cls.from_dict(read_json_object(descriptor_path(path)))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PackageManifest':
        """Create descriptor from dictionary"""
        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise InvalidFormatError("Package descriptor has no name")

        version = data.get("version")
        if version is not None and not isinstance(version, str):
            raise InvalidFormatError(f"Package {name} has a non-string version", name=name)

        authors = data.get("authors", [])
        if not isinstance(authors, list) or not all(isinstance(a, str) for a in authors):
            raise InvalidFormatError(f"authors of {name} must be an array of strings", name=name)

        # A dependency is a version spec string or an object such as {"path": "..."}
        dependencies = data.get("dependencies", {})
        if not isinstance(dependencies, dict) or not all(
            isinstance(spec, (str, dict)) for spec in dependencies.values()
        ):
            raise InvalidFormatError(f"dependencies of {name} must map names to specs", name=name)

        sub_packages = data.get("subPackages", [])
        if not isinstance(sub_packages, list):
            raise InvalidFormatError(f"subPackages of {name} must be an array", name=name)

        return cls(
            name=name,
            version=version,
            description=data.get("description", ""),
            authors=authors,
            license=data.get("license", ""),
            dependencies=dependencies,
            sub_packages=sub_packages,
            extra={k: v for k, v in data.items() if k not in _KNOWN_KEYS}
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        data: Dict[str, Any] = {"name": self.name}
        if self.version is not None:
            data["version"] = self.version
        if self.description:
            data["description"] = self.description
        if self.authors:
            data["authors"] = self.authors
        if self.license:
            data["license"] = self.license
        if self.dependencies:
            data["dependencies"] = self.dependencies
        data.update(self.extra)
        if self.sub_packages:
            data["subPackages"] = self.sub_packages
        return data

    def save(self, path: Path) -> None:
        """Save descriptor to a package directory or package.json file"""
        with open(descriptor_path(path), 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2)


def read_json_object(path: Path) -> Dict[str, Any]:
    """Read a JSON file that must contain an object"""
    with open(path, 'r', encoding='utf-8') as f:
        try:
            data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise InvalidFormatError(f"Invalid JSON in {path}: {e}", path=path) from e

    if not isinstance(data, dict):
        raise InvalidFormatError(f"{path} must contain a JSON object", path=path)
    return data
