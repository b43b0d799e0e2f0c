"""
Management of packages on the local computer

The PackageManager discovers packages in the user and system repositories
and on explicit search paths, installs packages from archives, removes them
again using their installation journal, and answers name/version queries.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Union

from .config import Config
from .errors import (
    InvalidFormatError, NotFoundError, PackageManagerError, VersionConflictError
)
from .hashing import hash_package_tree
from .installer import PackageInstaller
from .log import diagnostic
from .manifest import PACKAGE_JSON_FILENAME, PackageManifest, read_json_object
from .package import Package, normalize_path
from .repository import LocalPackageEntry, LocalPackageType, Repository
from .version import Dependency, Version

logger = logging.getLogger(__name__)


PathLike = Union[str, Path]


def _dedupe(paths: Iterable[Path]) -> List[Path]:
    out: List[Path] = []
    seen = set()
    for path in paths:
        if path not in seen:
            out.append(path)
            seen.add(path)
    return out


def _is_within(path: Path, root: Path) -> bool:
    return path == root or root in path.parents


class PackageManager:
    """Registry of packages available on the local machine"""

    def __init__(self, user_path: PathLike, system_path: PathLike):
        self.repositories: Dict[LocalPackageType, Repository] = {
            LocalPackageType.USER: Repository(user_path),
            LocalPackageType.SYSTEM: Repository(system_path)
        }
        self._search_path: List[Path] = []
        self.discovered: Dict[str, List[Package]] = {}
        self.temporary: List[Package] = []
        self.installer = PackageInstaller()
        self.refresh(True)

    @classmethod
    def from_config(cls, config: Config) -> 'PackageManager':
        """Create a package manager from loaded configuration"""
        manager = cls(config.user_path, config.system_path)
        if config.search_path:
            manager.search_path = config.search_path
        return manager

    @property
    def search_path(self) -> List[Path]:
        """Explicit search paths, scanned before the repositories"""
        return list(self._search_path)

    @search_path.setter
    def search_path(self, paths: Iterable[PathLike]) -> None:
        self._search_path = [normalize_path(p) for p in paths]
        self.refresh(False)

    @property
    def complete_search_path(self) -> List[Path]:
        user = self.repositories[LocalPackageType.USER]
        system = self.repositories[LocalPackageType.SYSTEM]
        return (
            self._search_path
            + user.search_paths + [user.package_path]
            + system.search_paths + [system.package_path]
        )

    # ----- Iteration and lookup -----

    def iter_packages(self, name: Optional[str] = None) -> Iterator[Package]:
        """
        Iterate over all known packages in lookup order

        Temporary packages come first, then the user and system local
        packages, then discovered packages. Each package is directly
        followed by its sub-packages. If name is given only packages with
        that name are yielded.
        """
        for pkg in self._iter_top_level():
            if name is None or pkg.name == name:
                yield pkg
            for sub in pkg.sub_packages:
                if name is None or sub.name == name:
                    yield sub

    def _iter_top_level(self) -> Iterator[Package]:
        yield from self.temporary
        for type_ in (LocalPackageType.USER, LocalPackageType.SYSTEM):
            yield from self.repositories[type_].local_packages
        for packages in self.discovered.values():
            yield from packages

    def list_packages(self) -> List[Package]:
        """All top-level packages in lookup order"""
        return list(self._iter_top_level())

    def get_package(
        self,
        name: str,
        version: Union[Version, str],
        under_path: Optional[PathLike] = None
    ) -> Optional[Package]:
        """First package named name with an equal version, optionally below under_path"""
        version = Version.coerce(version)
        root = normalize_path(under_path) if under_path is not None else None
        for pkg in self.iter_packages(name):
            if pkg.version == version and (root is None or _is_within(pkg.path, root)):
                return pkg
        return None

    def get_package_by_version_string(self, name: str, version_string: str) -> Optional[Package]:
        """First package named name whose descriptor version reads exactly version_string"""
        for pkg in self.iter_packages(name):
            if pkg.version_string == version_string:
                return pkg
        return None

    def get_package_at(self, path: PathLike) -> Package:
        """
        Package rooted at path

        A package not known yet is loaded and kept as a temporary package,
        so this never returns None.
        """
        path = normalize_path(path)
        for pkg in self.iter_packages():
            if pkg.base_package is None and pkg.path == path:
                return pkg

        pkg = Package(path)
        self.temporary.append(pkg)
        return pkg

    def get_best_package(self, name: str, version_spec: Union[Dependency, str]) -> Optional[Package]:
        """Highest version of name that satisfies version_spec"""
        if not isinstance(version_spec, Dependency):
            version_spec = Dependency(version_spec)

        best = None
        for pkg in self.iter_packages(name):
            if version_spec.matches(pkg.version) and (best is None or pkg.version > best.version):
                best = pkg
        return best

    def get_temporary_package(self, path: PathLike, version: Union[Version, str]) -> Package:
        """Temporary package at path with the given version"""
        path = normalize_path(path)
        version = Version.coerce(version)
        for pkg in self.temporary:
            if pkg.path == path:
                if pkg.version != version:
                    raise VersionConflictError(
                        f"Package in {path} is referenced with two conflicting versions: "
                        f"{pkg.version} vs {version}",
                        name=pkg.name, version=str(version), path=path
                    )
                return pkg

        pkg = self._load_with_version(path, version)
        self.temporary.append(pkg)
        return pkg

    def _load_with_version(self, path: Path, version: Version, name: Optional[str] = None) -> Package:
        """Load the descriptor at path if any, forcing its version (and name)"""
        descriptor = path / PACKAGE_JSON_FILENAME
        info: Dict[str, Any] = read_json_object(descriptor) if descriptor.is_file() else {}

        if name is not None:
            if "name" in info and info["name"] != name:
                logger.warning(
                    "Local package at %s has different name than %s (%s)", path, name, info["name"]
                )
            info["name"] = name
        else:
            info.setdefault("name", path.name)
        info["version"] = str(version)

        return Package(path, PackageManifest.from_dict(info))

    # ----- Install / uninstall -----

    def install(
        self,
        archive_path: PathLike,
        package_info: Mapping[str, Any],
        destination: PathLike
    ) -> Package:
        """
        Install the package archive at archive_path into destination

        package_info carries the authoritative "name" and "version"; the
        version is written into the installed descriptor.
        """
        name = package_info.get("name")
        version = package_info.get("version")
        if not isinstance(name, str) or not isinstance(version, str):
            raise InvalidFormatError("Package info needs a name and a version")
        Version(version)  # reject unparsable versions before touching the disk

        clean_version = version[1:] if version.startswith("~") else version
        destination = normalize_path(destination)

        diagnostic(
            logger, "Installing package '%s' version '%s' to location '%s' from file '%s'",
            name, clean_version, destination, archive_path
        )
        self.installer.install(archive_path, name, version, destination)

        pkg = Package(destination)
        logger.info("%s has been installed with version %s", name, clean_version)

        self.discovered.setdefault(pkg.name, []).append(pkg)
        return pkg

    def uninstall(self, pkg: Package) -> None:
        """
        Remove an installed package from disk and from the registry

        Only files recorded in the package's journal are deleted. Raises
        MissingJournalError if there is no journal and AlienFilesError if
        untracked files remain in the package directory.
        """
        if pkg.path is None:
            raise PackageManagerError(f"Cannot uninstall package {pkg.name} without a path.", name=pkg.name)

        logger.debug("Uninstall %s, version %s, path '%s'", pkg.name, pkg.version_string, pkg.path)
        if not self._forget(pkg):
            raise NotFoundError(
                f"Cannot uninstall, package not found: '{pkg.name}', path: {pkg.path}",
                name=pkg.name, version=pkg.version_string, path=pkg.path
            )

        logger.debug("Looking up journal")
        self.installer.uninstall(pkg.path, pkg.name)
        logger.info("Uninstalled package: '%s'", pkg.name)

    def _forget(self, pkg: Package) -> bool:
        """Drop pkg from the first list that holds its path"""
        for repo in self.repositories.values():
            for i, candidate in enumerate(repo.local_packages):
                if candidate.path == pkg.path:
                    del repo.local_packages[i]
                    repo.write_local_package_list()
                    return True

        for name, packages in self.discovered.items():
            for i, candidate in enumerate(packages):
                if candidate.path == pkg.path:
                    del packages[i]
                    if not packages:
                        del self.discovered[name]
                    return True
        return False

    # ----- Local packages and search paths -----

    def add_local_package(
        self,
        path: PathLike,
        version: Union[Version, str],
        type_: LocalPackageType
    ) -> Package:
        """Register the directory at path as a local package of the given version"""
        path = normalize_path(path)
        version = Version.coerce(version)
        repo = self.repositories[type_]

        for pkg in repo.local_packages:
            if pkg.path == path:
                if pkg.version != version:
                    raise VersionConflictError(
                        f"Adding local package {pkg.name} at {path} twice with different versions "
                        f"({pkg.version} vs {version}) is not allowed.",
                        name=pkg.name, version=str(version), path=path
                    )
                return pkg

        pkg = self._load_with_version(path, version)
        repo.local_packages.append(pkg)
        repo.write_local_package_list()
        return pkg

    def remove_local_package(self, path: PathLike, type_: LocalPackageType) -> None:
        path = normalize_path(path)
        repo = self.repositories[type_]
        remaining = [pkg for pkg in repo.local_packages if pkg.path != path]
        if len(remaining) == len(repo.local_packages):
            raise NotFoundError(f"No {type_.value} package found at {path}", path=path)

        repo.local_packages = remaining
        repo.write_local_package_list()

    def add_search_path(self, path: PathLike, type_: LocalPackageType) -> None:
        path = normalize_path(path)
        repo = self.repositories[type_]
        if path not in repo.search_paths:
            repo.search_paths.append(path)
        repo.write_local_package_list()

    def remove_search_path(self, path: PathLike, type_: LocalPackageType) -> None:
        path = normalize_path(path)
        repo = self.repositories[type_]
        if path not in repo.search_paths:
            raise NotFoundError(f"No {type_.value} search path {path}", path=path)

        repo.search_paths = [p for p in repo.search_paths if p != path]
        repo.write_local_package_list()

    # ----- Discovery -----

    def refresh(self, force_reload_all: bool = False) -> None:
        """
        Reload local package lists and rescan every search path

        Unless force_reload_all is set, packages already loaded from an
        unchanged path are kept as the same objects.
        """
        self._scan_local_packages(self.repositories[LocalPackageType.SYSTEM], force_reload_all)
        self._scan_local_packages(self.repositories[LocalPackageType.USER], force_reload_all)

        previous: Dict[Path, Package] = {}
        if not force_reload_all:
            for packages in self.discovered.values():
                for pkg in packages:
                    previous.setdefault(pkg.path, pkg)

        discovered: Dict[str, List[Package]] = {}
        for directory in _dedupe(self.complete_search_path):
            self._scan_package_folder(directory, previous, discovered)
        self.discovered = discovered

    def _scan_local_packages(self, repo: Repository, force_reload_all: bool) -> None:
        previous = {} if force_reload_all else {pkg.path: pkg for pkg in repo.local_packages}
        packages: List[Package] = []
        search_paths: List[Path] = []

        diagnostic(logger, "Looking for local package map at %s", repo.package_path)
        try:
            entries = repo.read_local_package_list()
        except (OSError, InvalidFormatError) as e:
            diagnostic(logger, "Loading of local package list at %s failed: %s", repo.package_path, e)
            entries = []

        for entry in entries:
            if entry.is_search_path:
                search_paths.append(entry.path)
                continue
            try:
                pkg = previous.get(entry.path)
                if pkg is None:
                    pkg = self._load_local_entry(entry)
                packages.append(pkg)
            except (OSError, PackageManagerError) as e:
                logger.warning("Error adding local package: %s", e)

        repo.local_packages = packages
        repo.search_paths = search_paths

    def _load_local_entry(self, entry: LocalPackageEntry) -> Package:
        return self._load_with_version(entry.path, Version(entry.version), name=entry.name)

    def _scan_package_folder(
        self,
        directory: Path,
        previous: Dict[Path, Package],
        discovered: Dict[str, List[Package]]
    ) -> None:
        if not directory.is_dir():
            return

        logger.debug("iterating dir %s", directory)
        try:
            candidates = sorted(p for p in directory.iterdir() if p.is_dir())
        except OSError as e:
            diagnostic(logger, "Failed to enumerate %s packages: %s", directory, e)
            return

        for pack_path in candidates:
            if not (pack_path / PACKAGE_JSON_FILENAME).is_file():
                continue
            try:
                pkg = previous.get(normalize_path(pack_path))
                if pkg is None:
                    pkg = Package(pack_path)
            except (OSError, PackageManagerError) as e:
                logger.error("Failed to load package in %s: %s", pack_path, e)
                diagnostic(logger, "Full error", exc_info=True)
                continue
            discovered.setdefault(pkg.name, []).append(pkg)

    # ----- Hashing -----

    def hash_package(self, pkg: Package) -> bytes:
        """Fingerprint of the package's file tree, ignoring VCS and .dub folders"""
        return hash_package_tree(pkg.path)
