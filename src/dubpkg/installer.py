"""
Package installer

Extracts package archives into a destination directory while recording a
journal of every created file and directory, and uses that journal to
remove the package again without touching files it did not create.
"""

import logging
import shutil
import zipfile
import zlib
from pathlib import Path, PurePosixPath
from typing import List, Optional, Set, Tuple, Union

from .errors import (
    AlienFilesError, AlreadyInstalledError, ArchiveError, InstallIOError,
    MissingJournalError
)
from .journal import JOURNAL_JSON_FILENAME, EntryType, Journal
from .log import diagnostic
from .manifest import PACKAGE_JSON_FILENAME, PackageManifest

logger = logging.getLogger(__name__)


METADATA_DIRECTORY = ".dub"


def find_archive_prefix(names: List[str]) -> Optional[PurePosixPath]:
    """
    Locate the folder that wraps the package contents inside an archive

    Returns None when package.json sits at the archive root and the
    wrapping folder when it sits one level down (as in source-hosting
    exports). Raises ArchiveError for any other layout.
    """
    paths = [PurePosixPath(name) for name in names]
    if any(p.parts == (PACKAGE_JSON_FILENAME,) for p in paths):
        return None
    for p in paths:
        if len(p.parts) == 2 and p.name == PACKAGE_JSON_FILENAME:
            return PurePosixPath(p.parts[0])
    raise ArchiveError(f"No {PACKAGE_JSON_FILENAME} found at the archive root or one folder below it")


def _plan_extraction(
    members: List[zipfile.ZipInfo],
    prefix: Optional[PurePosixPath]
) -> List[Tuple[zipfile.ZipInfo, PurePosixPath]]:
    """Map archive members to paths relative to the destination"""
    plan = []
    skip = len(prefix.parts) if prefix is not None else 0
    for info in members:
        path = PurePosixPath(info.filename)
        if path.is_absolute() or ".." in path.parts:
            raise ArchiveError(f"Archive entry escapes the package directory: {info.filename}")
        if prefix is not None and path.parts[:skip] != prefix.parts:
            continue
        if len(path.parts) == skip:
            continue
        plan.append((info, PurePosixPath(*path.parts[skip:])))
    return plan


class PackageInstaller:
    """Installs and removes package files on disk"""

    def install(
        self,
        archive_path: Union[str, Path],
        name: str,
        version: str,
        destination: Path
    ) -> Journal:
        """
        Extract archive_path into destination

        The descriptor's name is lower-cased and its version replaced by
        version. The journal, including an entry for itself, is written to
        destination/journal.json and returned.

        Nothing is rolled back on failure: files extracted before an error
        stay on disk and no journal is written.
        """
        if destination.exists() or destination.is_symlink():
            raise AlreadyInstalledError(
                f"{name} {version} needs to be uninstalled prior installation.",
                name=name, version=version, path=destination
            )

        logger.debug("Opening file %s", archive_path)
        try:
            archive = zipfile.ZipFile(archive_path)
        except (OSError, zipfile.BadZipFile) as e:
            raise ArchiveError(
                f"Cannot open archive {archive_path} for {name} {version}: {e}",
                name=name, version=version, path=archive_path
            ) from e

        with archive:
            members = archive.infolist()
            prefix = find_archive_prefix([info.filename for info in members])
            logger.debug("zip root folder: %s", prefix)
            plan = _plan_extraction(members, prefix)

            try:
                journal = self._extract(archive, plan, destination)
            except OSError as e:
                raise InstallIOError(
                    f"Failed to extract {name} {version} to {destination}: {e}",
                    name=name, version=version, path=destination
                ) from e
            except (zipfile.BadZipFile, zlib.error, EOFError) as e:
                raise ArchiveError(
                    f"Corrupt archive {archive_path} for {name} {version}: {e}",
                    name=name, version=version, path=archive_path
                ) from e

        try:
            manifest = PackageManifest.load(destination)
            manifest.name = manifest.name.lower()
            manifest.version = version
            manifest.save(destination)

            logger.debug("Saving installation journal...")
            journal.add(EntryType.REGULAR_FILE, PurePosixPath(JOURNAL_JSON_FILENAME))
            journal.save(destination / JOURNAL_JSON_FILENAME)
        except OSError as e:
            raise InstallIOError(
                f"Failed to finish installing {name} {version} in {destination}: {e}",
                name=name, version=version, path=destination
            ) from e

        return journal

    def _extract(
        self,
        archive: zipfile.ZipFile,
        plan: List[Tuple[zipfile.ZipInfo, PurePosixPath]],
        destination: Path
    ) -> Journal:
        journal = Journal()
        created: Set[PurePosixPath] = set()

        def ensure_directory(relative: PurePosixPath) -> None:
            for directory in list(reversed(relative.parents))[1:] + [relative]:
                if directory in created:
                    continue
                target = destination / directory
                if not target.is_dir():
                    target.mkdir()
                created.add(directory)
                journal.add(EntryType.DIRECTORY, directory)

        destination.mkdir(parents=True)
        diagnostic(logger, "Copying all files...")
        count = 0
        for info, relative in plan:
            logger.debug("Creating %s", relative)
            if info.is_dir():
                ensure_directory(relative)
                continue

            if relative.parent.parts:
                ensure_directory(relative.parent)
            with archive.open(info) as src, open(destination / relative, 'wb') as dst:
                shutil.copyfileobj(src, dst)
            journal.add(EntryType.REGULAR_FILE, relative)
            count += 1

        diagnostic(logger, "%d file(s) copied.", count)
        return journal

    def uninstall(self, path: Path, name: str) -> None:
        """
        Remove the files listed in path/journal.json, then the package root

        Raises MissingJournalError when there is no journal,
        InvalidFormatError when it cannot be read or names paths outside
        the package (nothing is deleted then), and AlienFilesError when
        untracked files keep the root from being removed.
        """
        journal_file = path / JOURNAL_JSON_FILENAME
        if not journal_file.is_file():
            raise MissingJournalError(
                f"Uninstall failed, no installation journal found for '{name}'. Please uninstall manually.",
                name=name, path=path
            )

        journal = Journal.load(journal_file)

        logger.debug("Erasing files")
        for entry in journal.files():
            target = path / entry.relative_path
            logger.debug("Deleting file '%s'", target)
            if not target.is_file():
                logger.warning("Previously installed file not found for uninstalling: '%s'", target)
                continue
            try:
                target.unlink()
            except OSError as e:
                logger.warning("Failed to delete '%s': %s", target, e)

        diagnostic(logger, "Erasing directories")
        directories = [path / entry.relative_path for entry in journal.directories()]
        directories.sort(key=lambda p: len(p.parts), reverse=True)
        for directory in directories:
            logger.debug("Deleting folder '%s'", directory)
            if not directory.is_dir() or directory.is_symlink() or any(directory.iterdir()):
                logger.warning("Alien files found, directory is not empty or is not a directory: '%s'", directory)
                continue
            try:
                directory.rmdir()
            except OSError as e:
                logger.warning("Failed to delete folder '%s': %s", directory, e)

        if journal_file.exists():
            journal_file.unlink()

        metadata_dir = path / METADATA_DIRECTORY
        if metadata_dir.is_dir() and not metadata_dir.is_symlink():
            logger.debug("%s directory found, removing directory including content.", METADATA_DIRECTORY)
            shutil.rmtree(metadata_dir)

        logger.debug("About to delete root folder for package '%s'.", path)
        if any(path.iterdir()):
            raise AlienFilesError(
                f"Alien files found in '{path}', needs to be deleted manually.",
                name=name, path=path
            )
        path.rmdir()
