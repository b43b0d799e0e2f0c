"""
Content fingerprint of a package tree

The digest folds in entry names and file contents in a fixed depth-first
order. It detects changes for build caching and is not an integrity check.

Symbolic links are followed. A link that leads back into a directory that
is already being walked contributes only its name, and a dangling link
contributes its name and target text.
"""

import hashlib
import logging
import os
from pathlib import Path
from typing import Set, Union

logger = logging.getLogger(__name__)


IGNORED_DIRECTORIES = frozenset([".git", ".dub", ".svn"])


def hash_package_tree(root: Union[str, Path]) -> bytes:
    """Return the SHA-256 fingerprint of the tree below root"""
    sha = hashlib.sha256()
    _hash_directory(Path(root), sha, set())
    logger.debug("Project hash: %s", sha.hexdigest())
    return sha.digest()


def _hash_directory(directory: Path, sha, active: Set[str]) -> None:
    # Children come before their directory, siblings in name order.
    real = os.path.realpath(directory)
    active.add(real)
    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)

        for entry in entries:
            if entry.is_dir():
                if entry.name in IGNORED_DIRECTORIES:
                    continue
                if os.path.realpath(entry.path) in active:
                    logger.debug("Not following directory cycle at %s", entry.path)
                else:
                    _hash_directory(Path(entry.path), sha, active)
                sha.update(os.fsencode(entry.name))
                logger.debug("Hashed directory name %s", entry.name)
            elif entry.is_file():
                sha.update(os.fsencode(entry.name))
                with open(entry.path, 'rb') as f:
                    for chunk in iter(lambda: f.read(8192), b""):
                        sha.update(chunk)
                logger.debug("Hashed file contents from %s", entry.name)
            elif entry.is_symlink():
                sha.update(os.fsencode(entry.name))
                sha.update(os.fsencode(os.readlink(entry.path)))
                logger.debug("Hashed dangling link %s", entry.name)
            else:
                sha.update(os.fsencode(entry.name))
    finally:
        active.discard(real)
