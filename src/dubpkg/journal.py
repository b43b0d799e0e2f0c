"""
Installation journal

Records, in creation order, every file and directory written while
installing a package. The journal is saved as journal.json in the package
root and read back by uninstall to know exactly what to delete.
"""

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Iterator, List, Optional

from .errors import InvalidFormatError


JOURNAL_JSON_FILENAME = "journal.json"


class EntryType(Enum):
    REGULAR_FILE = "RegularFile"
    DIRECTORY = "Directory"


@dataclass(frozen=True)
class JournalEntry:
    """A single filesystem object created during install"""
    type: EntryType
    relative_path: PurePosixPath

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "relativePath": str(self.relative_path)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'JournalEntry':
        try:
            entry = cls(EntryType(data["type"]), PurePosixPath(data["relativePath"]))
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidFormatError(f"Malformed journal entry: {data!r}") from e

        # Entries must name something strictly inside the package root.
        path = entry.relative_path
        if path.is_absolute() or not path.parts or ".." in path.parts:
            raise InvalidFormatError(f"Journal entry points outside the package: {data!r}")
        return entry


class Journal:
    """Ordered, append-only record of install actions"""

    def __init__(self, entries: Optional[List[JournalEntry]] = None):
        self.entries: List[JournalEntry] = list(entries or [])

    def add(self, type_: EntryType, relative_path: PurePosixPath) -> None:
        self.entries.append(JournalEntry(type_, PurePosixPath(relative_path)))

    def files(self) -> List[JournalEntry]:
        return [e for e in self.entries if e.type is EntryType.REGULAR_FILE]

    def directories(self) -> List[JournalEntry]:
        return [e for e in self.entries if e.type is EntryType.DIRECTORY]

    def save(self, path: Path) -> None:
        """Write the journal as a JSON array"""
        with open(path, 'w', encoding='utf-8') as f:
            json.dump([e.to_dict() for e in self.entries], f, indent=2)

    @classmethod
    def load(cls, path: Path) -> 'Journal':
        """Read a journal written by save()"""
        with open(path, 'r', encoding='utf-8') as f:
            try:
                data = json.load(f)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise InvalidFormatError(f"Invalid journal {path}: {e}", path=path) from e

        if not isinstance(data, list):
            raise InvalidFormatError(f"Journal {path} must contain an array", path=path)
        return cls([JournalEntry.from_dict(item) for item in data])

    def __iter__(self) -> Iterator[JournalEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)
