"""
Package manager configuration

Locates the user and system repository roots and any extra search paths,
from a JSON settings file and environment overrides.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .errors import InvalidFormatError
from .log import parse_level
from .manifest import read_json_object


USER_PATH_ENV = "DUBPKG_USER_PATH"
SYSTEM_PATH_ENV = "DUBPKG_SYSTEM_PATH"


def default_user_path() -> Path:
    if os.name == "nt":
        return Path(os.environ.get("APPDATA", Path.home())) / "dub"
    return Path.home() / ".dub"


def default_system_path() -> Path:
    if os.name == "nt":
        return Path(os.environ.get("ProgramData", "C:/ProgramData")) / "dub"
    return Path("/var/lib/dub")


def default_config_files() -> List[Path]:
    return [
        default_user_path() / "settings.json",
        Path("/etc/dub/settings.json")
    ]


@dataclass
class Config:
    """Package manager settings"""
    user_path: Path = field(default_factory=default_user_path)
    system_path: Path = field(default_factory=default_system_path)
    search_path: List[Path] = field(default_factory=list)
    log_level: str = "info"


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration, falling back to the default locations"""
    if not config_path:
        for path in default_config_files():
            if path.exists():
                config_path = path
                break

    data = read_json_object(Path(config_path)) if config_path else {}

    search_path = data.get("searchPath", [])
    if not isinstance(search_path, list) or not all(isinstance(p, str) for p in search_path):
        raise InvalidFormatError("searchPath must be an array of strings", path=config_path)

    config = Config(
        user_path=Path(data.get("userPath", default_user_path())).expanduser(),
        system_path=Path(data.get("systemPath", default_system_path())).expanduser(),
        search_path=[Path(p).expanduser() for p in search_path],
        log_level=data.get("logLevel", "info")
    )

    try:
        parse_level(config.log_level)
    except ValueError as e:
        raise InvalidFormatError(str(e), path=config_path) from e

    if os.environ.get(USER_PATH_ENV):
        config.user_path = Path(os.environ[USER_PATH_ENV]).expanduser()
    if os.environ.get(SYSTEM_PATH_ENV):
        config.system_path = Path(os.environ[SYSTEM_PATH_ENV]).expanduser()

    return config
