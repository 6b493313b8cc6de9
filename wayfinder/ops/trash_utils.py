from __future__ import annotations

import configparser
from dataclasses import dataclass
from datetime import datetime
import os
from pathlib import Path
from urllib.parse import quote, unquote

SECTION = "Trash Info"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


@dataclass(frozen=True)
class TrashInfo:
    original_path: Path
    deletion_date: str


def _parser() -> configparser.ConfigParser:
    parser = configparser.ConfigParser(interpolation=None)
    parser.optionxform = str
    return parser


def reserve_trash_name(trash_dir: Path, original: Path, when: datetime | None = None) -> str:
    """Claim the first free ``name``, ``name 1``... by creating its ``.trashinfo`` exclusively."""
    files_dir = trash_dir / "files"
    info_dir = trash_dir / "info"
    candidate = original.name
    counter = 1
    while True:
        if not os.path.lexists(files_dir / candidate):
            try:
                write_trash_info(info_dir / f"{candidate}.trashinfo", original, when)
                return candidate
            except FileExistsError:
                pass
        candidate = f"{original.name} {counter}"
        counter += 1


def write_trash_info(info_path: Path, original: Path, when: datetime | None = None) -> None:
    """Write ``info_path``; raises ``FileExistsError`` if it is already taken."""
    parser = _parser()
    parser[SECTION] = {
        "Path": quote(str(original), safe="/"),
        "DeletionDate": (when or datetime.now()).strftime(DATE_FORMAT),
    }
    with info_path.open("x", encoding="utf-8") as handle:
        try:
            parser.write(handle, space_around_delimiters=False)
        except OSError:
            info_path.unlink(missing_ok=True)
            raise


def parse_trash_info(path: Path) -> TrashInfo | None:
    parser = _parser()
    try:
        parser.read_string(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, configparser.Error):
        return None
    if not parser.has_option(SECTION, "Path"):
        return None
    section = parser[SECTION]
    return TrashInfo(
        original_path=Path(unquote(section["Path"])),
        deletion_date=section.get("DeletionDate", ""),
    )
