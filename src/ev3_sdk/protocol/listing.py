"""
Directory Listing Parser
========================

``LIST_FILES`` returns the contents of a directory as text, one entry
per line::

    <32 hex md5> <8 hex size> <name>     regular file
    <name>/                              directory

Example:
    >>> entries = parse_listing(
    ...     "d41d8cd98f00b204e9800998ecf8427e 00000000 empty.rbf\\nsubdir/\\n"
    ... )
    >>> [(e.name, e.is_directory) for e in entries]
    [('empty.rbf', False), ('subdir', True)]
"""

import re
from dataclasses import dataclass
from typing import Optional

from ev3_sdk.errors import ListingFormatError

_FILE_LINE = re.compile(r"^([0-9A-Fa-f]{32}) ([0-9A-Fa-f]{8}) (.+)$")
_DIR_LINE = re.compile(r"^(.+)/$")


@dataclass(frozen=True)
class FileEntry:
    """
    One entry of a directory listing.

    Attributes:
        name: File or directory name, without the trailing slash.
        size: File size in bytes; 0 for directories.
        md5: Lower-case MD5 hex digest, or None for directories.
        is_directory: True for directory entries.
    """

    name: str
    size: int = 0
    md5: Optional[str] = None
    is_directory: bool = False

    def __str__(self) -> str:
        if self.is_directory:
            return f"{self.name}/"
        return f"{self.size:>10}  {self.name}"


def parse_listing(text: str) -> list[FileEntry]:
    """
    Parse a LIST_FILES listing into entries, in listing order.

    Blank lines are skipped.

    Raises:
        ListingFormatError: If a line is neither a file nor a directory.
    """
    entries = []
    for line_number, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.rstrip("\r")
        if not line.strip():
            continue

        if match := _FILE_LINE.match(line):
            md5, size, name = match.groups()
            entries.append(
                FileEntry(name=name, size=int(size, 16), md5=md5.lower())
            )
        elif match := _DIR_LINE.match(line):
            entries.append(FileEntry(name=match.group(1), is_directory=True))
        else:
            raise ListingFormatError(line, line_number)

    return entries
