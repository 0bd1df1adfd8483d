"""
Parser for `ls -1 -l` output captured from a device shell.

The listing format belongs to whatever ls the device ships (toybox, busybox,
toolbox) and is not a stable contract. The parser relies only on the mode string
being the first token, the name being the last one, and symlinks being printed
as `name -> target`. Names containing spaces, or targets containing ` -> `, are
split wrongly, and error lines printed by ls (`ls: ...: Permission denied`) are
dropped only because they start with `ls:`.
"""
from dataclasses import dataclass
from enum import Enum
from typing import List


class EntryKind(Enum):
    FILE = "File"
    DIRECTORY = "Directory"
    DIRECTORY_SYMLINK = "DirectorySymlink"
    FILE_SYMLINK = "FileSymlink"

    @property
    def is_symlink(self) -> bool:
        return self in (EntryKind.DIRECTORY_SYMLINK, EntryKind.FILE_SYMLINK)


@dataclass
class DirectoryEntry:
    name: str
    kind: EntryKind = EntryKind.FILE
    link_target: str = ""

    def as_dict(self) -> dict:
        return {"name": self.name, "kind": self.kind.value, "link_target": self.link_target}


def parse_line(line: str):
    tokens = line.split()
    # `total 24` header, blank lines and ls's own complaints
    if len(tokens) <= 2 or tokens[0].startswith("ls:"):
        return None

    mode = tokens[0]
    if mode.startswith("d"):
        return DirectoryEntry(name=tokens[-1], kind=EntryKind.DIRECTORY)
    if mode.startswith("l"):
        if len(tokens) >= 3 and tokens[-2] == "->":
            target = tokens[-1]
            kind = EntryKind.DIRECTORY_SYMLINK if target.endswith("/") else EntryKind.FILE_SYMLINK
            return DirectoryEntry(name=tokens[-3], kind=kind, link_target=target)
        return DirectoryEntry(name=tokens[-1], kind=EntryKind.FILE_SYMLINK)
    return DirectoryEntry(name=tokens[-1], kind=EntryKind.FILE)


def parse_listing(output: str) -> List[DirectoryEntry]:
    entries = []
    for line in output.splitlines():
        entry = parse_line(line)
        if entry is not None:
            entries.append(entry)
    return entries
