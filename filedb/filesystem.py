"""
# Virtual file system

A snapshot is a tree of Directory and File entries rooted at a Directory
with an empty name. A File holds its content in one of two ways

 1. resident: the bytes are kept in memory (and stored in the file.db itself)
 2. archive-backed: it points at a position inside one of the source
    archives, identified by a token of an ArchiveFileMap

Snapshots are combined with merge(): later sources supersede earlier ones,
so the order in which they are merged matters.
"""
import logging
import threading
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Iterable, Iterator, Optional, Tuple, Union

from .exceptions import ConflictingEntryKind, MergeCancelled


logger = logging.getLogger(__name__)


class EntryKind(Enum):
    FILE      = 'file'
    DIRECTORY = 'directory'


@dataclass(frozen=True)
class ArchiveReference:
    token: int
    position: int


@dataclass
class File:
    name: str
    uncompressed_size: int = 0
    compressed_size: int = 0
    modification_time: int = 0
    flags: int = 0
    resident: Optional[bytes] = None
    archive: Optional[ArchiveReference] = None

    kind = EntryKind.FILE

    def __post_init__(self):
        if (self.resident is None) == (self.archive is None):
            raise ValueError(f'file {self.name!r} must be either resident or archive-backed')

        if self.resident is not None:
            if not isinstance(self.resident, (bytes, bytearray, memoryview)):
                raise ValueError(f'the content of {self.name!r} must be bytes, got {self.resident.__class__.__name__}')
            self.resident = bytes(self.resident)

    @classmethod
    def from_buffer(cls, name: str, data: bytes, modification_time=0, flags=0) -> "File":
        '''Resident file stored raw, i.e. the two sizes are the same.'''
        return cls(
            name,
            uncompressed_size=len(data),
            compressed_size=len(data),
            modification_time=modification_time,
            flags=flags,
            resident=data,
        )

    @property
    def is_resident(self) -> bool:
        return self.resident is not None


@dataclass
class Directory:
    name: str = ''
    children: Dict[str, "Entry"] = field(default_factory=dict)

    kind = EntryKind.DIRECTORY

    def __post_init__(self):
        for name, entry in self.children.items():
            if name != entry.name:
                raise ValueError(f'entry {entry.name!r} is registered with the name {name!r}')

    def __len__(self):
        return len(self.children)

    def __iter__(self) -> Iterator["Entry"]:
        return iter(self.children.values())

    def __contains__(self, name) -> bool:
        return name in self.children

    def __getitem__(self, name) -> "Entry":
        return self.children[name]

    def get(self, name, default=None):
        return self.children.get(name, default)

    def add(self, entry: "Entry") -> "Entry":
        if entry.name in self.children:
            raise ValueError(f'an entry named {entry.name!r} already exists in {self.name!r}')

        self.children[entry.name] = entry
        return entry

    def mkdir(self, name: str) -> "Directory":
        '''Return the sub-directory with the given name, creating it if missing.'''
        entry = self.children.get(name)
        if entry is None:
            return self.add(Directory(name))
        if not isinstance(entry, Directory):
            raise ValueError(f'{name!r} exists and it is not a directory')

        return entry

    def find(self, path: str) -> Optional["Entry"]:
        entry = self
        for component in filter(None, path.split('/')):
            if not isinstance(entry, Directory):
                return None
            entry = entry.get(component)
            if entry is None:
                return None

        return entry

    def walk(self, prefix=''):
        '''Depth-first iteration yielding couples (path, entry), this directory excluded.'''
        for entry in self:
            path = f'{prefix}/{entry.name}' if prefix else entry.name
            yield path, entry
            if isinstance(entry, Directory):
                yield from entry.walk(path)

    def files(self) -> Iterator[Tuple[str, File]]:
        return ((path, entry) for path, entry in self.walk() if isinstance(entry, File))

    def sorted(self) -> "Directory":
        '''A copy with every directory sorted by name, for a deterministic encoding.'''
        children = {}
        for name in sorted(self.children):
            entry = self.children[name]
            children[name] = entry.sorted() if isinstance(entry, Directory) else entry

        return replace(self, children=children)


Entry = Union[File, Directory]


def merge(base: Directory, incoming: Directory, path=()) -> Directory:
    '''Overwrite base with the entries of incoming and return the result.

    Files are replaced as a whole, directories are merged recursively; a name
    that is a file on one side and a directory on the other can't be
    resolved. Neither input is modified.'''
    children = dict(base.children)

    for name, entry in incoming.children.items():
        current = children.get(name)
        entry_path = path + (name,)

        if current is None:
            children[name] = entry
        elif current.kind is not entry.kind:
            raise ConflictingEntryKind('/'.join(entry_path), current.kind, entry.kind)
        elif isinstance(entry, Directory):
            children[name] = merge(current, entry, path=entry_path)
        else:
            logger.debug('\'%s\' overwritten', '/'.join(entry_path))
            children[name] = entry

    return replace(base, children=children)


def merge_all(snapshots: Iterable[Directory], cancel: Optional[threading.Event] = None) -> Directory:
    '''Merge the snapshots one after the other, in the given order.'''
    result = Directory()

    for idx, snapshot in enumerate(snapshots):
        if cancel is not None and cancel.is_set():
            raise MergeCancelled(f'merge cancelled before source #{idx}')

        logger.debug('merging source #%d', idx)
        result = merge(result, snapshot)

    return result
