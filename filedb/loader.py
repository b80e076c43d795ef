"""
Loading of snapshots from existing file.db indexes.

Every index refers to its archives with its own numbering: when it is loaded
the archives are registered in the caller's ArchiveFileMap and the references
of the files are renumbered accordingly, so that several indexes can be
merged and written back together.
"""
import logging
import threading
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import List, Optional

from .archive import ArchiveFileMap
from .filesystem import ArchiveReference, Directory, merge
from .exceptions import MergeCancelled
from .reader import DBReader, FileSystemReader
from .tags import FILE_SYSTEM_TAGS, TagCatalog


logger = logging.getLogger(__name__)

CONTAINER_PATTERN = '*.db'


@dataclass
class LoadResult:
    file_system: Directory
    container_paths: List[str] = field(default_factory=list)


def _remap(directory: Directory, tokens: List[int]) -> Directory:
    children = {}
    for name, entry in directory.children.items():
        if isinstance(entry, Directory):
            entry = _remap(entry, tokens)
        elif not entry.is_resident:
            entry = replace(entry, archive=ArchiveReference(tokens[entry.archive.token], entry.archive.position))
        children[name] = entry

    return replace(directory, children=children)


class ContainerFileLoader:

    def __init__(self, catalog: TagCatalog = FILE_SYSTEM_TAGS):
        self.catalog = catalog

    def load(self, path, archive_map: ArchiveFileMap) -> Directory:
        logger.info('loading \'%s\'', path)

        with DBReader(path, catalog=self.catalog) as reader:
            root = reader.read_file()

        snapshot, locators = FileSystemReader(catalog=self.catalog).read(root)
        tokens = [archive_map.add(_) for _ in locators]

        return _remap(snapshot, tokens)


class ContainerDirectoryLoader:
    '''Load every index found below a directory.

    The indexes are merged in the order of their paths relative to the
    directory, so an index sorting after another one overwrites its files.'''

    def __init__(self, catalog: TagCatalog = FILE_SYSTEM_TAGS, pattern=CONTAINER_PATTERN):
        self.file_loader = ContainerFileLoader(catalog=catalog)
        self.pattern = pattern

    def find_containers(self, path) -> List[Path]:
        base = Path(path)
        paths = [_ for _ in base.rglob(self.pattern) if _.is_file()]

        return sorted(paths, key=lambda _: _.relative_to(base).as_posix())

    def load(self, path, archive_map: ArchiveFileMap, cancel: Optional[threading.Event] = None) -> LoadResult:
        result = LoadResult(Directory())

        for container_path in self.find_containers(path):
            if cancel is not None and cancel.is_set():
                raise MergeCancelled(f'loading of \'{path}\' cancelled before \'{container_path}\'')

            snapshot = self.file_loader.load(container_path, archive_map)
            result.file_system = merge(result.file_system, snapshot)
            result.container_paths.append(str(container_path))

        logger.info('loaded %d containers from \'%s\'', len(result.container_paths), path)

        return result
