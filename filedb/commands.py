"""
Drivers of the two operations offered by scripts/filedbtool.py

 - dump: print the tree of a file.db
 - gen: merge several file.db (or a directory containing them) into a new one
"""
import logging
import sys
import threading
from pathlib import Path
from typing import Optional, Sequence

from .archive import ArchiveFileMap
from .dump import Dumper
from .exceptions import MergeCancelled
from .filesystem import Directory, merge
from .loader import ContainerDirectoryLoader, ContainerFileLoader
from .reader import DBReader
from .writer import FileSystemWriter


logger = logging.getLogger(__name__)


def dump_file_db(path, out=None):
    with DBReader(path) as reader:
        root = reader.read_file()

    Dumper(out if out is not None else sys.stdout).dump(root)


def load_sources(sources: Sequence, cancel: Optional[threading.Event] = None):
    '''Return the merged snapshot and the map of the archives it refers to.

    A single directory is scanned for indexes, otherwise each source is an
    index and the ones coming later overwrite the previous ones.'''
    archive_map = ArchiveFileMap()

    if len(sources) == 1 and Path(sources[0]).is_dir():
        result = ContainerDirectoryLoader().load(sources[0], archive_map, cancel=cancel)
        return result.file_system, archive_map

    file_system = Directory()
    loader = ContainerFileLoader()
    for source in sources:
        if cancel is not None and cancel.is_set():
            raise MergeCancelled(f'loading cancelled before \'{source}\'')

        file_system = merge(file_system, loader.load(source, archive_map))

    return file_system, archive_map


def generate_file_db(sources: Sequence, output, cancel: Optional[threading.Event] = None) -> int:
    if not sources:
        raise ValueError('at least one source is needed')

    file_system, archive_map = load_sources(sources, cancel=cancel)

    # build the whole tree before creating the output
    writer = FileSystemWriter()
    root = writer.build_tree(file_system, archive_map)

    with FileSystemWriter(output) as writer:
        size = writer.write_node(root)

    logger.info('written %d bytes to \'%s\' from %d sources', size, output, len(sources))

    return size
