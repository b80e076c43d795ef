import struct

import pytest

from filedb.archive import ArchiveFileMap
from filedb.filesystem import ArchiveReference, Directory, File
from filedb.tags import FILE_SYSTEM_TAGS


def tag_id(name):
    return struct.pack('<H', FILE_SYSTEM_TAGS.lookup_by_name(name).id)


def start(name):
    return tag_id(name)


def end():
    return struct.pack('<H', 0x0000)


def string(name, value):
    raw = value.encode('utf-8')
    return tag_id(name) + struct.pack('<I', len(raw)) + raw


def uint32(name, value):
    return tag_id(name) + struct.pack('<I', value)


def uint64(name, value):
    return tag_id(name) + struct.pack('<Q', value)


@pytest.fixture
def catalog():
    return FILE_SYSTEM_TAGS


@pytest.fixture
def file_stream():
    '''A File structure with a name and a size, built by hand.'''
    return start('File') + string('FileName', 'a.txt') + uint32('Size', 42) + end()


@pytest.fixture
def archive_map():
    return ArchiveFileMap(['data0.rda', 'data1.rda', 'patch0.rda'])


@pytest.fixture
def snapshot():
    root = Directory()
    data = root.add(Directory('data'))
    config = data.add(Directory('config'))
    config.add(File.from_buffer('game.xml', b'<game/>', modification_time=1500000000))
    data.add(File(
        'texture.dds',
        uncompressed_size=4096,
        compressed_size=1024,
        modification_time=1500000001,
        flags=1,
        archive=ArchiveReference(token=1, position=0x200),
    ))
    root.add(File('readme.txt', uncompressed_size=10, compressed_size=10, archive=ArchiveReference(0, 0)))

    return root
