'''
# Tag catalog

Every node of a file.db starts with a 16-bit identifier: the catalog maps
it to a name and to a kind

 1. Attribute: a leaf with a value, whose encoding depends on the value type
 2. StructureStart: opens a container, the following nodes are its children
 3. StructureEnd: closes the innermost open container

The catalog is built once and never modified; readers, writers and dumpers
receive it explicitly (defaulting to FILE_SYSTEM_TAGS).
'''
import logging
import struct
from dataclasses import dataclass
from enum import Enum, auto
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Optional

from .exceptions import UnknownTag


logger = logging.getLogger(__name__)


class TagKind(Enum):
    ATTRIBUTE       = auto()
    STRUCTURE_START = auto()
    STRUCTURE_END   = auto()


class ValueType(Enum):
    '''How the raw bytes of an attribute must be interpreted.

    Integers are little-endian with a fixed width and have no length prefix
    on the wire, strings and buffers are length-prefixed.'''
    STRING = 's'
    UINT32 = 'I'
    UINT64 = 'Q'
    BUFFER = 'b'

    def get_format(self):
        return '<%s' % self.value

    @property
    def width(self) -> Optional[int]:
        '''Size in bytes of the value, None if variable.'''
        if self in (ValueType.UINT32, ValueType.UINT64):
            return struct.calcsize(self.get_format())

        return None

    @property
    def is_fixed(self) -> bool:
        return self.width is not None

    def decode(self, raw: bytes):
        if self is ValueType.STRING:
            return raw.decode('utf-8')
        if self is ValueType.BUFFER:
            return bytes(raw)

        return struct.unpack(self.get_format(), raw)[0]

    def encode(self, value) -> bytes:
        if self is ValueType.STRING:
            if not isinstance(value, str):
                raise ValueError(f'expected a string, got {value.__class__.__name__}')
            return value.encode('utf-8')
        if self is ValueType.BUFFER:
            if not isinstance(value, (bytes, bytearray, memoryview)):
                raise ValueError(f'expected bytes, got {value.__class__.__name__}')
            return bytes(value)

        if not isinstance(value, int) or isinstance(value, bool):
            raise ValueError(f'expected an integer, got {value.__class__.__name__}')

        try:
            return struct.pack(self.get_format(), value)
        except struct.error as e:
            raise ValueError(f'{value} does not fit a {self.name.lower()}') from e


@dataclass(frozen=True)
class Tag:
    id: int
    name: str
    kind: TagKind
    value_type: Optional[ValueType] = None

    def __post_init__(self):
        if not 0 <= self.id <= 0xffff:
            raise ValueError(f'tag id {self.id} does not fit in 16 bits')

        if self.kind is TagKind.ATTRIBUTE and self.value_type is None:
            raise ValueError(f'attribute tag {self.name!r} needs a value type')

        if self.kind is not TagKind.ATTRIBUTE and self.value_type is not None:
            raise ValueError(f'structural tag {self.name!r} cannot have a value type')

    def __str__(self):
        return '%04X %s' % (self.id, self.name)

    @property
    def is_attribute(self) -> bool:
        return self.kind is TagKind.ATTRIBUTE


class StructureName(Enum):
    END              = 'End'
    FILE             = 'File'
    DIRECTORY        = 'Directory'
    FILE_SYSTEM      = 'FileSystem'
    ARCHIVE_FILES    = 'ArchiveFiles'
    RESIDENT_BUFFERS = 'ResidentBuffers'
    RESIDENT_BUFFER  = 'ResidentBuffer'


class AttributeName(Enum):
    '''The closed set of the attributes known by this package.'''
    STRING                = 'String'
    FILE_NAME             = 'FileName'
    ARCHIVE_FILE_INDEX    = 'ArchiveFileIndex'
    POSITION              = 'Position'
    COMPRESSED_SIZE       = 'CompressedSize'
    UNCOMPRESSED_SIZE     = 'UncompressedSize'
    MODIFICATION_TIME     = 'ModificationTime'
    FLAGS                 = 'Flags'
    RESIDENT_BUFFER_INDEX = 'ResidentBufferIndex'
    LAST_ARCHIVE_FILE     = 'LastArchiveFile'
    SIZE                  = 'Size'
    BUFFER                = 'Buffer'


class TagCatalog:
    '''Immutable registry of the tags.

    Both lookups are O(1); trying to register two tags with the same id or
    the same name is an error.'''

    def __init__(self, tags: Iterable[Tag]):
        by_id: Dict[int, Tag] = {}
        by_name: Dict[str, Tag] = {}

        for tag in tags:
            if tag.id in by_id:
                raise ValueError(f'duplicate tag id 0x{tag.id:04x} ({by_id[tag.id].name} and {tag.name})')
            if tag.name in by_name:
                raise ValueError(f'duplicate tag name {tag.name!r}')

            by_id[tag.id] = tag
            by_name[tag.name] = tag

        self._by_id = MappingProxyType(by_id)
        self._by_name = MappingProxyType(by_name)

        logger.debug('catalog initialized with %d tags', len(by_id))

    def __repr__(self):
        return f'<{self.__class__.__name__}({len(self)} tags)>'

    def __len__(self):
        return len(self._by_id)

    def __iter__(self) -> Iterator[Tag]:
        return iter(self._by_id.values())

    def __contains__(self, tag_id) -> bool:
        return tag_id in self._by_id

    def lookup(self, tag_id: int) -> Tag:
        try:
            return self._by_id[tag_id]
        except KeyError:
            raise UnknownTag(tag_id=tag_id) from None

    def lookup_by_name(self, name) -> Tag:
        if isinstance(name, (StructureName, AttributeName)):
            name = name.value

        try:
            return self._by_name[name]
        except KeyError:
            raise UnknownTag(name=name) from None

    def get_structure_end(self) -> Tag:
        for tag in self:
            if tag.kind is TagKind.STRUCTURE_END:
                return tag

        raise UnknownTag(name=StructureName.END.value)

    def attribute(self, name, value):
        '''Build an attribute node from its typed value.'''
        from .node import Node

        return Node.attribute(self.lookup_by_name(name), value)

    def structure(self, name, children=()):
        from .node import Node

        return Node.structure(self.lookup_by_name(name), children)


def _structure(tag_id, name):
    return Tag(tag_id, name.value, TagKind.STRUCTURE_START)


def _attribute(tag_id, name, value_type):
    return Tag(tag_id, name.value, TagKind.ATTRIBUTE, value_type)


FILE_SYSTEM_TAGS = TagCatalog([
    Tag(0x0000, StructureName.END.value, TagKind.STRUCTURE_END),
    _structure(0x0001, StructureName.FILE),
    _structure(0x0002, StructureName.DIRECTORY),
    _structure(0x0003, StructureName.FILE_SYSTEM),
    _structure(0x0004, StructureName.ARCHIVE_FILES),
    _structure(0x0005, StructureName.RESIDENT_BUFFERS),
    _structure(0x0006, StructureName.RESIDENT_BUFFER),
    _attribute(0x8001, AttributeName.STRING,                ValueType.STRING),
    _attribute(0x8002, AttributeName.FILE_NAME,             ValueType.STRING),
    _attribute(0x8003, AttributeName.ARCHIVE_FILE_INDEX,    ValueType.UINT32),
    _attribute(0x8004, AttributeName.POSITION,              ValueType.UINT64),
    _attribute(0x8005, AttributeName.COMPRESSED_SIZE,       ValueType.UINT64),
    _attribute(0x8006, AttributeName.UNCOMPRESSED_SIZE,     ValueType.UINT64),
    _attribute(0x8007, AttributeName.MODIFICATION_TIME,     ValueType.UINT64),
    _attribute(0x8008, AttributeName.FLAGS,                 ValueType.UINT32),
    _attribute(0x8009, AttributeName.RESIDENT_BUFFER_INDEX, ValueType.UINT32),
    _attribute(0x800a, AttributeName.LAST_ARCHIVE_FILE,     ValueType.STRING),
    _attribute(0x800b, AttributeName.SIZE,                  ValueType.UINT32),
    _attribute(0x800c, AttributeName.BUFFER,                ValueType.BUFFER),
])
