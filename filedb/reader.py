"""
Decoding of a file.db.

The stream is a flat sequence of tags: the nesting is rebuilt with a stack
having one frame for each open structure. Decoding is a single pass, any
structural problem interrupts it with the offset of the offending tag.

FileSystemReader goes one step further and transforms the decoded tree back
into a snapshot of the virtual file system.
"""
import logging
from typing import List, Optional, Tuple

from bitstring import ConstBitStream, ReadError

from .exceptions import (
    MalformedTree,
    MultipleRoots,
    TruncatedStream,
    UnbalancedStructureEnd,
    UnexpectedAttribute,
    UnknownResidentBuffer,
    UnknownTag,
    UnresolvedArchiveReference,
)
from .filesystem import ArchiveReference, Directory, File
from .node import Node
from .streams import Stream
from .tags import FILE_SYSTEM_TAGS, AttributeName, StructureName, Tag, TagCatalog, TagKind, ValueType


logger = logging.getLogger(__name__)

TAG_FORMAT = 'uintle:16'
LENGTH_FORMAT = 'uintle:32'


class DBReader:
    '''Read the tree contained in a file.db.

    The source can be a path, raw bytes or a binary file object; use it as
    a context manager so that a file opened from a path is always closed.'''

    def __init__(self, source, catalog: TagCatalog = FILE_SYSTEM_TAGS):
        self.stream = source if isinstance(source, Stream) else Stream(source)
        self.catalog = catalog

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def close(self):
        self.stream.close()

    def _read(self, bits: ConstBitStream, fmt: str, offset: int, what: str):
        try:
            return bits.read(fmt)
        except ReadError:
            raise TruncatedStream(f'stream ends inside {what}', offset=offset) from None

    def _read_value(self, bits: ConstBitStream, tag: Tag, offset: int) -> bytes:
        length = tag.value_type.width
        if length is None:
            length = self._read(bits, LENGTH_FORMAT, offset, f'the length of {tag.name}')

        if length == 0:
            return b''

        if bits.len - bits.pos < length * 8:
            raise TruncatedStream(f'{tag.name} needs {length} bytes', offset=offset)

        raw = self._read(bits, f'bytes:{length}', offset, f'the value of {tag.name}')

        if tag.value_type is ValueType.STRING:
            try:
                raw.decode('utf-8')
            except UnicodeDecodeError as e:
                raise MalformedTree(f'{tag.name} is not valid UTF-8: {e.reason}', offset=offset) from None

        return raw

    def read_file(self) -> Node:
        bits = ConstBitStream(bytes=self.stream.read_all())

        stack: List[Node] = []
        roots: List[Tuple[int, Node]] = []
        offset = 0

        while bits.pos < bits.len:
            offset = bits.bytepos
            tag_id = self._read(bits, TAG_FORMAT, offset, 'a tag id')

            if tag_id not in self.catalog:
                raise UnknownTag(tag_id=tag_id, offset=offset)

            tag = self.catalog.lookup(tag_id)

            if tag.kind is TagKind.STRUCTURE_START:
                logger.debug('%08x: open %s at depth %d', offset, tag, len(stack))
                stack.append(Node.structure(tag))
            elif tag.kind is TagKind.ATTRIBUTE:
                if not stack:
                    raise UnexpectedAttribute(tag, offset=offset)

                stack[-1].append(Node(tag, raw=self._read_value(bits, tag, offset)))
            else:
                if not stack:
                    raise UnbalancedStructureEnd(offset=offset)

                node = stack.pop()
                logger.debug('%08x: close %s at depth %d', offset, node.tag, len(stack))

                if stack:
                    stack[-1].append(node)
                else:
                    roots.append((offset, node))

        if stack:
            raise TruncatedStream(f'{len(stack)} structure(s) still open', offset=bits.bytepos, depth=len(stack))

        if not roots:
            raise TruncatedStream('no root structure', offset=bits.bytepos)

        if len(roots) > 1:
            raise MultipleRoots(len(roots), offset=roots[1][0])

        return roots[0][1]


def decode(data, catalog: TagCatalog = FILE_SYSTEM_TAGS) -> Node:
    with DBReader(data, catalog=catalog) as reader:
        return reader.read_file()


class FileSystemReader:
    '''Build a snapshot out of a decoded file.db tree.'''

    def __init__(self, catalog: TagCatalog = FILE_SYSTEM_TAGS):
        self.catalog = catalog

    def read(self, root: Node) -> Tuple[Directory, List[str]]:
        '''Return the snapshot and the locators of the archives it refers to:
        the token of each archive-backed file is the index into that list.'''
        if root.tag.name != StructureName.FILE_SYSTEM.value:
            raise MalformedTree(f'the root must be a {StructureName.FILE_SYSTEM.value}, found {root.tag}')

        archives = self.read_archive_files(root.find(StructureName.ARCHIVE_FILES))
        buffers = self.read_resident_buffers(root.find(StructureName.RESIDENT_BUFFERS))

        snapshot = Directory()
        self._read_entries(root, snapshot, '', archives, buffers)

        logger.debug('read %d entries referring to %d archives', sum(1 for _ in snapshot.walk()), len(archives))

        return snapshot, archives

    def read_archive_files(self, node: Optional[Node]) -> List[str]:
        if node is None:
            return []

        return [_.as_string() for _ in node.find_all(AttributeName.STRING)]

    def read_resident_buffers(self, node: Optional[Node]) -> List[bytes]:
        if node is None:
            return []

        buffers = []
        for idx, child in enumerate(node.find_all(StructureName.RESIDENT_BUFFER)):
            data = self._required(child, AttributeName.BUFFER, f'resident buffer #{idx}').as_buffer()
            size = child.find(AttributeName.SIZE)
            if size is not None and size.as_uint32() != len(data):
                raise MalformedTree(f'resident buffer #{idx} declares {size.as_uint32()} bytes but has {len(data)}')
            buffers.append(data)

        return buffers

    def _required(self, node: Node, name: AttributeName, path: str) -> Node:
        child = node.find(name)
        if child is None:
            raise MalformedTree(f'{node.tag.name} {path!r} has no {name.value}')

        return child

    def _optional_int(self, node: Node, name: AttributeName) -> int:
        child = node.find(name)
        return child.value if child is not None else 0

    def _read_entries(self, node: Node, directory: Directory, prefix: str, archives, buffers):
        for child in node:
            if child.tag.name == StructureName.DIRECTORY.value:
                name = self._required(child, AttributeName.FILE_NAME, prefix or '/').as_string()
                path = f'{prefix}/{name}' if prefix else name
                subdirectory = self._add(directory, Directory(name), path)
                self._read_entries(child, subdirectory, path, archives, buffers)
            elif child.tag.name == StructureName.FILE.value:
                name = self._required(child, AttributeName.FILE_NAME, prefix or '/').as_string()
                path = f'{prefix}/{name}' if prefix else name
                self._add(directory, self.read_file(child, name, path, archives, buffers), path)

    def _add(self, directory: Directory, entry, path):
        if entry.name in directory:
            raise MalformedTree(f'{path!r} is defined twice')

        return directory.add(entry)

    def read_file(self, node: Node, name: str, path: str, archives, buffers) -> File:
        archive_index = node.find(AttributeName.ARCHIVE_FILE_INDEX)
        buffer_index = node.find(AttributeName.RESIDENT_BUFFER_INDEX)

        if (archive_index is None) == (buffer_index is None):
            raise MalformedTree(f'file {path!r} must reference either an archive or a resident buffer')

        kwargs = {
            'uncompressed_size': self._optional_int(node, AttributeName.UNCOMPRESSED_SIZE),
            'compressed_size': self._optional_int(node, AttributeName.COMPRESSED_SIZE),
            'modification_time': self._optional_int(node, AttributeName.MODIFICATION_TIME),
            'flags': self._optional_int(node, AttributeName.FLAGS),
        }

        if buffer_index is not None:
            index = buffer_index.as_uint32()
            if index >= len(buffers):
                raise UnknownResidentBuffer(path, index)
            return File(name, resident=buffers[index], **kwargs)

        token = archive_index.as_uint32()
        if token >= len(archives):
            raise UnresolvedArchiveReference(path, token)

        position = self._optional_int(node, AttributeName.POSITION)

        return File(name, archive=ArchiveReference(token, position), **kwargs)
