"""
Encoding of a file.db.

The packing happens in two steps: first FileSystemWriter builds the Node
tree mirroring the snapshot, then DBWriter serializes it depth-first

    structure -> id, children..., id of End
    attribute -> id, value (fixed width or uint32 length + bytes)

The bytes are assembled in memory and written to the sink only at the end,
so that a failure leaves nothing half-written behind.
"""
import logging
from typing import List

from bitstring import BitStream, Bits, pack

from .archive import ArchiveFileMap
from .exceptions import MalformedTree, UnknownToken, UnknownTag, UnresolvedArchiveReference
from .filesystem import Directory, File
from .node import Node
from .reader import LENGTH_FORMAT, TAG_FORMAT
from .streams import Stream
from .tags import FILE_SYSTEM_TAGS, AttributeName, StructureName, TagCatalog, TagKind


logger = logging.getLogger(__name__)


class DBWriter:

    def __init__(self, sink=None, catalog: TagCatalog = FILE_SYSTEM_TAGS):
        if sink is not None and not isinstance(sink, Stream):
            sink = Stream(sink, flags='w')

        self.stream = sink
        self.catalog = catalog
        self._end = catalog.get_structure_end()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def close(self):
        if self.stream is not None:
            self.stream.close()

    def _check_tag(self, node: Node):
        if node.tag.kind is TagKind.STRUCTURE_END:
            raise MalformedTree(f'tag {node.tag} cannot be a node of the tree')

        if node.tag.id not in self.catalog or self.catalog.lookup(node.tag.id) != node.tag:
            raise UnknownTag(tag_id=node.tag.id)

    def pack_node(self, node: Node, bits: BitStream) -> None:
        self._check_tag(node)

        bits.append(pack(TAG_FORMAT, node.tag.id))

        if node.is_attribute:
            if not node.tag.value_type.is_fixed:
                bits.append(pack(LENGTH_FORMAT, len(node.raw)))
            if node.raw:
                bits.append(Bits(bytes=node.raw))
            return

        for child in node:
            self.pack_node(child, bits)

        bits.append(pack(TAG_FORMAT, self._end.id))

    def pack(self, node: Node) -> bytes:
        if not node.is_structure:
            raise MalformedTree(f'the root must be a structure, found {node.tag}')

        bits = BitStream()
        self.pack_node(node, bits)

        return bits.tobytes()

    def write_node(self, node: Node) -> int:
        if self.stream is None:
            raise ValueError('this writer has no sink, use pack() instead')

        data = self.pack(node)
        self.stream.write(data)

        logger.debug('written %d bytes for %s', len(data), node.tag)

        return len(data)


def encode(node: Node, catalog: TagCatalog = FILE_SYSTEM_TAGS) -> bytes:
    return DBWriter(catalog=catalog).pack(node)


class FileSystemWriter(DBWriter):
    '''Write a snapshot as a file.db.

    The children of a directory are encoded in the order of the snapshot,
    use Directory.sorted() before writing if the output must not depend on
    the order the entries were loaded.'''

    def build_tree(self, snapshot: Directory, archive_map: ArchiveFileMap) -> Node:
        catalog = self.catalog
        buffers: List[bytes] = []

        archive_files = catalog.structure(StructureName.ARCHIVE_FILES, [
            catalog.attribute(AttributeName.STRING, locator) for _, locator in archive_map
        ])

        root = catalog.structure(StructureName.FILE_SYSTEM, [archive_files])

        if len(archive_map):
            root.append(catalog.attribute(AttributeName.LAST_ARCHIVE_FILE, archive_map.resolve(len(archive_map) - 1)))

        for entry in snapshot:
            root.append(self._build_entry(entry, entry.name, archive_map, buffers))

        root.append(catalog.structure(StructureName.RESIDENT_BUFFERS, [
            catalog.structure(StructureName.RESIDENT_BUFFER, [
                catalog.attribute(AttributeName.SIZE, len(data)),
                catalog.attribute(AttributeName.BUFFER, data),
            ]) for data in buffers
        ]))

        return root

    def _build_entry(self, entry, path, archive_map, buffers) -> Node:
        if isinstance(entry, Directory):
            node = self.catalog.structure(StructureName.DIRECTORY, [
                self.catalog.attribute(AttributeName.FILE_NAME, entry.name),
            ])
            for child in entry:
                node.append(self._build_entry(child, f'{path}/{child.name}', archive_map, buffers))

            return node

        return self.build_file(entry, path, archive_map, buffers)

    def build_file(self, entry: File, path: str, archive_map: ArchiveFileMap, buffers: List[bytes]) -> Node:
        attribute = self.catalog.attribute
        node = self.catalog.structure(StructureName.FILE, [
            attribute(AttributeName.FILE_NAME, entry.name),
        ])

        if entry.is_resident:
            node.append(attribute(AttributeName.RESIDENT_BUFFER_INDEX, len(buffers)))
            buffers.append(entry.resident)
        else:
            try:
                archive_map.resolve(entry.archive.token)
            except UnknownToken:
                raise UnresolvedArchiveReference(path, entry.archive.token) from None

            node.append(attribute(AttributeName.ARCHIVE_FILE_INDEX, entry.archive.token))
            node.append(attribute(AttributeName.POSITION, entry.archive.position))

        node.append(attribute(AttributeName.COMPRESSED_SIZE, entry.compressed_size))
        node.append(attribute(AttributeName.UNCOMPRESSED_SIZE, entry.uncompressed_size))
        node.append(attribute(AttributeName.MODIFICATION_TIME, entry.modification_time))
        node.append(attribute(AttributeName.FLAGS, entry.flags))

        return node

    def write_file_system(self, snapshot: Directory, archive_map: ArchiveFileMap) -> int:
        root = self.build_tree(snapshot, archive_map)

        logger.debug('file system tree built with %d archives', len(archive_map))

        return self.write_node(root)
