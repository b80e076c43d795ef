'''
Human readable dump of a Node tree, something like

    0003 FileSystem
      0004 ArchiveFiles
        8001 String: data0.rda
      0002 Directory
        8002 FileName: data
'''
import io
import sys
import logging

from .exceptions import MalformedTree, UnknownTag, UnsupportedAttributeTag
from .node import Node
from .tags import FILE_SYSTEM_TAGS, AttributeName, TagCatalog, TagKind


logger = logging.getLogger(__name__)

BUFFER_PREVIEW = 10


def render_string(node: Node) -> str:
    return node.as_string()


def render_uint32(node: Node) -> str:
    return str(node.as_uint32())


def render_uint64(node: Node) -> str:
    return str(node.as_uint64())


def render_buffer(node: Node) -> str:
    data = node.as_buffer()
    text = ''.join('%02X ' % _ for _ in data[:BUFFER_PREVIEW])
    if len(data) > BUFFER_PREVIEW:
        text += '...'

    return text


RENDERERS = {
    AttributeName.STRING:                render_string,
    AttributeName.FILE_NAME:             render_string,
    AttributeName.ARCHIVE_FILE_INDEX:    render_uint32,
    AttributeName.POSITION:              render_uint64,
    AttributeName.COMPRESSED_SIZE:       render_uint64,
    AttributeName.UNCOMPRESSED_SIZE:     render_uint64,
    AttributeName.MODIFICATION_TIME:     render_uint64,
    AttributeName.FLAGS:                 render_uint32,
    AttributeName.RESIDENT_BUFFER_INDEX: render_uint32,
    AttributeName.LAST_ARCHIVE_FILE:     render_string,
    AttributeName.SIZE:                  render_uint32,
    AttributeName.BUFFER:                render_buffer,
}


class Dumper:
    '''Print a tree one node per line, two spaces of indentation for each level.

    An attribute this class doesn't know how to render stops the dump: better
    to fail than to print something misleading.'''

    def __init__(self, out=None, catalog: TagCatalog = FILE_SYSTEM_TAGS):
        self.out = out if out is not None else sys.stdout
        self.catalog = catalog

    def render_value(self, node: Node) -> str:
        try:
            name = AttributeName(node.tag.name)
        except ValueError:
            raise UnsupportedAttributeTag(node.tag) from None

        return RENDERERS[name](node)

    def dump(self, node: Node, level=0):
        # an attribute outside the closed set is unsupported whatever the catalog says
        value = self.render_value(node) if node.tag.kind is TagKind.ATTRIBUTE else None

        if self.catalog.lookup(node.tag.id) != node.tag:
            raise UnknownTag(tag_id=node.tag.id)

        padding = ' ' * (level * 2)

        if node.tag.kind is TagKind.ATTRIBUTE:
            self.out.write(f'{padding}{node.tag}: {value}\n')
        elif node.tag.kind is TagKind.STRUCTURE_START:
            self.out.write(f'{padding}{node.tag}\n')
            for child in node:
                self.dump(child, level + 1)
        else:
            raise MalformedTree(f'unexpected tag type ({node.tag.kind.name}) of tag: {node.tag.id} ({node.tag.name})')


def dumps(node: Node, catalog: TagCatalog = FILE_SYSTEM_TAGS) -> str:
    out = io.StringIO()
    Dumper(out, catalog=catalog).dump(node)
    return out.getvalue()
