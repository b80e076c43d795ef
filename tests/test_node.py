import pytest

from filedb.exceptions import MalformedTree
from filedb.node import Node
from filedb.tags import FILE_SYSTEM_TAGS, AttributeName, StructureName


def test_attribute_typed_access(catalog):
    name = catalog.attribute(AttributeName.FILE_NAME, 'a.txt')
    size = catalog.attribute(AttributeName.SIZE, 42)
    position = catalog.attribute(AttributeName.POSITION, 1 << 40)

    assert name.value == 'a.txt'
    assert name.as_string() == 'a.txt'
    assert name.raw == b'a.txt'
    assert size.as_uint32() == 42
    assert size.raw == b'\x2a\x00\x00\x00'
    assert position.as_uint64() == 1 << 40


def test_wrong_accessor_is_an_error(catalog):
    """Reading a value with an accessor of another type must not silently misread it."""
    size = catalog.attribute(AttributeName.SIZE, 42)

    with pytest.raises(TypeError):
        size.as_uint64()

    with pytest.raises(TypeError):
        size.as_string()

    with pytest.raises(TypeError):
        catalog.structure(StructureName.FILE).value


def test_structure_end_cannot_be_a_node(catalog):
    with pytest.raises(MalformedTree):
        Node(catalog.get_structure_end())


def test_node_kind_consistency(catalog):
    with pytest.raises(MalformedTree):
        Node(catalog.lookup_by_name('File'), raw=b'data')

    with pytest.raises(MalformedTree):
        Node(catalog.lookup_by_name('FileName'), raw=b'a', children=[])

    with pytest.raises(MalformedTree):
        Node(catalog.lookup_by_name('FileName'))

    # fixed width values must have the right size
    with pytest.raises(MalformedTree):
        Node(catalog.lookup_by_name('Size'), raw=b'\x00\x00')

    with pytest.raises(MalformedTree):
        Node.attribute(catalog.lookup_by_name('File'), 1)

    with pytest.raises(MalformedTree):
        Node.structure(catalog.lookup_by_name('Size'))

    with pytest.raises(MalformedTree):
        catalog.attribute(AttributeName.SIZE, 1).append(catalog.structure(StructureName.FILE))


def test_structural_equality(catalog):
    def build():
        return catalog.structure(StructureName.FILE, [
            catalog.attribute(AttributeName.FILE_NAME, 'a.txt'),
            catalog.attribute(AttributeName.SIZE, 42),
        ])

    assert build() == build()

    reordered = build()
    reordered.children.reverse()

    assert build() != reordered


def test_find_and_walk(catalog):
    node = catalog.structure(StructureName.DIRECTORY, [
        catalog.attribute(AttributeName.FILE_NAME, 'data'),
        catalog.structure(StructureName.FILE, [
            catalog.attribute(AttributeName.FILE_NAME, 'a.txt'),
        ]),
    ])

    assert node.find(AttributeName.FILE_NAME).value == 'data'
    assert node.find('Size') is None
    assert len(node.find_all(StructureName.FILE)) == 1
    assert [(depth, _.name) for depth, _ in node.walk()] == [
        (0, 'Directory'),
        (1, 'FileName'),
        (1, 'File'),
        (2, 'FileName'),
    ]
