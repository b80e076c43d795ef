import pytest

from filedb.exceptions import UnknownTag
from filedb.tags import (
    FILE_SYSTEM_TAGS,
    AttributeName,
    StructureName,
    Tag,
    TagCatalog,
    TagKind,
    ValueType,
)


def test_lookup_by_id_and_name():
    tag = FILE_SYSTEM_TAGS.lookup(0x0001)

    assert tag.name == 'File'
    assert tag.kind is TagKind.STRUCTURE_START
    assert FILE_SYSTEM_TAGS.lookup_by_name('File') is tag
    assert FILE_SYSTEM_TAGS.lookup_by_name(StructureName.FILE) is tag
    assert str(tag) == '0001 File'


def test_lookup_unknown():
    with pytest.raises(UnknownTag) as excinfo:
        FILE_SYSTEM_TAGS.lookup(0x7777)

    assert excinfo.value.tag_id == 0x7777

    with pytest.raises(UnknownTag):
        FILE_SYSTEM_TAGS.lookup_by_name('Checksum')


def test_every_attribute_name_is_registered():
    """Check the closed set of attributes is exactly what the catalog declares."""
    attributes = {_.name for _ in FILE_SYSTEM_TAGS if _.kind is TagKind.ATTRIBUTE}

    assert attributes == {_.value for _ in AttributeName}


def test_attribute_value_types():
    expected = {
        'String': ValueType.STRING,
        'FileName': ValueType.STRING,
        'ArchiveFileIndex': ValueType.UINT32,
        'Position': ValueType.UINT64,
        'CompressedSize': ValueType.UINT64,
        'UncompressedSize': ValueType.UINT64,
        'ModificationTime': ValueType.UINT64,
        'Flags': ValueType.UINT32,
        'ResidentBufferIndex': ValueType.UINT32,
        'LastArchiveFile': ValueType.STRING,
        'Size': ValueType.UINT32,
        'Buffer': ValueType.BUFFER,
    }

    for name, value_type in expected.items():
        assert FILE_SYSTEM_TAGS.lookup_by_name(name).value_type is value_type


def test_single_structure_end():
    ends = [_ for _ in FILE_SYSTEM_TAGS if _.kind is TagKind.STRUCTURE_END]

    assert ends == [FILE_SYSTEM_TAGS.get_structure_end()]
    assert ends[0].id == 0x0000


def test_catalog_refuses_duplicates():
    with pytest.raises(ValueError):
        TagCatalog([
            Tag(0x0001, 'File', TagKind.STRUCTURE_START),
            Tag(0x0001, 'Directory', TagKind.STRUCTURE_START),
        ])

    with pytest.raises(ValueError):
        TagCatalog([
            Tag(0x0001, 'File', TagKind.STRUCTURE_START),
            Tag(0x0002, 'File', TagKind.STRUCTURE_START),
        ])


def test_catalog_is_read_only():
    with pytest.raises(TypeError):
        FILE_SYSTEM_TAGS._by_id[0x9999] = Tag(0x9999, 'Extra', TagKind.STRUCTURE_START)

    with pytest.raises(AttributeError):
        FILE_SYSTEM_TAGS.lookup(0x0001).name = 'Other'


def test_tag_validation():
    with pytest.raises(ValueError):
        Tag(0x10000, 'TooBig', TagKind.STRUCTURE_START)

    with pytest.raises(ValueError):
        Tag(0x8100, 'Untyped', TagKind.ATTRIBUTE)

    with pytest.raises(ValueError):
        Tag(0x0100, 'Typed', TagKind.STRUCTURE_START, ValueType.UINT32)


def test_value_type_conversion():
    assert ValueType.UINT32.encode(42) == b'\x2a\x00\x00\x00'
    assert ValueType.UINT32.decode(b'\x2a\x00\x00\x00') == 42
    assert ValueType.UINT64.width == 8
    assert ValueType.UINT64.encode(1) == b'\x01' + b'\x00' * 7
    assert ValueType.STRING.width is None
    assert ValueType.STRING.encode('à') == b'\xc3\xa0'
    assert ValueType.BUFFER.decode(b'\x00\x01') == b'\x00\x01'

    with pytest.raises(ValueError):
        ValueType.UINT32.encode(1 << 32)

    with pytest.raises(ValueError):
        ValueType.UINT64.encode(-1)

    with pytest.raises(ValueError):
        ValueType.UINT32.encode('42')

    with pytest.raises(ValueError):
        ValueType.STRING.encode(b'bytes')


def test_buffer_requires_bytes():
    assert ValueType.BUFFER.encode(bytearray(b'\x01')) == b'\x01'
    assert ValueType.BUFFER.encode(memoryview(b'\x02')) == b'\x02'

    # bytes(3) would be three zero bytes
    with pytest.raises(ValueError):
        ValueType.BUFFER.encode(3)

    with pytest.raises(ValueError):
        ValueType.BUFFER.encode('text')

    with pytest.raises(ValueError):
        FILE_SYSTEM_TAGS.attribute(AttributeName.BUFFER, 3)
