class FileDBException(Exception):
    '''Base class to extend in order to throw exception in filedb.

    Every exception carries enough context (stream offset, entry path, token)
    to let the caller understand what part of the input is broken.
    '''


class FormatError(FileDBException):
    '''The stream (or the tree) is not structurally well formed.

    The offset is the position of the offending tag inside the stream, it's
    None when the violation is found in an in-memory tree.'''

    def __init__(self, message, offset=None):
        self.offset = offset
        if offset is not None:
            message = f'{message} (at offset 0x{offset:x})'
        super().__init__(message)


class UnbalancedStructureEnd(FormatError):
    def __init__(self, offset=None):
        super().__init__('structure end without any open structure', offset=offset)


class TruncatedStream(FormatError):
    def __init__(self, reason, offset=None, depth=0):
        self.depth = depth
        super().__init__(f'truncated stream: {reason}', offset=offset)


class UnexpectedAttribute(FormatError):
    def __init__(self, tag, offset=None):
        self.tag = tag
        super().__init__(f'attribute {tag.name!r} outside of any structure', offset=offset)


class MalformedTree(FormatError):
    pass


class MultipleRoots(FormatError):
    def __init__(self, count, offset=None):
        self.count = count
        super().__init__(f'expected a single root structure, found {count}', offset=offset)


class SchemaError(FileDBException):
    pass


class UnknownTag(SchemaError):
    '''The catalog has no tag with the given id (or name).'''

    def __init__(self, tag_id=None, name=None, offset=None):
        self.tag_id = tag_id
        self.name = name
        self.offset = offset

        what = f'id 0x{tag_id:04x}' if tag_id is not None else f'name {name!r}'
        message = f'unknown tag with {what}'
        if offset is not None:
            message += f' (at offset 0x{offset:x})'

        super().__init__(message)


class UnsupportedAttributeTag(SchemaError):
    def __init__(self, tag):
        self.tag = tag
        super().__init__(f'attribute tag {tag.name!r} (0x{tag.id:04x}) is not supported')


class ArchiveReferenceError(FileDBException):
    '''Inconsistency between a reference and the index it points into.'''


class UnknownToken(ArchiveReferenceError):
    def __init__(self, token, size):
        self.token = token
        self.size = size
        super().__init__(f'token {token!r} is not in the archive map (it has {size} entries)')


class UnresolvedArchiveReference(ArchiveReferenceError):
    def __init__(self, path, token):
        self.path = path
        self.token = token
        super().__init__(f'file {path!r} references the unknown archive {token!r}')


class UnknownResidentBuffer(ArchiveReferenceError):
    def __init__(self, path, index):
        self.path = path
        self.index = index
        super().__init__(f'file {path!r} references the unknown resident buffer {index}')


class ConflictError(FileDBException):
    pass


class ConflictingEntryKind(ConflictError):
    '''Two sources define the same path once as a file and once as a directory.'''

    def __init__(self, path, existing, incoming):
        self.path = path
        self.existing = existing
        self.incoming = incoming
        super().__init__(f'{path!r} is a {existing.value} but the incoming entry is a {incoming.value}')


class MergeCancelled(FileDBException):
    pass
