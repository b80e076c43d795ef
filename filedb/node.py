"""
In-memory representation of a file.db tree.

A Node is either an attribute (a tag and its raw value) or a structure (a tag
and its ordered children); the parent owns its children, there are no back
references.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional

from .exceptions import MalformedTree
from .tags import Tag, TagKind, ValueType


logger = logging.getLogger(__name__)


@dataclass
class Node:
    tag: Tag
    raw: Optional[bytes] = None
    children: Optional[List["Node"]] = None

    def __post_init__(self):
        if self.tag.kind is TagKind.STRUCTURE_END:
            raise MalformedTree(f'tag {self.tag} only closes a structure, it cannot be a node')

        if self.tag.kind is TagKind.ATTRIBUTE:
            if self.children is not None:
                raise MalformedTree(f'attribute {self.tag} cannot have children')
            if not isinstance(self.raw, (bytes, bytearray)):
                raise MalformedTree(f'attribute {self.tag} needs a raw value')

            self.raw = bytes(self.raw)
            width = self.tag.value_type.width
            if width is not None and len(self.raw) != width:
                raise MalformedTree(f'attribute {self.tag} must be {width} bytes long, got {len(self.raw)}')
        else:
            if self.raw is not None:
                raise MalformedTree(f'structure {self.tag} cannot have a value')
            self.children = list(self.children) if self.children is not None else []

    @classmethod
    def attribute(cls, tag: Tag, value) -> "Node":
        if tag.kind is not TagKind.ATTRIBUTE:
            raise MalformedTree(f'tag {tag} is not an attribute')

        return cls(tag, raw=tag.value_type.encode(value))

    @classmethod
    def structure(cls, tag: Tag, children: Iterable["Node"] = ()) -> "Node":
        if tag.kind is not TagKind.STRUCTURE_START:
            raise MalformedTree(f'tag {tag} is not a structure')

        return cls(tag, children=list(children))

    def __repr__(self):
        if self.is_attribute:
            return f'<{self.__class__.__name__}({self.tag.name}={self.value!r})>'

        return f'<{self.__class__.__name__}({self.tag.name}, {len(self.children)} children)>'

    @property
    def is_attribute(self) -> bool:
        return self.tag.kind is TagKind.ATTRIBUTE

    @property
    def is_structure(self) -> bool:
        return self.tag.kind is TagKind.STRUCTURE_START

    @property
    def name(self) -> str:
        return self.tag.name

    @property
    def value(self):
        '''The value decoded following the type declared by the tag.'''
        if not self.is_attribute:
            raise TypeError(f'structure {self.tag} has no value')

        return self.tag.value_type.decode(self.raw)

    def _typed_value(self, value_type: ValueType):
        if not self.is_attribute or self.tag.value_type is not value_type:
            raise TypeError(f'tag {self.tag} cannot be read as {value_type.name.lower()}')

        return value_type.decode(self.raw)

    def as_string(self) -> str:
        return self._typed_value(ValueType.STRING)

    def as_uint32(self) -> int:
        return self._typed_value(ValueType.UINT32)

    def as_uint64(self) -> int:
        return self._typed_value(ValueType.UINT64)

    def as_buffer(self) -> bytes:
        return self._typed_value(ValueType.BUFFER)

    def append(self, child: "Node") -> None:
        if not self.is_structure:
            raise MalformedTree(f'attribute {self.tag} cannot have children')

        self.children.append(child)

    def __iter__(self) -> Iterator["Node"]:
        return iter(self.children or [])

    def find_all(self, name) -> List["Node"]:
        name = getattr(name, 'value', name)
        return [_ for _ in self if _.tag.name == name]

    def find(self, name) -> Optional["Node"]:
        '''Return the first child with the given tag name, None if missing.'''
        found = self.find_all(name)
        return found[0] if found else None

    def walk(self, depth=0):
        '''Depth-first iteration yielding couples (depth, node).'''
        yield depth, self
        for child in self:
            yield from child.walk(depth + 1)
