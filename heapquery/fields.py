"""
A Field is the "fundamental" datatype of a snapshot record: it knows how to
turn the single raw number found in a flat array into its final value.

The snapshot meta declares the fields with type descriptors, that is either
the name of a type ("number", "string", "node", "string_or_number") or the
list of labels of an enum. Each descriptor is resolved once, when the schema
is built, into an instance of one of the classes below so that decoding a
record doesn't need to look at the descriptors anymore.
"""
import logging
from typing import Dict, List, Sequence, Type

from .exceptions import UnpackException, UnrecoverableException


def check_index(raw, size: int, what: str) -> int:
    '''Raise UnpackException if "raw" cannot be used as an index into
    a sequence of length "size".'''
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise UnpackException(chain=[], message=f'expected an integer index into the {what}, got {raw!r}')

    if not 0 <= raw < size:
        raise UnpackException(chain=[], message=f'index {raw} is outside the {what} (size {size})')

    return raw


class Field(object):
    """Base class to subclass from"""

    descriptor = None
    # name of a sibling field that must be decoded before this one
    depends_on = None

    def __init__(self, name=None):
        self.logger = logging.getLogger(__name__)
        self.name = name

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.name!r})>'

    def decode(self, raw, strings: Sequence[str], record=None):
        raise NotImplementedError(f"method {self.__class__.__name__}.decode() not implemented")


class NumberField(Field):
    """The raw value is the value."""

    descriptor = 'number'

    def decode(self, raw, strings, record=None):
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            raise UnpackException(chain=[], message=f'expected a number, got {raw!r}')

        return raw


class NodeField(NumberField):
    """Position of a record inside the node array: it is kept as it is,
    the translation to the node's id is up to the caller since it needs
    the node array."""

    descriptor = 'node'

    def decode(self, raw, strings, record=None):
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise UnpackException(chain=[], message=f'expected a position in the node array, got {raw!r}')

        return raw


class StringField(Field):
    """Index into the strings table."""

    descriptor = 'string'

    def decode(self, raw, strings, record=None):
        return strings[check_index(raw, len(strings), 'strings table')]


class EnumField(Field):
    """The raw value is the index of the label to use.

    The labels come from the snapshot itself, like

        "node_types": [["hidden", "array", "string", ...], "string", ...]
    """

    def __init__(self, labels: List[str], **kw):
        super().__init__(**kw)

        for label in labels:
            if not isinstance(label, str):
                raise UnrecoverableException(
                    chain=[self.name],
                    message=f'enum labels must be strings, found {label!r}',
                    tag=labels)

        self.labels = labels

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.name!r}, {self.labels!r})>'

    def decode(self, raw, strings, record=None):
        return self.labels[check_index(raw, len(self.labels), f'labels of enum "{self.name}"')]


class StringOrNumberField(StringField):
    """Used by the edges for "name_or_index": for element and hidden edges
    it's the index of the element, for all the others it's an index into
    the strings table. The kind of edge is read from the sibling field
    named "type" so this field is decoded after it.

    A raw value that is already a string is kept.
    """

    descriptor = 'string_or_number'
    depends_on = 'type'

    NUMERIC_KINDS = ('element', 'hidden')

    def decode(self, raw, strings, record=None):
        if isinstance(raw, str):
            return raw

        kind = record.get(self.depends_on) if record is not None else None

        if kind in self.NUMERIC_KINDS:
            if isinstance(raw, bool) or not isinstance(raw, int):
                raise UnpackException(chain=[], message=f'expected an element index, got {raw!r}')
            self.logger.debug('%s: keeping %d as the index of the %s edge', self.name, raw, kind)
            return raw

        return super().decode(raw, strings, record=record)


FIELDS: Dict[str, Type[Field]] = {
    _.descriptor: _ for _ in (NumberField, NodeField, StringField, StringOrNumberField)
}


def create_field(name: str, descriptor) -> Field:
    '''Build the field named "name" from its type descriptor.

    An unknown descriptor can't be skipped: we wouldn't know how to read
    the value and all the following records would be wrong.'''
    if isinstance(descriptor, list):
        return EnumField(descriptor, name=name)

    field_cls = FIELDS.get(descriptor) if isinstance(descriptor, str) else None

    if field_cls is None:
        raise UnrecoverableException(chain=[name], message=f'unsupported type: {descriptor!r}', tag=descriptor)

    return field_cls(name=name)
