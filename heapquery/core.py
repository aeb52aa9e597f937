"""
Core module for the decoding of the flat arrays of a heap snapshot

A flat array is a long list of numbers where each record occupies
len(schema) consecutive elements, something like

    nodes = [ type, name, id, self_size, edge_count, ...,  type, name, id, ... ]
              '---------------- record 0 --------------'   '--- record 1 ...

so the only thing needed to decode a record is its offset: the fields
are read in the order of the schema.
"""
import logging
from typing import Sequence, Tuple

from .exceptions import (
    LayoutException,
    RecordUnpackException,
    UnpackException,
)
from .meta import Schema


logger = logging.getLogger(__name__)


class Record(dict):
    """The fields of a decoded record by name, in the order of the schema."""

    def __init__(self, offset=0, **kwargs):
        super().__init__(**kwargs)
        self.offset = offset

    def __repr__(self):
        msg = []
        for field_name, value in self.items():
            msg.append('%s=%r' % (field_name, value))
        return '<%s@%d(%s)>' % (self.__class__.__name__, self.offset, ','.join(msg))


def check_stride(values: Sequence, stride: int, what: str):
    logger.debug('%s array: %d elements, stride %d', what, len(values), stride)
    if len(values) % stride:
        raise LayoutException(
            chain=[],
            message=f'the {what} array has {len(values)} elements, that is not a multiple of {stride}')


def decode_record(schema: Schema, values: Sequence, strings: Sequence[str], offset: int = 0) -> Tuple[Record, int]:
    '''This is the main API of this module: it reads the record starting
    at "offset" inside "values" and returns it together with the offset
    of the next record.

    The fields depending on a sibling (see Field.depends_on) are decoded
    in a second pass, when all the other fields are available.
    '''
    end = offset + len(schema)
    if offset < 0 or end > len(values):
        raise LayoutException(
            chain=[],
            message=f'a record of {len(schema)} fields at offset {offset} doesn\'t fit in {len(values)} elements')

    record = Record(offset=offset)
    # placeholders keep the fields in schema order
    record.update(dict.fromkeys(schema.names))

    deferred = []
    for position, field in enumerate(schema):
        raw = values[offset + position]

        if field.depends_on is not None:
            deferred.append((field, raw))
            continue

        record[field.name] = _decode_field(field, raw, strings, record)

    for field, raw in deferred:
        record[field.name] = _decode_field(field, raw, strings, record)

    return record, end


def _decode_field(field, raw, strings, record):
    try:
        return field.decode(raw, strings, record=record)
    except UnpackException as e:
        chain = e.chain
        chain.append(field.name)
        raise RecordUnpackException(chain=chain, message=e.message) from e
