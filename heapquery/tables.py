"""
Builders of the three tables a snapshot is decoded into.

Each builder checks the layout of its arrays and the presence of the fields
it needs when it is called, then it returns a generator producing the rows
lazily. An error raised while producing a row has in its chain the index of
the failing record and the stage.

Nodes and locations refer to other nodes by their *position* in the node
array (the offset of the first element of the record), never by id: the
translate() function reads the id stored in the record at that position.
"""
import logging
from typing import Iterator, NamedTuple, Sequence

from .core import check_stride, decode_record
from .enum import Stage
from .exceptions import (
    HeapQueryException,
    LayoutException,
    TranslationException,
    UnpackException,
)
from .meta import Schema


logger = logging.getLogger(__name__)


NODE_FIELDS = ('id', 'name', 'type', 'self_size', 'edge_count')
EDGE_FIELDS = ('type', 'name_or_index', 'to_node')
LOCATION_FIELDS = ('object_index', 'script_id', 'line', 'column')

DEFAULT_LOCATION_SCHEMA = Schema.from_meta(list(LOCATION_FIELDS), ['number'] * len(LOCATION_FIELDS), name='location')


class Node(NamedTuple):
    id: int
    name: str
    type: str
    self_size: int
    edge_count: int


class Edge(NamedTuple):
    from_id: int
    to_id: int
    type: str
    name_or_index: str


class Location(NamedTuple):
    node_id: int
    script_id: int
    line: int
    column: int


def _integer(value, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise UnpackException(chain=[name], message=f'expected an integer, got {value!r}')

    return value


def _as_text(value) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, float) and value.is_integer():
        value = int(value)

    return str(value)


def translate(nodes: Sequence, position, stride: int, id_offset: int, name: str) -> int:
    '''Return the id of the node whose record starts at "position".'''
    if isinstance(position, bool) or not isinstance(position, int):
        raise TranslationException(chain=[name], message=f'position {position!r} is not an integer')

    if not 0 <= position < len(nodes):
        raise TranslationException(
            chain=[name],
            message=f'position {position} is outside the node array ({len(nodes)} elements)')

    if position % stride:
        raise TranslationException(
            chain=[name],
            message=f'position {position} is not the start of a node record (stride {stride})')

    return _integer(nodes[position + id_offset], name)


def iter_nodes(node_schema: Schema, nodes: Sequence, strings: Sequence[str]) -> Iterator[Node]:
    try:
        node_schema.require(*NODE_FIELDS)
        check_stride(nodes, len(node_schema), 'node')
    except HeapQueryException as e:
        raise e.locate(Stage.NODE)

    return _iter_nodes(node_schema, nodes, strings)


def _iter_nodes(node_schema, nodes, strings):
    index = None
    try:
        for index, offset in enumerate(range(0, len(nodes), len(node_schema))):
            record, _ = decode_record(node_schema, nodes, strings, offset)
            yield Node(
                _integer(record['id'], 'id'),
                record['name'],
                record['type'],
                record['self_size'],
                _integer(record['edge_count'], 'edge_count'),
            )
    except HeapQueryException as e:
        raise e.locate(Stage.NODE, where=None if index is None else f'record {index}')


def iter_edges(node_schema: Schema, nodes: Sequence, edge_schema: Schema, edges: Sequence, strings: Sequence[str]) -> Iterator[Edge]:
    '''The edges of a node are not referenced by the node: they are the
    next "edge_count" records of the edge array, so the two arrays are
    walked together.'''
    try:
        node_offsets = node_schema.require('id', 'edge_count')
        edge_schema.require(*EDGE_FIELDS)
        check_stride(nodes, len(node_schema), 'node')
        check_stride(edges, len(edge_schema), 'edge')
    except HeapQueryException as e:
        raise e.locate(Stage.EDGE)

    return _iter_edges(node_schema, nodes, edge_schema, edges, strings, node_offsets['id'], node_offsets['edge_count'])


def _iter_edges(node_schema, nodes, edge_schema, edges, strings, id_offset, count_offset):
    node_stride = len(node_schema)
    edge_stride = len(edge_schema)

    where = None
    edge_cursor = 0
    try:
        for node_cursor in range(0, len(nodes), node_stride):
            where = f'node {node_cursor // node_stride}'
            from_id = _integer(nodes[node_cursor + id_offset], 'id')
            edge_count = _integer(nodes[node_cursor + count_offset], 'edge_count')

            if edge_count < 0:
                raise UnpackException(chain=['edge_count'], message=f'negative count {edge_count}')

            for _ in range(edge_count):
                where = f'record {edge_cursor // edge_stride}'
                if edge_cursor >= len(edges):
                    raise LayoutException(
                        chain=[],
                        message=f'node {from_id} declares more edges than the edge array contains')

                record, edge_cursor = decode_record(edge_schema, edges, strings, edge_cursor)

                yield Edge(
                    from_id,
                    translate(nodes, record['to_node'], node_stride, id_offset, 'to_node'),
                    record['type'],
                    _as_text(record['name_or_index']),
                )

        where = None
        if edge_cursor != len(edges):
            raise LayoutException(
                chain=[],
                message=f'{(len(edges) - edge_cursor) // edge_stride} edge records are not owned by any node')
    except HeapQueryException as e:
        raise e.locate(Stage.EDGE, where=where)


def iter_locations(locations: Sequence, nodes: Sequence, node_schema: Schema, location_schema: Schema = None) -> Iterator[Location]:
    location_schema = location_schema or DEFAULT_LOCATION_SCHEMA
    try:
        location_offsets = location_schema.require(*LOCATION_FIELDS)
        id_offset = node_schema.offset('id')
        check_stride(locations, len(location_schema), 'location')
    except HeapQueryException as e:
        raise e.locate(Stage.LOCATION)

    logger.debug('location fields at offsets %s', location_offsets)

    return _iter_locations(locations, nodes, len(node_schema), id_offset, location_schema)


def _iter_locations(locations, nodes, node_stride, id_offset, location_schema):
    index = None
    try:
        for index, offset in enumerate(range(0, len(locations), len(location_schema))):
            record, _ = decode_record(location_schema, locations, (), offset)
            yield Location(
                translate(nodes, record['object_index'], node_stride, id_offset, 'object_index'),
                _integer(record['script_id'], 'script_id'),
                _integer(record['line'], 'line'),
                _integer(record['column'], 'column'),
            )
    except HeapQueryException as e:
        raise e.locate(Stage.LOCATION, where=None if index is None else f'record {index}')
