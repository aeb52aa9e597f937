"""
# V8 heap snapshot

The file produced by `v8.getHeapSnapshot()` (or saved from the DevTools
Memory panel) is a JSON document like the following

    {
      "snapshot": {
        "meta": {
          "node_fields": ["type", "name", "id", "self_size", "edge_count", ...],
          "node_types": [["hidden", "array", "string", ...], "string", "number", ...],
          "edge_fields": ["type", "name_or_index", "to_node"],
          "edge_types": [["context", "element", "property", ...], "string_or_number", "node"],
          "location_fields": ["object_index", "script_id", "line", "column"],
          ...
        },
        "node_count": 2,
        "edge_count": 1
      },
      "nodes": [...],
      "edges": [...],
      "locations": [...],
      "strings": [...]
    }

The meta is the schema of the flat arrays; it's read once and then used to
decode all the records.

A reference for the format is at
<https://learn.microsoft.com/en-us/microsoft-edge/devtools-guide-chromium/memory-problems/heap-snapshot-schema>.
"""
import logging
from typing import Iterator

from .enum import Stage
from .exceptions import SnapshotException, UnrecoverableException
from .meta import Schema
from .streams import Stream
from .tables import (
    DEFAULT_LOCATION_SCHEMA,
    Edge,
    Location,
    Node,
    iter_edges,
    iter_locations,
    iter_nodes,
)


class Snapshot(object):
    """The decoded meta of a snapshot together with its arrays."""

    REQUIRED_META = ('node_fields', 'node_types', 'edge_fields', 'edge_types')
    REQUIRED_ARRAYS = ('nodes', 'edges', 'strings', 'locations')

    def __init__(self, data):
        self.logger = logging.getLogger(f"{self.__module__}.{self.__class__.__name__}")

        meta = self._get_meta(data)

        for key in self.REQUIRED_ARRAYS:
            if not isinstance(data.get(key), list):
                raise SnapshotException(chain=[key], message='missing or not an array').locate(Stage.PARSE)

        self.nodes = data['nodes']
        self.edges = data['edges']
        self.strings = data['strings']
        self.locations = data['locations']

        self.node_schema = self._build_schema(meta['node_fields'], meta['node_types'], Stage.NODE)
        self.edge_schema = self._build_schema(meta['edge_fields'], meta['edge_types'], Stage.EDGE)

        if 'location_fields' in meta:
            location_fields = meta['location_fields']
            self.location_schema = self._build_schema(
                location_fields,
                ['number'] * len(location_fields) if isinstance(location_fields, list) else None,
                Stage.LOCATION)
        else:
            self.location_schema = DEFAULT_LOCATION_SCHEMA

        self._check_counts(data['snapshot'])

    @classmethod
    def load(cls, source) -> "Snapshot":
        '''Read the snapshot from a path, raw bytes or a file object.'''
        return cls(Stream(source).load())

    def __repr__(self):
        return '<%s(nodes=%d,edges=%d,locations=%d,strings=%d)>' % (
            self.__class__.__name__,
            self.node_count,
            self.edge_count,
            self.location_count,
            len(self.strings),
        )

    @staticmethod
    def _get_meta(data):
        if not isinstance(data, dict):
            raise SnapshotException(chain=[], message='the top level is not an object').locate(Stage.PARSE)

        snapshot = data.get('snapshot')
        if not isinstance(snapshot, dict):
            raise SnapshotException(chain=['snapshot'], message='missing or not an object').locate(Stage.PARSE)

        meta = snapshot.get('meta')
        if not isinstance(meta, dict):
            raise SnapshotException(chain=['meta', 'snapshot'], message='missing or not an object').locate(Stage.PARSE)

        for key in Snapshot.REQUIRED_META:
            if not isinstance(meta.get(key), list):
                raise SnapshotException(
                    chain=[key, 'meta', 'snapshot'],
                    message='missing or not an array').locate(Stage.PARSE)

        return meta

    @staticmethod
    def _build_schema(names, descriptors, stage):
        try:
            return Schema.from_meta(names, descriptors, name=str(stage))
        except UnrecoverableException as e:
            # the schema name is already in the chain
            e.stage = stage
            raise

    def _check_counts(self, snapshot):
        '''V8 writes the number of nodes and edges, it's not needed but
        a mismatch is suspicious.'''
        for key, count in (('node_count', self.node_count), ('edge_count', self.edge_count)):
            declared = snapshot.get(key)
            if declared is not None and declared != count:
                self.logger.warning('the snapshot declares %s=%s but the array contains %d records',
                                    key, declared, count)

    @property
    def node_count(self) -> int:
        return len(self.nodes) // len(self.node_schema)

    @property
    def edge_count(self) -> int:
        return len(self.edges) // len(self.edge_schema)

    @property
    def location_count(self) -> int:
        return len(self.locations) // len(self.location_schema)

    def iter_nodes(self) -> Iterator[Node]:
        return iter_nodes(self.node_schema, self.nodes, self.strings)

    def iter_edges(self) -> Iterator[Edge]:
        return iter_edges(self.node_schema, self.nodes, self.edge_schema, self.edges, self.strings)

    def iter_locations(self) -> Iterator[Location]:
        return iter_locations(self.locations, self.nodes, self.node_schema, self.location_schema)
