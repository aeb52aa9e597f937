import copy
import json

import pytest


NODE_TYPES = ["hidden", "array", "string", "object", "code", "closure", "regexp", "number", "native",
              "synthetic", "concatenated string", "sliced string", "symbol", "bigint", "object shape"]
EDGE_TYPES = ["context", "element", "property", "internal", "hidden", "shortcut", "weak"]

META = {
    "node_fields": ["type", "name", "id", "self_size", "edge_count", "trace_node_id", "detachedness"],
    "node_types": [NODE_TYPES, "string", "number", "number", "number", "number", "number"],
    "edge_fields": ["type", "name_or_index", "to_node"],
    "edge_types": [EDGE_TYPES, "string_or_number", "node"],
    "location_fields": ["object_index", "script_id", "line", "column"],
}

# object "A" (id 1) has a property "next" pointing to "B" (id 2);
# "A" was allocated at script 7, line 3, column 5
SNAPSHOT = {
    "snapshot": {
        "meta": META,
        "node_count": 2,
        "edge_count": 1,
    },
    "nodes": [
        3, 1, 1, 16, 1, 0, 0,
        3, 2, 2, 8, 0, 0, 0,
    ],
    "edges": [
        2, 3, 7,
    ],
    "locations": [
        0, 7, 3, 5,
    ],
    "strings": ["", "A", "B", "next"],
}


@pytest.fixture
def snapshot_data():
    return copy.deepcopy(SNAPSHOT)


@pytest.fixture
def heap_file(tmp_path, snapshot_data):
    path = tmp_path / 'Heap.heapsnapshot'
    path.write_text(json.dumps(snapshot_data), encoding='utf-8')

    return path
