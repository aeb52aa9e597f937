"""
# heapquery: SQL over V8 heap snapshots.

A heap snapshot describes the objects of a JavaScript heap as a graph whose
nodes and edges are encoded as long flat arrays of numbers; the meaning of
each number depends only on its position and on the schema written in the
snapshot itself.

The ingestion works in three steps

 1. load: the JSON document is read (see streams.Stream) and its meta is
    turned into one Schema for the nodes and one for the edges
    (see snapshot.Snapshot).

 2. decode: each flat array is walked a record at a time with
    core.decode_record(); the builders in the tables module produce Node,
    Edge and Location rows, translating the positions in the node array
    to node ids.

 3. store: the rows of each table are written into SQLite inside a single
    transaction (see storage.Database).

Any error in these steps is fatal and is raised as a subclass of
exceptions.HeapQueryException whose chain tells where it happened, for
example

    edge > record 12 > to_node: position 99 is outside the node array (14 elements)

"""
