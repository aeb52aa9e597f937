"""
One ingestion pass: the snapshot is read and decoded in memory, then the
node, edge and location tables are written one after the other.
"""
import logging
from pathlib import Path
from typing import Dict

from .snapshot import Snapshot
from .storage import Database


logger = logging.getLogger(__name__)


def assoc_db_name(heap_file) -> str:
    '''The database associated with a snapshot is created in the working
    directory and named after the snapshot, "Heap.heapsnapshot" -> "Heap.db3".'''
    return f'{Path(heap_file).stem}.db3'


def needs_ingest(db_path) -> bool:
    # NOTE: an ingestion that failed halfway leaves the file behind and
    #       it's indistinguishable from a complete one, use force=True
    return not Path(db_path).exists()


def read_heap_file(heap_file) -> Snapshot:
    return Snapshot.load(Path(heap_file))


def ingest(snapshot: Snapshot, database: Database) -> Dict[str, int]:
    '''Write the three tables, each one in its own transaction, and return
    the number of rows written per table.'''
    database.init_schema()

    counts = {}
    for table_name, entities in (
        ('node', snapshot.iter_nodes),
        ('edge', snapshot.iter_edges),
        ('location', snapshot.iter_locations),
    ):
        logger.debug('writing table %s', table_name)
        counts[table_name] = database.write_table(table_name, entities())
        logger.info('inserted %d rows into %s', counts[table_name], table_name)

    return counts


def ingest_file(heap_file, db_path=None, force=False) -> str:
    '''Build the database for the snapshot unless it already exists; it
    returns the path of the database.'''
    db_path = str(db_path or assoc_db_name(heap_file))

    if force and Path(db_path).exists():
        logger.info('removing \'%s\' to ingest again', db_path)
        Path(db_path).unlink()

    if not needs_ingest(db_path):
        logger.info('using the existing database \'%s\'', db_path)
        return db_path

    snapshot = read_heap_file(heap_file)
    logger.info('loaded %r from \'%s\'', snapshot, heap_file)

    with Database(db_path) as database:
        ingest(snapshot, database)

    return db_path
