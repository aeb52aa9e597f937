"""Query the objects on the heap of node.js.

Usage:
    heapquery --heap Heap.heapsnapshot                        # only builds Heap.db3
    heapquery --heap Heap.heapsnapshot --query "select * from node limit 10"
    heapquery --heap Heap.heapsnapshot --db /tmp/heap.db3 --force --query "..."
"""
import argparse
import logging
import os
import sqlite3
import sys
from pathlib import Path

from .exceptions import HeapQueryException
from .ingest import ingest_file
from .storage import Database, format_row


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='heapquery',
        description='Query the objects on the heap of node.js',
    )
    parser.add_argument('--heap', required=True, help='The heap file produced from `v8.getHeapSnapshot`')
    parser.add_argument('--query', help='The SQL to query your data')
    parser.add_argument('--db', default=None,
                        help='Database to use (default: the heap file name with extension .db3, in the working directory)')
    parser.add_argument('--force', action='store_true', help='Ingest the heap file even if the database exists')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log debug messages')

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose or 'DEBUG' in os.environ else logging.INFO)

    heap_file = Path(args.heap)
    if not heap_file.exists():
        print(f'Error: {heap_file} not found', file=sys.stderr)
        return 1

    try:
        db_path = ingest_file(heap_file, db_path=args.db, force=args.force)
    except HeapQueryException as e:
        logger.debug('ingestion failed', exc_info=True)
        print(f'Error: unable to ingest {heap_file} (stage {e.stage}): {e}', file=sys.stderr)
        return 1

    if args.query is None:
        return 0

    print(f'run sql: {args.query}')

    try:
        with Database(db_path) as database:
            rows = database.query(args.query)
    except (HeapQueryException, sqlite3.Error, ValueError) as e:
        print(f'Error: {e}', file=sys.stderr)
        return 1

    for row in rows:
        print(format_row(row))

    return 0


if __name__ == '__main__':
    sys.exit(main())
