import json

import pytest

from heapquery.cli import main
from heapquery.enum import Stage
from heapquery.exceptions import SnapshotException, StorageException, TranslationException
from heapquery.ingest import assoc_db_name, ingest, ingest_file, needs_ingest
from heapquery.snapshot import Snapshot
from heapquery.storage import Database


def test_assoc_db_name():
    assert assoc_db_name('Heap.heapsnapshot') == 'Heap.db3'
    assert assoc_db_name('/tmp/dumps/Heap-2024.heapsnapshot') == 'Heap-2024.db3'


def test_ingest(tmp_path, snapshot_data):
    with Database(tmp_path / 'heap.db3') as database:
        counts = ingest(Snapshot(snapshot_data), database)

        assert counts == {'node': 2, 'edge': 1, 'location': 1}

        assert database.query('select id, self_size, children_count from node order by id') == [
            {'id': 1, 'self_size': 16, 'children_count': 1},
            {'id': 2, 'self_size': 8, 'children_count': 0},
        ]
        assert database.query('select "from", "to" from edge') == [{'from': 1, 'to': 2}]
        assert database.query('select * from location') == [
            {'node_id': 1, 'script_id': 7, 'line': 3, 'col': 5},
        ]


def test_ingest_element_edge_is_text(tmp_path, snapshot_data):
    snapshot_data['edges'] = [1, 4, 7]

    with Database(tmp_path / 'heap.db3') as database:
        ingest(Snapshot(snapshot_data), database)

        rows = database.query("select name_or_index, typeof(name_or_index) as t from edge")

    assert rows == [{'name_or_index': '4', 't': 'text'}]


def test_ingest_failure_keeps_previous_tables(tmp_path, snapshot_data):
    """The tables are written one after the other: a broken edge leaves
    the nodes in place but no edge at all."""
    snapshot_data['nodes'][4] = 1
    snapshot_data['nodes'][11] = 1
    snapshot_data['edges'] = [2, 3, 7, 2, 3, 99]

    with Database(tmp_path / 'heap.db3') as database:
        with pytest.raises(TranslationException) as excinfo:
            ingest(Snapshot(snapshot_data), database)

        assert excinfo.value.stage == Stage.EDGE
        assert excinfo.value.chain == ['to_node', 'record 1', 'edge']

        assert len(database.query('select * from node')) == 2
        assert database.query('select * from edge') == []


def test_ingest_file(tmp_path, heap_file):
    db_path = tmp_path / 'out.db3'

    assert needs_ingest(db_path)
    assert ingest_file(heap_file, db_path=db_path) == str(db_path)
    assert not needs_ingest(db_path)

    # the second time the existing database is used as it is
    with Database(db_path) as database:
        database.query('delete from location')

    ingest_file(heap_file, db_path=db_path)

    with Database(db_path) as database:
        assert database.query('select * from location') == []

    ingest_file(heap_file, db_path=db_path, force=True)

    with Database(db_path) as database:
        assert len(database.query('select * from location')) == 1


def test_ingest_file_default_name(tmp_path, heap_file, monkeypatch):
    monkeypatch.chdir(tmp_path)

    assert ingest_file(heap_file) == 'Heap.db3'
    assert (tmp_path / 'Heap.db3').exists()


def test_ingest_file_deformed(tmp_path):
    heap_file = tmp_path / 'broken.heapsnapshot'
    heap_file.write_text('{"snapshot": {', encoding='utf-8')
    db_path = tmp_path / 'broken.db3'

    with pytest.raises(SnapshotException):
        ingest_file(heap_file, db_path=db_path)

    # the file is parsed before opening the database
    assert not db_path.exists()


def test_cli_query(tmp_path, heap_file, capsys):
    db_path = tmp_path / 'cli.db3'

    ret = main(['--heap', str(heap_file), '--db', str(db_path), '--query', 'select id, name from node order by id'])

    assert ret == 0
    assert capsys.readouterr().out.splitlines() == [
        'run sql: select id, name from node order by id',
        '{id: 1, name: A}',
        '{id: 2, name: B}',
    ]


def test_cli_only_ingest(tmp_path, heap_file, capsys):
    db_path = tmp_path / 'cli.db3'

    assert main(['--heap', str(heap_file), '--db', str(db_path)]) == 0
    assert db_path.exists()
    assert capsys.readouterr().out == ''


def test_cli_missing_heap(tmp_path, capsys):
    assert main(['--heap', str(tmp_path / 'nope.heapsnapshot')]) == 1
    assert 'not found' in capsys.readouterr().err


def test_cli_bad_query(tmp_path, heap_file, capsys):
    ret = main(['--heap', str(heap_file), '--db', str(tmp_path / 'cli.db3'), '--query', 'select * from nowhere'])

    assert ret == 1
    assert 'no such table: nowhere' in capsys.readouterr().err


def test_cli_ingest_error(tmp_path, snapshot_data, capsys):
    snapshot_data['snapshot']['meta']['node_types'][1] = 'text'
    heap_file = tmp_path / 'bad.heapsnapshot'
    heap_file.write_text(json.dumps(snapshot_data), encoding='utf-8')

    ret = main(['--heap', str(heap_file), '--db', str(tmp_path / 'bad.db3')])

    assert ret == 1
    err = capsys.readouterr().err
    assert '(stage node)' in err
    assert "node > name: unsupported type: 'text'" in err


def test_ingest_id_too_large(tmp_path, snapshot_data):
    snapshot_data['nodes'][2] = 2 ** 64

    with Database(tmp_path / 'heap.db3') as database:
        with pytest.raises(StorageException) as excinfo:
            ingest(Snapshot(snapshot_data), database)

        assert excinfo.value.stage == Stage.WRITE
        assert excinfo.value.chain == ['node', 'write']
        assert database.query('select * from node') == []


def test_cli_unreadable_heap(tmp_path, capsys):
    heap_dir = tmp_path / 'dir.heapsnapshot'
    heap_dir.mkdir()

    ret = main(['--heap', str(heap_dir), '--db', str(tmp_path / 'dir.db3')])

    assert ret == 1
    assert '(stage parse)' in capsys.readouterr().err
    assert not (tmp_path / 'dir.db3').exists()
