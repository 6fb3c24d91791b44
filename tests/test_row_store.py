import logging
from collections.abc import Iterator
from pathlib import Path

import pytest
from sqlalchemy import Engine, create_engine, create_mock_engine, select
from sqlalchemy.exc import OperationalError

from sqlqueue.adapters.sql.rows import RowStore
from sqlqueue.adapters.sql.schema import SchemaManager, queue_table
from sqlqueue.domain.errors import StorageError

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def engine(tmp_path: Path) -> Iterator[Engine]:
    engine = create_engine(f"sqlite:///{tmp_path / 'queue.db'}")
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine: Engine) -> RowStore:
    table = queue_table("persistent_queue")
    SchemaManager(engine, table).ensure_schema()
    return RowStore(engine, table)


def _indices(store: RowStore, queue_id: str) -> list[int]:
    c = store.table.c
    with store.connection() as conn:
        rows = conn.execute(select(c.idx).where(c.qkey == queue_id).order_by(c.idx))
        return [row.idx for row in rows]


def _fill(store: RowStore, queue_id: str, values: list[bytes]) -> None:
    with store.transaction() as conn:
        store.insert_batch(conn, queue_id, 0, values)


# ---------------------------------------------------------------------------
# insert_batch / read_range
# ---------------------------------------------------------------------------


def test_insert_batch_assigns_consecutive_indices(store: RowStore):
    _fill(store, "q", [b"a", b"b", b"c"])
    assert _indices(store, "q") == [0, 1, 2]


def test_insert_batch_at_offset(store: RowStore):
    _fill(store, "q", [b"a"])
    with store.transaction() as conn:
        store.insert_batch(conn, "q", 1, [b"b", b"c"])
    assert _indices(store, "q") == [0, 1, 2]


def test_insert_empty_batch_is_noop(store: RowStore):
    with store.transaction() as conn:
        store.insert_batch(conn, "q", 0, [])
    assert _indices(store, "q") == []


def test_read_range_all_in_index_order(store: RowStore):
    _fill(store, "q", [b"a", b"b", b"c"])
    with store.connection() as conn:
        assert store.read_range(conn, "q") == [b"a", b"b", b"c"]


def test_read_range_with_offset_and_limit(store: RowStore):
    _fill(store, "q", [b"a", b"b", b"c", b"d"])
    with store.connection() as conn:
        assert store.read_range(conn, "q", 1, 2) == [b"b", b"c"]
        assert store.read_range(conn, "q", 3, 10) == [b"d"]
        assert store.read_range(conn, "q", 9, 1) == []


def test_read_range_is_scoped_to_queue(store: RowStore):
    _fill(store, "q1", [b"a"])
    _fill(store, "q2", [b"x", b"y"])
    with store.connection() as conn:
        assert store.read_range(conn, "q1") == [b"a"]
        assert store.read_range(conn, "q2") == [b"x", b"y"]


def test_insert_duplicate_index_rolls_back_whole_batch(store: RowStore):
    _fill(store, "q", [b"a", b"b"])
    with pytest.raises(StorageError) as info:
        with store.transaction() as conn:
            # idx 2 is free, idx 1 collides with "b"
            store.insert_batch(conn, "q", 2, [b"c"])
            store.insert_batch(conn, "q", 1, [b"dup"])
    assert info.value.cause is not None
    with store.connection() as conn:
        assert store.read_range(conn, "q") == [b"a", b"b"]


# ---------------------------------------------------------------------------
# count_rows
# ---------------------------------------------------------------------------


def test_count_rows_empty_queue(store: RowStore):
    with store.connection() as conn:
        assert store.count_rows(conn, "missing") == 0


def test_count_rows_is_max_index_plus_one(store: RowStore):
    with store.transaction() as conn:
        store.insert_batch(conn, "q", 5, [b"only"])
    with store.connection() as conn:
        assert store.count_rows(conn, "q") == 6


# ---------------------------------------------------------------------------
# delete_below / shift_indices / delete_all
# ---------------------------------------------------------------------------


def test_delete_below_then_shift_keeps_indices_dense(store: RowStore):
    _fill(store, "q", [b"a", b"b", b"c", b"d", b"e"])
    with store.transaction() as conn:
        assert store.delete_below(conn, "q", 2) == 2
        store.shift_indices(conn, "q", 2)
    assert _indices(store, "q") == [0, 1, 2]
    with store.connection() as conn:
        assert store.read_range(conn, "q") == [b"c", b"d", b"e"]


def test_shift_leaves_other_queues_alone(store: RowStore):
    _fill(store, "q1", [b"a", b"b"])
    _fill(store, "q2", [b"x", b"y"])
    with store.transaction() as conn:
        store.delete_below(conn, "q1", 1)
        store.shift_indices(conn, "q1", 1)
    assert _indices(store, "q1") == [0]
    assert _indices(store, "q2") == [0, 1]


def test_shift_by_zero_is_noop(store: RowStore):
    _fill(store, "q", [b"a", b"b"])
    with store.transaction() as conn:
        store.shift_indices(conn, "q", 0)
    assert _indices(store, "q") == [0, 1]


def test_two_step_shift_keeps_order_and_density(engine: Engine, store: RowStore):
    two_step = RowStore(engine, store.table, single_update_shift=False)
    _fill(two_step, "q", [b"a", b"b", b"c", b"d", b"e"])
    _fill(two_step, "other", [b"x"])
    with two_step.transaction() as conn:
        two_step.delete_below(conn, "q", 2)
        two_step.shift_indices(conn, "q", 2)
    assert _indices(two_step, "q") == [0, 1, 2]
    assert _indices(two_step, "other") == [0]
    with two_step.connection() as conn:
        assert two_step.read_range(conn, "q") == [b"c", b"d", b"e"]


def test_shift_strategy_follows_dialect(store: RowStore):
    assert store.single_update_shift is True
    pg = create_mock_engine("postgresql://", executor=None)
    assert RowStore(pg, store.table).single_update_shift is False


def test_delete_all_only_touches_one_queue(store: RowStore):
    _fill(store, "q1", [b"a", b"b"])
    _fill(store, "q2", [b"x"])
    with store.transaction() as conn:
        assert store.delete_all(conn, "q1") == 2
    assert _indices(store, "q1") == []
    assert _indices(store, "q2") == [0]


# ---------------------------------------------------------------------------
# transaction()
# ---------------------------------------------------------------------------


def test_transaction_rolls_back_on_backend_error(store: RowStore):
    _fill(store, "q", [b"a", b"b", b"c"])
    boom = OperationalError("UPDATE", {}, Exception("database is locked"))
    with pytest.raises(StorageError) as info:
        with store.transaction() as conn:
            store.delete_below(conn, "q", 2)
            raise boom
    assert info.value.cause is boom
    assert info.value.__cause__ is boom
    assert _indices(store, "q") == [0, 1, 2]


def test_transaction_rolls_back_on_any_exception(store: RowStore):
    _fill(store, "q", [b"a"])
    with pytest.raises(KeyError):
        with store.transaction() as conn:
            store.delete_all(conn, "q")
            raise KeyError("not a storage error")
    assert _indices(store, "q") == [0]


def test_read_from_missing_table_raises_storage_error(engine: Engine):
    store = RowStore(engine, queue_table("never_created"))
    with pytest.raises(StorageError):
        with store.connection() as conn:
            store.read_range(conn, "q")


def test_rollback_is_not_logged_as_error(
    store: RowStore, caplog: pytest.LogCaptureFixture
):
    caplog.set_level(logging.DEBUG, logger="sqlqueue")
    with pytest.raises(StorageError):
        with store.transaction():
            raise OperationalError("UPDATE", {}, Exception("database is locked"))
    assert "rolled back" in caplog.text
    assert not [r for r in caplog.records if r.levelno >= logging.ERROR]
