from sqlqueue.core.cache import CacheMirror


def test_empty_mirror():
    mirror = CacheMirror()
    assert len(mirror) == 0
    assert mirror.snapshot() == []


def test_initial_values_keep_order():
    mirror = CacheMirror(["a", "b", "c"])
    assert mirror.snapshot() == ["a", "b", "c"]


def test_extend_appends_at_tail():
    mirror = CacheMirror(["a"])
    mirror.extend(["b", "c"])
    assert mirror.snapshot() == ["a", "b", "c"]


def test_pop_front_returns_oldest():
    mirror = CacheMirror(["a", "b", "c"])
    assert mirror.pop_front(2) == ["a", "b"]
    assert mirror.snapshot() == ["c"]


def test_pop_front_clamps_to_length():
    mirror = CacheMirror(["a"])
    assert mirror.pop_front(5) == ["a"]
    assert len(mirror) == 0
    assert mirror.pop_front(1) == []


def test_slice_within_bounds():
    mirror = CacheMirror(range(10))
    assert mirror.slice(3, 4) == [3, 4, 5, 6]


def test_slice_past_end_is_short_or_empty():
    mirror = CacheMirror(range(3))
    assert mirror.slice(2, 5) == [2]
    assert mirror.slice(7, 2) == []


def test_slice_without_count_goes_to_end():
    mirror = CacheMirror(range(5))
    assert mirror.slice(2) == [2, 3, 4]


def test_snapshot_is_a_copy():
    mirror = CacheMirror(["a"])
    snap = mirror.snapshot()
    snap.append("b")
    assert mirror.snapshot() == ["a"]


def test_replace_discards_previous_contents():
    mirror = CacheMirror(["old"])
    mirror.replace(["new", "values"])
    assert mirror.snapshot() == ["new", "values"]


def test_clear():
    mirror = CacheMirror(["a", "b"])
    mirror.clear()
    assert len(mirror) == 0
