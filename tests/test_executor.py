import threading

import pytest

from batchgcd.executor import LevelExecutor, split_range


def test_split_range_covers_everything_in_order():
    chunks = split_range(10, 4)
    assert [list(c) for c in chunks] == [[0, 1, 2], [3, 4, 5], [6, 7], [8, 9]]


def test_split_range_more_parts_than_items():
    assert [list(c) for c in split_range(2, 8)] == [[0], [1]]


@pytest.mark.parametrize("workers", [1, 2, 5])
def test_map_level_keeps_index_order(workers):
    with LevelExecutor(workers) as ex:
        out = ex.map_level(lambda indices: [i * i for i in indices], 101)
    assert out == [i * i for i in range(101)]


def test_map_level_empty():
    with LevelExecutor(2) as ex:
        assert ex.map_level(lambda indices: list(indices), 0) == []


def test_worker_exception_propagates():
    def boom(indices):
        if 7 in indices:
            raise ArithmeticError("node 7")
        return list(indices)

    with LevelExecutor(3) as ex:
        with pytest.raises(ArithmeticError, match="node 7"):
            ex.map_level(boom, 20)


def test_threads_are_used():
    names = set()
    lock = threading.Lock()

    def record(indices):
        with lock:
            names.add(threading.current_thread().name)
        return list(indices)

    with LevelExecutor(2) as ex:
        ex.map_level(record, 50)
    assert all(name.startswith("batchgcd") for name in names)


@pytest.mark.parametrize("workers", [0, -1, 1.5, "2"])
def test_invalid_worker_count(workers):
    with pytest.raises(ValueError):
        LevelExecutor(workers)
