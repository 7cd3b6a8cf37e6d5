# tests/reduction/test_reduction_executor.py
import pytest

from glmagg.reduction.executor import ParallelExecutor


def square(x: int) -> int:
    return x * x


def maybe_fail(x: int) -> int:
    if x == 3:
        raise RuntimeError("boom")
    return x


def test_empty_items():
    assert ParallelExecutor.run(items=[], handler=square) == []


def test_sequential_preserves_order():
    assert ParallelExecutor.run(items=[3, 1, 2], handler=square, max_workers=1) == [9, 1, 4]


def test_parallel_preserves_order():
    items = list(range(12))

    results = ParallelExecutor.run(items=items, handler=square, max_workers=3)

    assert results == [i * i for i in items]


@pytest.mark.parametrize("workers", [1, 2])
def test_failure_propagates(workers):
    with pytest.raises(RuntimeError, match="boom"):
        ParallelExecutor.run(items=[1, 2, 3, 4], handler=maybe_fail, max_workers=workers)


def test_resolve_workers():
    assert ParallelExecutor._resolve_workers([1, 2], 8) == 2
    assert ParallelExecutor._resolve_workers([1, 2, 3], 0) == 1
    assert 1 <= ParallelExecutor._resolve_workers([1, 2, 3], None) <= 3
