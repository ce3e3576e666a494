"""Tests for the row-partitioned parallel multiplier."""

import asyncio

import numpy as np
import pytest

import parallel_cpu
from conftest import A_2x2, B_2x2, PRODUCT_2x2, random_two_decimal
from dense_baseline import dense_multiply_naive
from matrix_errors import DimensionMismatchError
from matrix_formats import DenseMatrix
from parallel_cpu import parallel_multiply, partition_rows


# ============================================================================
# Partitioning
# ============================================================================

@pytest.mark.parametrize("num_rows, num_blocks", [(1, 1), (10, 3), (10, 4), (7, 7), (3, 8)])
def test_partition_covers_every_row_once(num_rows, num_blocks):
    blocks = partition_rows(num_rows, num_blocks=num_blocks)
    covered = [i for start, end in blocks for i in range(start, end)]
    assert covered == list(range(num_rows))
    assert len(blocks) <= num_blocks
    assert all(end > start for start, end in blocks)


def test_partition_with_block_size():
    assert partition_rows(10, block_size=4) == [(0, 4), (4, 8), (8, 10)]


@pytest.mark.parametrize("kwargs", [{"num_blocks": 0}, {"block_size": 0}, {}])
def test_partition_rejects_bad_arguments(kwargs):
    with pytest.raises(ValueError):
        partition_rows(5, **kwargs)


# ============================================================================
# Multiplication
# ============================================================================

@pytest.mark.parametrize("backend", ["thread", "process"])
def test_concrete_product(backend):
    result = parallel_multiply(DenseMatrix(A_2x2), DenseMatrix(B_2x2), num_workers=2, backend=backend)
    assert isinstance(result, DenseMatrix)
    np.testing.assert_array_equal(result.data, PRODUCT_2x2)


@pytest.mark.parametrize("num_workers, block_size", [(1, None), (3, None), (4, 2), (16, None), (2, 1)])
def test_matches_naive_reference(rng, num_workers, block_size):
    a = random_two_decimal(rng, (13, 9))
    b = random_two_decimal(rng, (9, 11))
    result = parallel_multiply(a, b, num_workers=num_workers, block_size=block_size)
    assert result.shape == (13, 11)
    np.testing.assert_array_equal(result.data, dense_multiply_naive(a, b))


def test_process_backend_matches_thread_backend(rng):
    a = random_two_decimal(rng, (9, 6))
    b = random_two_decimal(rng, (6, 5))
    threaded = parallel_multiply(a, b, num_workers=3, backend="thread")
    processed = parallel_multiply(a, b, num_workers=3, backend="process")
    np.testing.assert_array_equal(threaded.data, processed.data)


def test_non_square_shapes(rng):
    a = random_two_decimal(rng, (1, 5))
    b = random_two_decimal(rng, (5, 1))
    result = parallel_multiply(a, b, num_workers=4)
    assert result.shape == (1, 1)
    np.testing.assert_allclose(result.data, a @ b, rtol=1e-12)


def test_identity_returns_original(rng):
    m = random_two_decimal(rng, (6, 4))
    result = parallel_multiply(m, DenseMatrix.identity(4), num_workers=3)
    np.testing.assert_array_equal(result.data, m)


def test_operands_are_not_modified(rng):
    a = random_two_decimal(rng, (5, 5))
    b = random_two_decimal(rng, (5, 5))
    a_copy, b_copy = a.copy(), b.copy()
    parallel_multiply(a, b, num_workers=2)
    np.testing.assert_array_equal(a, a_copy)
    np.testing.assert_array_equal(b, b_copy)


def test_dimension_mismatch_before_any_work(monkeypatch):
    calls = []
    monkeypatch.setattr(parallel_cpu, "partition_rows", lambda *a, **k: calls.append(a))

    a = DenseMatrix(np.ones((2, 3)))
    b = DenseMatrix(np.ones((4, 2)))
    with pytest.raises(DimensionMismatchError) as exc_info:
        parallel_multiply(a, b)

    assert calls == []
    assert exc_info.value.shape_a == (2, 3)
    assert exc_info.value.shape_b == (4, 2)
    assert isinstance(exc_info.value, ValueError)


def test_worker_failure_propagates(monkeypatch):
    def failing_block(row_start, row_end, a, b, result):
        if row_start > 0:
            raise MemoryError("simulated allocation failure")
        return row_end - row_start

    monkeypatch.setattr(parallel_cpu, "_fill_row_block", failing_block)

    with pytest.raises(MemoryError, match="simulated"):
        parallel_multiply(np.ones((4, 2)), np.ones((2, 2)), num_workers=2, backend="thread")


@pytest.mark.parametrize("kwargs", [{"num_workers": 0}, {"backend": "gpu"}, {"block_size": 0}])
def test_invalid_configuration(kwargs):
    with pytest.raises(ValueError):
        parallel_multiply(np.ones((2, 2)), np.ones((2, 2)), **kwargs)


def test_process_backend_uses_spawn_context(monkeypatch):
    methods = []
    real_get_context = parallel_cpu.mp.get_context

    def recording_get_context(method=None):
        methods.append(method)
        return real_get_context(method)

    monkeypatch.setattr(parallel_cpu.mp, "get_context", recording_get_context)
    result = parallel_multiply(A_2x2, B_2x2, num_workers=2, backend="process")

    assert methods == ["spawn"]
    np.testing.assert_array_equal(result.data, PRODUCT_2x2)


def test_process_backend_from_worker_thread():
    result = asyncio.run(asyncio.to_thread(
        parallel_multiply, A_2x2, B_2x2, num_workers=2, backend="process"))
    np.testing.assert_array_equal(result.data, PRODUCT_2x2)
