"""
Parallel Dense Matrix Multiplication (CPU Multi-core)
Computes C = A × B by splitting the rows of C into independent blocks.

Parallelization Strategy:
- Rows of the result are partitioned into contiguous [row_start, row_end)
  blocks before any work starts
- Each block is owned by exactly one task, so no two tasks write the same cell
- Operands A and B are shared read-only

Backends:
- "thread":  multiprocessing.pool.ThreadPool, Numba kernel releases the GIL and
             writes straight into its own row slice of the shared result buffer
- "process": multiprocessing.Pool (spawn context), each worker returns its block and the parent
             copies it into the block's row range
"""

import numpy as np
import numba
import logging
import time
import multiprocessing as mp
from multiprocessing import cpu_count
from multiprocessing.pool import ThreadPool
from functools import partial
from typing import List, Optional, Tuple

from matmul_config import DEFAULT_BACKEND, PROCESS_START_METHOD
from matrix_errors import DimensionMismatchError
from matrix_formats import DenseMatrix, as_dense_matrix


logger = logging.getLogger(__name__)

BACKENDS = ("thread", "process")


# ============================================================================
# Numba Kernel
# ============================================================================

@numba.jit(nopython=True, nogil=True, cache=True)
def _multiply_rows_numba(a, b, out, row_start, row_end):
    """
    Compute rows [row_start, row_end) of A × B into ``out``.

    ``out`` has shape (row_end - row_start, b.shape[1]). Each cell is summed
    over k in increasing order starting from 0.0, the same order as the naive
    triple loop.
    """
    n_inner = a.shape[1]
    n_cols = b.shape[1]

    for i in range(row_start, row_end):
        for j in range(n_cols):
            acc = 0.0
            for k in range(n_inner):
                acc += a[i, k] * b[k, j]
            out[i - row_start, j] = acc


# ============================================================================
# Row Partitioning
# ============================================================================

def partition_rows(num_rows: int, num_blocks: Optional[int] = None,
                   block_size: Optional[int] = None) -> List[Tuple[int, int]]:
    """
    Split [0, num_rows) into contiguous, non-overlapping row ranges.

    Args:
        num_rows: Total number of rows
        num_blocks: Desired number of blocks (used when block_size is None)
        block_size: Rows per block (last block may be shorter)

    Returns:
        Ordered list of (row_start, row_end) pairs covering every row once
    """
    if num_rows <= 0:
        raise ValueError(f"num_rows must be positive, got {num_rows}")

    if block_size is None:
        if num_blocks is None or num_blocks < 1:
            raise ValueError(f"num_blocks must be >= 1, got {num_blocks}")
        block_size = (num_rows + num_blocks - 1) // num_blocks
    elif block_size < 1:
        raise ValueError(f"block_size must be >= 1, got {block_size}")

    blocks = []
    for row_start in range(0, num_rows, block_size):
        row_end = min(row_start + block_size, num_rows)
        blocks.append((row_start, row_end))

    return blocks


# ============================================================================
# Worker Functions
# ============================================================================

def _fill_row_block(row_start: int, row_end: int, a: np.ndarray, b: np.ndarray,
                    result: np.ndarray) -> int:
    """
    Thread worker: compute a row block in place inside the shared result.
    Only result[row_start:row_end] is touched.
    """
    _multiply_rows_numba(a, b, result[row_start:row_end], row_start, row_end)
    return row_end - row_start


def _multiply_row_block(row_start: int, row_end: int, a: np.ndarray,
                        b: np.ndarray) -> np.ndarray:
    """
    Process worker: compute a row block and return it to the parent.
    """
    block = np.empty((row_end - row_start, b.shape[1]), dtype=np.float64)
    _multiply_rows_numba(a, b, block, row_start, row_end)
    return block


# ============================================================================
# Parallel Multiplication
# ============================================================================

def parallel_multiply(matrix_a, matrix_b, num_workers: Optional[int] = None,
                      block_size: Optional[int] = None,
                      backend: str = DEFAULT_BACKEND) -> DenseMatrix:
    """
    Parallel dense matrix multiplication using row-based partitioning.

    Does not return until every row block has been computed. If any block
    fails, the exception propagates and the partially filled result is
    discarded.

    Args:
        matrix_a: m × n DenseMatrix (or 2-D array-like)
        matrix_b: n × p DenseMatrix (or 2-D array-like)
        num_workers: Number of parallel workers (default: CPU count)
        block_size: Rows per block (default: one block per worker)
        backend: "thread" or "process"

    Returns:
        m × p DenseMatrix

    Raises:
        DimensionMismatchError: A's column count differs from B's row count
    """
    matrix_a = as_dense_matrix(matrix_a)
    matrix_b = as_dense_matrix(matrix_b)

    if matrix_a.cols != matrix_b.rows:
        raise DimensionMismatchError(matrix_a.shape, matrix_b.shape)

    if num_workers is None:
        num_workers = cpu_count()
    if num_workers < 1:
        raise ValueError(f"num_workers must be >= 1, got {num_workers}")
    if backend not in BACKENDS:
        raise ValueError(f"Unknown backend {backend!r}, expected one of {BACKENDS}")

    m = matrix_a.rows
    p = matrix_b.cols
    blocks = partition_rows(m, num_blocks=num_workers, block_size=block_size)
    pool_size = min(num_workers, len(blocks))

    logger.info(f"Parallel multiplication A{matrix_a.shape} × B{matrix_b.shape} "
                f"using {pool_size} {backend} workers")
    logger.debug(f"Processing {len(blocks)} row blocks in parallel...")

    a = matrix_a.data
    b = matrix_b.data
    start = time.perf_counter()

    if backend == "thread":
        result = np.empty((m, p), dtype=np.float64)
        with ThreadPool(pool_size) as pool:
            pool.starmap(partial(_fill_row_block, a=a, b=b, result=result), blocks)
    else:
        with mp.get_context(PROCESS_START_METHOD).Pool(pool_size) as pool:
            block_results = pool.starmap(partial(_multiply_row_block, a=a, b=b), blocks)
        result = np.empty((m, p), dtype=np.float64)
        for (row_start, row_end), block in zip(blocks, block_results):
            result[row_start:row_end] = block

    elapsed = time.perf_counter() - start
    logger.info(f"✓ Parallel multiplication complete in {elapsed:.4f}s")

    return DenseMatrix(result)
