"""
Dense Matrix Multiplication - Baselines for Comparison
Reference algorithms used to check and benchmark the parallel multiplier.

- Naive 3-loop multiplication: the correctness reference. Sums every cell in
  the same order as the parallel kernel, so results match bit for bit.
- NumPy (BLAS) multiplication: the speed reference.

Time Complexity: O(m·n·p) for all variants.
"""

import numpy as np
import time
import logging
import argparse
from typing import Dict, List, Optional, Sequence
from tabulate import tabulate

from matmul_config import DEFAULT_BACKEND, configure_logging
from matrix_errors import DimensionMismatchError
from parallel_cpu import parallel_multiply


logger = logging.getLogger(__name__)


# ============================================================================
# Dense Matrix Multiplication (Naive 3-loop)
# ============================================================================

def dense_multiply_naive(A: np.ndarray, B: np.ndarray) -> np.ndarray:
    """
    Dense matrix multiplication using 3 nested loops.
    O(n³) complexity - very slow!

    This is the textbook algorithm:
    C[i,j] = sum over k of A[i,k] * B[k,j]

    Args:
        A: m × n matrix
        B: n × p matrix

    Returns:
        C: m × p matrix
    """
    A = np.asarray(A, dtype=np.float64)
    B = np.asarray(B, dtype=np.float64)
    m, n = A.shape
    n2, p = B.shape

    if n != n2:
        raise DimensionMismatchError(A.shape, B.shape)

    C = np.zeros((m, p), dtype=np.float64)

    # Three nested loops - O(n³)
    for i in range(m):
        for j in range(p):
            acc = 0.0
            for k in range(n):
                acc += float(A[i, k]) * float(B[k, j])
            C[i, j] = acc

    return C


def dense_multiply_numpy(A: np.ndarray, B: np.ndarray) -> np.ndarray:
    """
    Dense matrix multiplication using NumPy (highly optimized).
    Uses BLAS, so summation order (and last-bit rounding) may differ
    from the naive loop.
    """
    A = np.asarray(A, dtype=np.float64)
    B = np.asarray(B, dtype=np.float64)

    if A.shape[1] != B.shape[0]:
        raise DimensionMismatchError(A.shape, B.shape)

    return A @ B


# ============================================================================
# Benchmarking Functions
# ============================================================================

def benchmark_multiplication(size: int, worker_counts: Sequence[int] = (1, 2, 4),
                             backend: str = DEFAULT_BACKEND, seed: int = 42,
                             naive_limit: int = 150) -> List[Dict]:
    """
    Compare parallel multiplication against the baselines.

    Args:
        size: Matrix dimension (size × size)
        worker_counts: Worker counts to time the parallel multiplier with
        backend: Parallel backend ("thread" or "process")
        seed: Random seed
        naive_limit: Skip the naive loop above this size (too slow)

    Returns:
        List of dicts with 'method', 'workers', 'time_s' and 'speedup' keys
    """
    logger.info("=" * 70)
    logger.info(f"Multiplication Benchmark: {size}×{size} dense matrices")
    logger.info("=" * 70)

    rng = np.random.default_rng(seed)
    A = np.round(rng.random((size, size)) * 100, 2)
    B = np.round(rng.random((size, size)) * 100, 2)

    rows = []

    if size <= naive_limit:
        logger.info("\nDense multiplication (naive 3-loop)...")
        start = time.perf_counter()
        dense_multiply_naive(A, B)
        rows.append({'method': 'naive', 'workers': 1, 'time_s': time.perf_counter() - start})
    else:
        logger.info("\nDense multiplication (naive 3-loop): SKIPPED (too slow)")

    logger.info("\nDense multiplication (NumPy optimized)...")
    start = time.perf_counter()
    dense_multiply_numpy(A, B)
    rows.append({'method': 'numpy', 'workers': 1, 'time_s': time.perf_counter() - start})

    # Warm up the JIT so compilation is not timed
    parallel_multiply(A[:1], B, num_workers=1, backend="thread")

    for workers in worker_counts:
        logger.info(f"\nParallel multiplication ({workers} workers)...")
        start = time.perf_counter()
        parallel_multiply(A, B, num_workers=workers, backend=backend)
        rows.append({'method': f'parallel-{backend}', 'workers': workers,
                     'time_s': time.perf_counter() - start})

    baseline = _serial_baseline(rows)
    for row in rows:
        row['speedup'] = baseline / row['time_s'] if row['time_s'] > 0 else float('inf')

    return rows


def _serial_baseline(rows: List[Dict]) -> float:
    for row in rows:
        if row['method'].startswith('parallel') and row['workers'] == 1:
            return row['time_s']
    return rows[0]['time_s']


def format_benchmark_table(rows: List[Dict]) -> str:
    """Render benchmark rows as a text table."""
    table = [[r['method'], r['workers'], f"{r['time_s']:.4f}", f"{r['speedup']:.2f}x"]
             for r in rows]
    return tabulate(table, headers=["Method", "Workers", "Time (s)", "Speedup"], tablefmt="grid")


# ============================================================================
# Main Function
# ============================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run benchmarks."""
    parser = argparse.ArgumentParser(description="Benchmark dense matrix multiplication")
    parser.add_argument('--size', type=int, default=300, help='Matrix size (size × size)')
    parser.add_argument('--workers', type=int, nargs='+', default=[1, 2, 4],
                        help='Worker counts to benchmark')
    parser.add_argument('--backend', choices=['thread', 'process'], default=DEFAULT_BACKEND)
    parser.add_argument('--seed', type=int, default=42, help='Random seed')
    parser.add_argument('--log-level', default='INFO')
    args = parser.parse_args(argv)

    configure_logging(args.log_level)

    rows = benchmark_multiplication(args.size, args.workers, backend=args.backend, seed=args.seed)

    logger.info("\n" + "=" * 70)
    logger.info("SUMMARY:\n" + format_benchmark_table(rows))
    logger.info("=" * 70)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
