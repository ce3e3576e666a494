"""
Dense Matrix Multiplication Pipeline
Reads two text matrices, multiplies them in parallel and writes the product.

Stages (in order):
1. read_a / read_b      - both inputs are read concurrently, each file line by
                          line on its own I/O thread
2. check_dimensions     - inner dimensions must agree
3. multiply             - timed; runs the row-parallel multiplier off the loop
4. write                - result written to a sibling '.partial' file, then
                          moved over the destination

Any failure stops the pipeline and is raised as a single PipelineError that
names the failing stage. Only the multiply stage is timed; I/O is excluded.

Usage:
    from matrix_pipeline import run_pipeline

    result = run_pipeline(
        path_a='data/input/matrixA.txt', shape_a=(1000, 1000),
        path_b='data/input/matrixB.txt', shape_b=(1000, 1000),
        result_path='data/output/result.txt',
    )
    print(f"{result.elapsed_ms:.1f} ms")
"""

import asyncio
import argparse
import json
import logging
import os
import sys
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from multiprocessing import cpu_count
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

from matmul_config import DEFAULT_BACKEND, configure_logging
from matrix_errors import DimensionMismatchError, PipelineError, WriteError
from matrix_formats import read_dense_matrix, write_dense_matrix
from parallel_cpu import parallel_multiply


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class PipelineStage(str, Enum):
    READ_A = "read_a"
    READ_B = "read_b"
    CHECK_DIMENSIONS = "check_dimensions"
    MULTIPLY = "multiply"
    WRITE = "write"


@dataclass
class PipelineResult:
    """Outcome of a successful pipeline run."""
    result_path: str
    result_shape: Tuple[int, int]
    elapsed_seconds: float
    num_workers: int
    backend: str

    @property
    def elapsed_ms(self) -> float:
        return self.elapsed_seconds * 1000.0


# ============================================================================
# Stages
# ============================================================================

async def _read_stage(stage: PipelineStage, path: PathLike, shape: Tuple[int, int],
                      strict: bool):
    logger.info(f"Reading {stage.value[-1].upper()} {tuple(shape)} from {path}")
    try:
        return await asyncio.to_thread(read_dense_matrix, path, shape[0], shape[1], strict)
    except Exception as e:
        raise PipelineError(stage, e, path) from e


def _partial_path(result_path: Path) -> Path:
    return result_path.with_name(result_path.name + ".partial")


def _write_result(result_path: Path, matrix):
    """Write to a sibling file and move it into place once complete."""
    partial_path = _partial_path(result_path)
    try:
        write_dense_matrix(partial_path, matrix)
        try:
            os.replace(partial_path, result_path)
        except OSError as e:
            raise WriteError(result_path, e.strerror or str(e)) from e
    except WriteError:
        _discard(partial_path)
        raise


def _discard(path: Path):
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove incomplete file {path}: {e}")


# ============================================================================
# Pipeline
# ============================================================================

async def run_pipeline_async(path_a: PathLike, shape_a: Tuple[int, int],
                             path_b: PathLike, shape_b: Tuple[int, int],
                             result_path: PathLike,
                             num_workers: Optional[int] = None,
                             block_size: Optional[int] = None,
                             backend: str = DEFAULT_BACKEND,
                             strict: bool = False) -> PipelineResult:
    """
    Read A and B, multiply them, and write the product.

    Args:
        path_a, path_b: Input text matrix files
        shape_a, shape_b: (rows, cols) of each input
        result_path: Output text matrix file
        num_workers: Parallel workers (default: CPU count)
        block_size: Rows per parallel block (default: one block per worker)
        backend: "thread" or "process"
        strict: Reject input rows with more values than declared

    Returns:
        PipelineResult with the elapsed multiply time

    Raises:
        PipelineError: Any stage failed; ``stage`` names it, ``cause`` holds
            the original exception
    """
    if num_workers is None:
        num_workers = cpu_count()
    result_path = Path(result_path)

    # Stage 1: independent reads, A's failure wins if both fail
    outcomes = await asyncio.gather(
        _read_stage(PipelineStage.READ_A, path_a, shape_a, strict),
        _read_stage(PipelineStage.READ_B, path_b, shape_b, strict),
        return_exceptions=True,
    )
    for outcome in outcomes:
        if isinstance(outcome, BaseException):
            raise outcome
    matrix_a, matrix_b = outcomes

    # Stage 2
    if matrix_a.cols != matrix_b.rows:
        raise PipelineError(PipelineStage.CHECK_DIMENSIONS,
                            DimensionMismatchError(matrix_a.shape, matrix_b.shape))

    # Stage 3
    logger.info("Multiplying matrices...")
    start = time.perf_counter()
    try:
        product = await asyncio.to_thread(parallel_multiply, matrix_a, matrix_b,
                                          num_workers, block_size, backend)
    except Exception as e:
        raise PipelineError(PipelineStage.MULTIPLY, e) from e
    elapsed = time.perf_counter() - start
    logger.info(f"Multiplication time: {elapsed * 1000:.1f} ms")

    # Stage 4
    logger.info(f"Writing result {product.shape} to {result_path}")
    try:
        await asyncio.to_thread(_write_result, result_path, product)
    except Exception as e:
        raise PipelineError(PipelineStage.WRITE, e, result_path) from e

    logger.info(f"✓ Pipeline complete: {result_path}")

    return PipelineResult(
        result_path=str(result_path),
        result_shape=product.shape,
        elapsed_seconds=elapsed,
        num_workers=num_workers,
        backend=backend,
    )


def run_pipeline(*args, **kwargs) -> PipelineResult:
    """Synchronous wrapper around run_pipeline_async()."""
    return asyncio.run(run_pipeline_async(*args, **kwargs))


def save_report(result: PipelineResult, report_path: PathLike,
                shape_a: Tuple[int, int], shape_b: Tuple[int, int]) -> str:
    """
    Save a JSON benchmark report for a pipeline run.

    Returns:
        Path to the report file
    """
    report = {
        'operation': 'Dense Matrix Multiplication (Parallel)',
        'timestamp': datetime.now().isoformat(),
        'configuration': {
            'num_workers': result.num_workers,
            'backend': result.backend,
            'available_cores': cpu_count(),
        },
        'input': {
            'matrix_a_shape': list(shape_a),
            'matrix_b_shape': list(shape_b),
        },
        'output': {
            'result_path': result.result_path,
            'result_shape': list(result.result_shape),
        },
        'performance': {
            'multiplication_seconds': round(result.elapsed_seconds, 6),
            'multiplication_ms': round(result.elapsed_ms, 3),
        },
    }

    report_path = Path(report_path)
    with open(report_path, 'w', encoding='utf-8') as f:
        json.dump(report, f, indent=2)

    logger.info(f"Benchmark report saved: {report_path}")
    return str(report_path)


# ============================================================================
# Command Line
# ============================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Command-line interface for the multiplication pipeline."""
    parser = argparse.ArgumentParser(
        description="Multiply two dense text matrices in parallel",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python matrix_pipeline.py --a matrixA.txt --shape-a 1000 1000 \\
      --b matrixB.txt --shape-b 1000 1000 --out result.txt --workers 8
        """
    )
    parser.add_argument('--a', required=True, help='Matrix A file')
    parser.add_argument('--b', required=True, help='Matrix B file')
    parser.add_argument('--out', required=True, help='Result file')
    parser.add_argument('--shape-a', type=int, nargs=2, required=True, metavar=('ROWS', 'COLS'))
    parser.add_argument('--shape-b', type=int, nargs=2, required=True, metavar=('ROWS', 'COLS'))
    parser.add_argument('--workers', type=int, default=None, help='Number of workers (default: CPU count)')
    parser.add_argument('--block-size', type=int, default=None, help='Rows per block')
    parser.add_argument('--backend', choices=['thread', 'process'], default=DEFAULT_BACKEND)
    parser.add_argument('--strict', action='store_true', help='Reject rows with extra values')
    parser.add_argument('--report', help='Write a JSON benchmark report to this path')
    parser.add_argument('--log-level', default='INFO')
    args = parser.parse_args(argv)

    configure_logging(args.log_level)

    shape_a = tuple(args.shape_a)
    shape_b = tuple(args.shape_b)

    try:
        result = run_pipeline(
            args.a, shape_a, args.b, shape_b, args.out,
            num_workers=args.workers,
            block_size=args.block_size,
            backend=args.backend,
            strict=args.strict,
        )
    except PipelineError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Multiplication time: {result.elapsed_ms:.1f} ms")
    print(f"Result written to {result.result_path}")

    if args.report:
        save_report(result, args.report, shape_a, shape_b)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
