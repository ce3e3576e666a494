"""
Dense Matrix Data Generator
Generates dense matrices in the two-decimal text format for testing.

Features:
- Control matrix size and value range
- File size estimation before generation
- Identity matrices for sanity checks
- Progress tracking
- Safe generation (won't fill your disk)
"""

import numpy as np
import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence
from tqdm import tqdm

from matmul_config import DECIMAL_PRECISION, DEFAULT_MAX_FILE_MB, configure_logging
from matrix_formats import format_row


logger = logging.getLogger(__name__)


class DenseMatrixGenerator:
    """Generate synthetic dense matrices for testing."""

    def __init__(self, output_dir: str = "data/input", max_file_mb: float = DEFAULT_MAX_FILE_MB):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.max_file_mb = max_file_mb

    def estimate_size(self, num_rows: int, num_cols: int, high: float = 100.0) -> dict:
        """
        Estimate memory and file size for a matrix.

        Args:
            num_rows: Number of rows
            num_cols: Number of columns
            high: Largest absolute value (sets the number of integer digits)

        Returns:
            Dictionary with estimates in MB
        """
        # Each value: 8 bytes in memory
        memory_mb = (num_rows * num_cols * 8) / (1024 * 1024)

        # Text: sign + integer digits + '.' + decimals + separator
        digits = len(str(int(abs(high)))) + 1
        bytes_per_value = digits + 1 + DECIMAL_PRECISION + 1
        file_mb = (num_rows * num_cols * bytes_per_value) / (1024 * 1024)

        return {
            'memory_mb': memory_mb,
            'file_mb': file_mb,
        }

    def check_safety(self, num_rows: int, num_cols: int, high: float = 100.0):
        """
        Check if generation is safe.

        Raises:
            ValueError if dimensions are invalid or the file would be too large
        """
        if num_rows <= 0 or num_cols <= 0:
            raise ValueError(f"Matrix dimensions must be positive, got {num_rows}×{num_cols}")

        estimates = self.estimate_size(num_rows, num_cols, high)

        if estimates['file_mb'] > self.max_file_mb:
            raise ValueError(
                f"Matrix too large! Estimated file size: {estimates['file_mb']:.1f} MB\n"
                f"Maximum allowed: {self.max_file_mb} MB"
            )

        logger.info(f"Size estimate: {estimates['file_mb']:.1f} MB on disk (SAFE)")

    def generate_random(
        self,
        num_rows: int,
        num_cols: int,
        filename: str,
        seed: Optional[int] = None,
        low: float = 0.0,
        high: float = 100.0
    ) -> str:
        """
        Generate random dense matrix with uniform values in [low, high).

        Args:
            num_rows: Number of rows
            num_cols: Number of columns
            filename: Output filename
            seed: Random seed for reproducibility
            low, high: Value range

        Returns:
            Path to generated file
        """
        logger.info(f"Generating random matrix: {num_rows}×{num_cols}, values in [{low}, {high})")

        if low >= high:
            raise ValueError(f"low must be smaller than high, got [{low}, {high})")
        self.check_safety(num_rows, num_cols, max(abs(low), abs(high)))

        rng = np.random.default_rng(seed)
        filepath = self.output_dir / filename

        logger.info(f"Writing to {filepath}...")
        with open(filepath, 'w', encoding='utf-8', newline='\n') as f:
            for _ in tqdm(range(num_rows), desc="Writing rows", unit=" rows"):
                row = rng.uniform(low, high, num_cols)
                f.write(format_row(row) + "\n")

        file_size_mb = filepath.stat().st_size / (1024 * 1024)
        logger.info(f"✓ Generated {filepath} ({file_size_mb:.1f} MB)")

        return str(filepath)

    def generate_identity(self, size: int, filename: str) -> str:
        """
        Generate size × size identity matrix.

        Args:
            size: Matrix size
            filename: Output filename

        Returns:
            Path to generated file
        """
        logger.info(f"Generating identity matrix: {size}×{size}")
        self.check_safety(size, size, 1.0)

        filepath = self.output_dir / filename

        with open(filepath, 'w', encoding='utf-8', newline='\n') as f:
            row = np.zeros(size)
            for i in tqdm(range(size), desc="Writing rows", unit=" rows"):
                row[i] = 1.0
                f.write(format_row(row) + "\n")
                row[i] = 0.0

        logger.info(f"✓ Generated {filepath}")

        return str(filepath)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Command-line interface for data generation."""
    parser = argparse.ArgumentParser(
        description="Generate dense matrices for testing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Generate a 1000×1000 random matrix
  python generate_data.py --random --rows 1000 --cols 1000 -o matrixA.txt

  # Generate a 500×500 identity matrix
  python generate_data.py --identity --size 500 -o identity.txt
        """
    )

    parser.add_argument('--output-dir', default='data/input', help='Output directory')
    parser.add_argument('--seed', type=int, default=42, help='Random seed')
    parser.add_argument('--max-file-mb', type=float, default=DEFAULT_MAX_FILE_MB,
                        help='Max file size in MB (safety limit)')

    parser.add_argument('--random', action='store_true', help='Generate random matrix')
    parser.add_argument('--identity', action='store_true', help='Generate identity matrix')

    parser.add_argument('--rows', type=int, help='Number of rows')
    parser.add_argument('--cols', type=int, help='Number of columns')
    parser.add_argument('--size', type=int, help='Matrix size (for identity matrices)')
    parser.add_argument('--low', type=float, default=0.0, help='Smallest value')
    parser.add_argument('--high', type=float, default=100.0, help='Largest value (exclusive)')

    parser.add_argument('-o', '--output', help='Output filename')
    parser.add_argument('--log-level', default='INFO')

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    generator = DenseMatrixGenerator(args.output_dir, max_file_mb=args.max_file_mb)

    try:
        if args.random:
            if not all([args.rows, args.cols, args.output]):
                parser.error("--random requires --rows, --cols, and -o")
            generator.generate_random(
                num_rows=args.rows,
                num_cols=args.cols,
                filename=args.output,
                seed=args.seed,
                low=args.low,
                high=args.high
            )
        elif args.identity:
            if not all([args.size, args.output]):
                parser.error("--identity requires --size and -o")
            generator.generate_identity(size=args.size, filename=args.output)
        else:
            parser.print_help()
    except ValueError as e:
        logger.error(str(e))
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
