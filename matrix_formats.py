"""
Dense Matrix Text Format
Reads and writes dense matrices stored as plain text, one row per line.

File layout:
- One line per row, values separated by a single space
- Every value rendered with exactly two decimal digits (e.g. 23.47)
- Each row terminated by '\\n'
- No header and no dimension line: callers supply (rows, cols) themselves

Files are streamed row by row, so a file is always consumed and produced in
strictly increasing row order.
"""

import numpy as np
from pathlib import Path
import logging
import re
from typing import Tuple, Union, Sequence
from tqdm import tqdm

from matmul_config import DECIMAL_PRECISION, DELIMITER
from matrix_errors import NotFoundError, FormatError, TruncatedInputError, WriteError


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Plain decimal literal: optional sign, digits with optional fraction, optional exponent.
# Python-only spellings (1_000, nan, inf) are not numbers in this format.
_NUMBER_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


class DenseMatrix:
    """
    Dense row-major matrix of float64 values.

    Wraps a C-contiguous NumPy array of shape (rows, cols). Both dimensions
    must be positive. Element access is O(1) through ``matrix[i, j]``.
    """

    def __init__(self, data):
        """
        Args:
            data: 2-D array-like of numbers. Float64 contiguous arrays are
                  wrapped without copying.
        """
        array = np.ascontiguousarray(data, dtype=np.float64)

        if array.ndim != 2:
            raise ValueError(f"Dense matrix must be 2-D, got {array.ndim}-D data")
        if array.shape[0] == 0 or array.shape[1] == 0:
            raise ValueError(f"Dense matrix dimensions must be positive, got {array.shape}")

        self.data = array

    @classmethod
    def zeros(cls, shape: Tuple[int, int]) -> 'DenseMatrix':
        rows, cols = _check_shape(*shape)
        return cls(np.zeros((rows, cols), dtype=np.float64))

    @classmethod
    def identity(cls, size: int) -> 'DenseMatrix':
        _check_shape(size, size)
        return cls(np.eye(size, dtype=np.float64))

    @classmethod
    def from_txt(cls, filepath: PathLike, shape: Tuple[int, int],
                 strict: bool = False) -> 'DenseMatrix':
        """
        Create DenseMatrix from a text matrix file.

        Args:
            filepath: Path to the text file
            shape: (rows, cols) expected in the file
            strict: Reject rows that carry more than ``cols`` values

        Returns:
            DenseMatrix instance
        """
        return read_dense_matrix(filepath, shape[0], shape[1], strict=strict)

    def to_txt(self, filepath: PathLike):
        """Write this matrix to a text file (two decimal digits per value)."""
        write_dense_matrix(filepath, self)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.data.shape

    @property
    def rows(self) -> int:
        return self.data.shape[0]

    @property
    def cols(self) -> int:
        return self.data.shape[1]

    @property
    def nbytes(self) -> int:
        return self.data.nbytes

    def to_numpy(self) -> np.ndarray:
        """Return a copy of the underlying array."""
        return self.data.copy()

    def __getitem__(self, index):
        return self.data[index]

    def __setitem__(self, index, value):
        self.data[index] = value

    def __eq__(self, other):
        if not isinstance(other, DenseMatrix):
            return NotImplemented
        return self.shape == other.shape and np.array_equal(self.data, other.data)

    __hash__ = None

    def __repr__(self):
        return f"DenseMatrix(shape={self.shape})"


def as_dense_matrix(matrix) -> DenseMatrix:
    """Wrap array-like input in a DenseMatrix (no-op for DenseMatrix)."""
    if isinstance(matrix, DenseMatrix):
        return matrix
    return DenseMatrix(matrix)


def _check_shape(rows: int, cols: int) -> Tuple[int, int]:
    for name, value in (("rows", rows), ("cols", cols)):
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
            raise ValueError(f"{name} must be an integer, got {value!r}")
        if value <= 0:
            raise ValueError(f"{name} must be positive, got {value}")
    return int(rows), int(cols)


# ============================================================================
# Row Encoding
# ============================================================================

def format_row(values: Sequence[float], precision: int = DECIMAL_PRECISION) -> str:
    """
    Render one matrix row as text (without the line terminator).

    Args:
        values: Row values
        precision: Digits after the decimal point

    Returns:
        Space-separated values, e.g. "19.00 22.00"
    """
    return DELIMITER.join(f"{v:.{precision}f}" for v in values)


def parse_row(line: str, cols: int, filepath: PathLike = "<string>",
              line_number: int = 1, strict: bool = False) -> np.ndarray:
    """
    Parse one text line into ``cols`` float64 values.

    Trailing whitespace and line endings are not tokens. Values beyond the
    first ``cols`` are ignored unless ``strict`` is set.

    Args:
        line: Raw line read from the file
        cols: Number of values expected
        filepath: File name used in error messages
        line_number: 1-based line number used in error messages
        strict: Raise FormatError on excess values

    Returns:
        1-D float64 array of length ``cols``
    """
    tokens = [t for t in line.rstrip("\r\n").split(DELIMITER) if t]

    if len(tokens) < cols:
        raise FormatError(filepath, line_number,
                          f"expected {cols} values, found {len(tokens)}")
    if strict and len(tokens) > cols:
        raise FormatError(filepath, line_number,
                          f"expected {cols} values, found {len(tokens)}",
                          token=tokens[cols])

    row = np.empty(cols, dtype=np.float64)
    for j in range(cols):
        if not _NUMBER_RE.fullmatch(tokens[j]):
            raise FormatError(filepath, line_number,
                              f"invalid number {tokens[j]!r} in column {j + 1}",
                              token=tokens[j])
        row[j] = float(tokens[j])
    return row


# ============================================================================
# Reading & Writing
# ============================================================================

def read_dense_matrix(filepath: PathLike, rows: int, cols: int,
                      strict: bool = False, progress: bool = False) -> DenseMatrix:
    """
    Read a dense matrix from a text file.

    Consumes exactly ``rows`` lines and parses the first ``cols`` values of
    each. The file handle is closed on every exit path.

    Args:
        filepath: Path to the text file
        rows: Number of rows to read
        cols: Number of values per row
        strict: Reject rows with more than ``cols`` values
        progress: Show a progress bar over rows

    Returns:
        DenseMatrix of shape (rows, cols)

    Raises:
        NotFoundError: No regular file exists at the path (missing, or a directory)
        FormatError: A row has too few values, a value is not a number, or a
            line is not valid UTF-8
        TruncatedInputError: File has fewer than ``rows`` lines
        OSError: Any other failure to open or read the file (e.g.
            PermissionError) is passed through unchanged
    """
    rows, cols = _check_shape(rows, cols)
    filepath = Path(filepath)

    if not filepath.is_file():
        raise NotFoundError(filepath)

    data = np.empty((rows, cols), dtype=np.float64)

    try:
        f = open(filepath, 'r', encoding='utf-8')
    except (FileNotFoundError, IsADirectoryError) as e:
        raise NotFoundError(filepath) from e

    with f:
        for i in tqdm(range(rows), desc=f"Reading {filepath.name}", unit=" rows",
                      disable=not progress):
            try:
                line = f.readline()
            except UnicodeDecodeError as e:
                raise FormatError(filepath, i + 1, f"invalid UTF-8 ({e.reason})") from e
            if not line:
                raise TruncatedInputError(filepath, rows, i)
            data[i] = parse_row(line, cols, filepath, i + 1, strict=strict)

    logger.debug(f"Read {rows}×{cols} matrix from {filepath}")
    return DenseMatrix(data)


def write_dense_matrix(filepath: PathLike, matrix, progress: bool = False):
    """
    Write a dense matrix to a text file, overwriting existing content.

    Partial output is left in place if writing fails; callers must not read
    the file back after a WriteError.

    Args:
        filepath: Output file path
        matrix: DenseMatrix (or 2-D array-like) to write
        progress: Show a progress bar over rows

    Raises:
        WriteError: File cannot be opened or a write/flush fails
    """
    matrix = as_dense_matrix(matrix)
    filepath = Path(filepath)

    try:
        with open(filepath, 'w', encoding='utf-8', newline='\n') as f:
            for row in tqdm(matrix.data, desc=f"Writing {filepath.name}", unit=" rows",
                            disable=not progress):
                f.write(format_row(row))
                f.write("\n")
    except OSError as e:
        raise WriteError(filepath, e.strerror or str(e)) from e

    logger.debug(f"Wrote {matrix.rows}×{matrix.cols} matrix to {filepath}")
