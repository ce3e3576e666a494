"""
Error types raised by the matrix codec, the parallel multiplier and the pipeline.

Each error also derives from the closest built-in exception so callers that
only know about FileNotFoundError / ValueError / OSError keep working.
"""

from typing import Optional, Tuple


class MatrixError(Exception):
    """Base class for all matrix pipeline errors."""


class NotFoundError(MatrixError, FileNotFoundError):
    """An input matrix file does not exist."""

    def __init__(self, path: str):
        self.path = str(path)
        super().__init__(f"Matrix file not found: {self.path}")


class FormatError(MatrixError, ValueError):
    """A line could not be parsed into the expected numeric tokens."""

    def __init__(self, path: str, line_number: int, message: str, token: Optional[str] = None):
        self.path = str(path)
        self.line_number = line_number
        self.token = token
        super().__init__(f"{self.path}, line {line_number}: {message}")


class TruncatedInputError(MatrixError, EOFError):
    """A matrix file ended before the declared number of rows was read."""

    def __init__(self, path: str, expected_rows: int, found_rows: int):
        self.path = str(path)
        self.expected_rows = expected_rows
        self.found_rows = found_rows
        super().__init__(
            f"{self.path}: expected {expected_rows} rows, file ends after {found_rows}"
        )


class DimensionMismatchError(MatrixError, ValueError):
    """Inner dimensions of the operands do not agree."""

    def __init__(self, shape_a: Tuple[int, int], shape_b: Tuple[int, int]):
        self.shape_a = tuple(shape_a)
        self.shape_b = tuple(shape_b)
        super().__init__(
            f"Incompatible dimensions: A is {self.shape_a}, B is {self.shape_b} "
            f"(A has {self.shape_a[1]} columns, B has {self.shape_b[0]} rows)"
        )


class WriteError(MatrixError, OSError):
    """The result matrix could not be persisted."""

    def __init__(self, path: str, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Cannot write matrix to {self.path}: {reason}")


class PipelineError(MatrixError):
    """
    Single failure reported by the pipeline orchestrator.

    Attributes:
        stage: PipelineStage that failed
        path: File involved in the failing stage (None for in-memory stages)
        cause: Original exception
    """

    def __init__(self, stage, cause: BaseException, path: Optional[str] = None):
        self.stage = stage
        self.cause = cause
        self.path = str(path) if path is not None else None
        stage_name = getattr(stage, "value", stage)
        super().__init__(f"Stage '{stage_name}' failed: {cause}")
