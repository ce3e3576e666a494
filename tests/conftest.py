"""Shared fixtures for the dense matrix pipeline tests."""

import numpy as np
import pytest


A_2x2 = [[1.0, 2.0], [3.0, 4.0]]
B_2x2 = [[5.0, 6.0], [7.0, 8.0]]
PRODUCT_2x2 = [[19.0, 22.0], [43.0, 50.0]]


@pytest.fixture
def write_text(tmp_path):
    """Write raw text to a file under tmp_path and return its path."""
    def _write(name, text):
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path
    return _write


@pytest.fixture
def write_matrix(tmp_path):
    """Write a 2-D array in the two-decimal text format and return its path."""
    def _write(name, values):
        path = tmp_path / name
        lines = [" ".join(f"{v:.2f}" for v in row) for row in values]
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path
    return _write


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


def random_two_decimal(rng, shape, low=-100.0, high=100.0):
    """Random matrix whose values are exactly representable in the text format."""
    return np.round(rng.uniform(low, high, shape), 2)
