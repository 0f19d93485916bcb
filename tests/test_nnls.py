"""Tests for the non-negative least squares solver."""

import pytest

from macro_planner.services.nnls import nnls_solve


def test_solves_diagonal_system() -> None:
    solution = nnls_solve([[1.0, 0.0], [0.0, 2.0]], [3.0, 8.0])

    assert solution == pytest.approx([3.0, 4.0], abs=1e-3)


def test_solution_is_non_negative() -> None:
    solution = nnls_solve([[1.0, 1.0], [1.0, -1.0], [0.5, 2.0]], [1.0, 5.0, -2.0])

    assert solution is not None
    assert all(value >= 0 for value in solution)


def test_empty_candidate_set_returns_none() -> None:
    assert nnls_solve([[], [], []], [1.0, 2.0, 3.0]) is None
    assert nnls_solve([], []) is None


def test_zero_solution_returns_none() -> None:
    assert nnls_solve([[1.0, 0.5], [0.2, 1.0]], [-5.0, -3.0]) is None


def test_macro_system_recovers_grams() -> None:
    matrix = [
        [0.8, 0.027, 0.0],
        [0.08, 0.256, 0.0],
        [0.02, 0.01, 1.0],
    ]
    target = [0.8 * 50 + 0.027 * 200, 0.08 * 50 + 0.256 * 200, 0.02 * 50 + 0.01 * 200 + 10]

    solution = nnls_solve(matrix, target, max_iter=1000)

    assert solution == pytest.approx([50, 200, 10], abs=0.5)
