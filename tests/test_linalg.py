"""
Tests for internal_score.linalg: Gaussian elimination with partial pivoting.
"""

import numpy as np
import pytest
from scipy import linalg as sp_linalg

from internal_score.errors import IllConditionedSystemError
from internal_score.linalg import solve_linear_system


class TestSolveLinearSystem:
    def test_small_known_system(self):
        A = [[2.0, 1.0, -1.0], [-3.0, -1.0, 2.0], [-2.0, 1.0, 2.0]]
        b = [8.0, -11.0, -3.0]
        np.testing.assert_allclose(solve_linear_system(A, b), [2.0, 3.0, -1.0], atol=1e-12)

    def test_requires_pivoting(self):
        """A zero in the (0, 0) position fails without a row swap."""
        A = [[0.0, 1.0], [1.0, 1.0]]
        b = [2.0, 3.0]
        np.testing.assert_allclose(solve_linear_system(A, b), [1.0, 2.0], atol=1e-12)

    def test_pivoting_stability(self):
        """Tiny leading entry: naive elimination loses the answer."""
        eps = 1e-17
        A = [[eps, 1.0], [1.0, 1.0]]
        b = [1.0, 2.0]
        np.testing.assert_allclose(solve_linear_system(A, b), [1.0, 1.0], atol=1e-12)

    def test_matches_scipy_on_random_spd(self):
        rng = np.random.RandomState(11)
        M = rng.randn(30, 8)
        A = M.T @ M + 0.5 * np.eye(8)
        b = rng.randn(8)
        np.testing.assert_allclose(
            solve_linear_system(A, b), sp_linalg.solve(A, b), rtol=1e-9, atol=1e-12
        )

    def test_inputs_not_modified(self):
        A = np.array([[4.0, 1.0], [2.0, 3.0]])
        b = np.array([1.0, 2.0])
        A_copy, b_copy = A.copy(), b.copy()
        solve_linear_system(A, b)
        np.testing.assert_array_equal(A, A_copy)
        np.testing.assert_array_equal(b, b_copy)

    def test_singular_raises(self):
        A = [[1.0, 2.0], [2.0, 4.0]]
        with pytest.raises(IllConditionedSystemError) as info:
            solve_linear_system(A, [1.0, 2.0])
        assert info.value.column == 1

    def test_zero_matrix_raises(self):
        with pytest.raises(IllConditionedSystemError):
            solve_linear_system(np.zeros((3, 3)), np.ones(3))

    def test_rank_deficient_normal_equations_raise(self):
        """More unknowns than observations gives a singular XᵀX."""
        rng = np.random.RandomState(5)
        X = rng.randn(4, 6)
        with pytest.raises(IllConditionedSystemError):
            solve_linear_system(X.T @ X, X.T @ rng.randn(4))

    def test_error_is_arithmetic_error(self):
        with pytest.raises(ArithmeticError):
            solve_linear_system([[0.0]], [1.0])

    def test_non_square_rejected(self):
        with pytest.raises(ValueError, match="square"):
            solve_linear_system(np.ones((2, 3)), np.ones(2))

    def test_mismatched_rhs_rejected(self):
        with pytest.raises(ValueError, match="shape"):
            solve_linear_system(np.eye(3), np.ones(2))

    def test_empty_system(self):
        assert solve_linear_system(np.zeros((0, 0)), np.zeros(0)).shape == (0,)
