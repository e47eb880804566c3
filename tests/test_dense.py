import logging

import numpy as np
import pytest

from pypolyfem.linalg import invert, checked_inverse, transpose, trace, frobenius_norm
from pypolyfem.exceptions import SingularMatrixError


def test_invert_regular():
    A = np.array([[2.0, 1.0], [1.0, 3.0]])
    inv, ierr = invert(A)
    assert ierr == 0
    assert np.allclose(inv @ A, np.eye(2))


def test_invert_singular_reports_pivot():
    inv, ierr = invert(np.array([[1.0, 2.0], [2.0, 4.0]]))
    assert ierr == 2
    assert np.all(inv == 0.0)


def test_invert_zero_and_nonfinite():
    assert invert(np.zeros((3, 3)))[1] == 1
    A = np.eye(3)
    A[1, 1] = np.nan
    assert invert(A)[1] == 3


def test_invert_rejects_non_square():
    with pytest.raises(ValueError):
        invert(np.ones((2, 3)))


def test_checked_inverse_raises_and_dumps(caplog):
    A = np.array([[1.0, 1.0], [1.0, 1.0]])
    with caplog.at_level(logging.ERROR):
        with pytest.raises(SingularMatrixError) as info:
            checked_inverse(A, "test matrix", B=np.eye(2))
    assert info.value.ierr == 2
    assert "test matrix" in caplog.text
    assert "B =" in caplog.text


def test_trace_and_norm():
    A = np.array([[1.0, -2.0], [3.0, 4.0]])
    assert trace(A) == 5.0
    assert np.isclose(frobenius_norm(A), np.sqrt(30.0))


def test_transpose_of_rectangular():
    A = np.arange(6.0).reshape(2, 3)
    assert transpose(A).shape == (3, 2)
    assert transpose(A)[2, 1] == A[1, 2]
