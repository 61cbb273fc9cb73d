import pytest
import numpy as np
from harmonic_mapper import coupling, coupling_matrix


def test_coupling_is_deterministic():
    first = coupling("s_n", "t_n")
    for _ in range(10):
        assert coupling("s_n", "t_n") == first


@pytest.mark.parametrize("a, b, expected", [
    ("s_n", "t_n", 0.95),
    ("t_n", "s_n", 0.05),
    ("s_n", "m_n", 0.22),
    ("m_n", "s_n", 0.62),
    ("x1_n", "tesla_n", 0.90),
    ("tesla_n", "bb_n", 0.99),
    ("tesla_n", "real_world", 0.71),
    ("real_world", "tesla_n", 0.29),
])
def test_known_coefficients(a, b, expected):
    """Values of the signed 32-bit rolling hash, including strings long enough to wrap."""
    assert coupling(a, b) == expected


def test_coupling_is_asymmetric():
    assert coupling("s_n", "t_n") != coupling("t_n", "s_n")


def test_coupling_range():
    ids = ["s_n", "t_n", "m_n", "x1_n", "x2_n", "x3_n", "tesla_n", "b_n", "bb_n", "real_world"]
    for a in ids:
        for b in ids:
            c = coupling(a, b)
            assert 0.0 <= c < 1.0


def test_coupling_matrix():
    ids = ["s_n", "t_n", "m_n"]
    C = coupling_matrix(ids)
    assert C.shape == (3, 3)
    np.testing.assert_array_equal(np.diag(C), 0.0)
    assert C[0, 1] == 0.95 and C[1, 0] == 0.05
    assert C[2, 1] == 0.01
