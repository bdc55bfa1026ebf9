from __future__ import annotations

import numpy as np
import pytest
import scipy.linalg

from phc_topology import as_to_bs, bs_to_as, normalise, orthonormalise, unitary_approx
from phc_topology.utils import DiagonalMatrix, rot2


def _random_weighting(rng, n):
    A = rng.normal(size=(n, n)) + 1j * rng.normal(size=(n, n))
    return np.eye(n) + A @ A.conj().T / n


def test_reciprocal_lattice_vectors(rng):
    for _ in range(10):
        a1 = rng.random(2)
        a2 = rng.random(2)
        b1, b2 = as_to_bs(a1, a2)
        assert np.isclose(np.dot(a1, b1), 2 * np.pi)
        assert np.isclose(np.dot(a2, b2), 2 * np.pi)
        assert abs(np.dot(a1, b2)) < 1e-6
        assert abs(np.dot(a2, b1)) < 1e-6
        a1_, a2_ = bs_to_as(b1, b2)
        assert np.allclose(a1, a1_)
        assert np.allclose(a2, a2_)


def test_degenerate_lattice_vectors_rejected():
    with pytest.raises(ValueError):
        as_to_bs([1.0, 2.0], [2.0, 4.0])
    with pytest.raises(ValueError):
        as_to_bs([1.0, 0.0, 0.0], [0.0, 1.0, 0.0])


def test_diagonal_matrix_matches_dense(rng):
    d = rng.normal(size=4) + 2.0
    X = rng.normal(size=(4, 3)) + 1j * rng.normal(size=(4, 3))
    Y = rng.normal(size=(3, 4))
    D = DiagonalMatrix(d)
    dense = np.diag(d)
    assert D.shape == (4, 4)
    assert np.allclose(D @ X, dense @ X)
    assert np.allclose(Y @ D, Y @ dense)
    assert np.allclose(D.solve(X), np.linalg.solve(dense, X))
    assert np.allclose(Y / D, Y @ np.linalg.inv(dense))
    assert np.allclose(D.toarray(), dense)
    assert D[1, 1] == d[1] and D[0, 1] == 0


def test_normalise(rng):
    data = rng.random((5, 5)) + 1j * rng.random((5, 5))
    weighting = _random_weighting(rng, 5)
    data_ = normalise(data, weighting=weighting)
    for n in range(data_.shape[1]):
        weighted_norm = np.sqrt(abs(np.vdot(data_[:, n], weighting @ data_[:, n])))
        assert np.isclose(weighted_norm, 1)
    # directions are kept
    ratios = data_ / data
    assert np.allclose(ratios, ratios[0][None, :])


def test_orthonormalise(rng):
    data = rng.random((5, 5)) + 1j * rng.random((5, 5))
    weighting = _random_weighting(rng, 5)
    data_ = orthonormalise(data, weighting=weighting)
    gram = data_.conj().T @ weighting @ data_
    assert np.allclose(gram, np.eye(5), atol=1e-6)
    # Gram-Schmidt keeps the first direction
    assert np.isclose(abs(np.vdot(normalise(data[:, 0]), normalise(data_[:, 0]))), 1)


def test_orthonormalise_identity_weighting(rng):
    data = rng.random((6, 3)) + 1j * rng.random((6, 3))
    data_ = orthonormalise(data)
    assert np.allclose(data_.conj().T @ data_, np.eye(3))


def test_unitary_approx_of_unitary(rng):
    M = rng.random((5, 5)) + 1j * rng.random((5, 5))
    M = M + M.conj().T
    M = scipy.linalg.expm(1j * M)
    assert np.allclose(unitary_approx(M), M)


def test_unitary_approx_of_scaled_rotation():
    U = np.kron(rot2(0.3), np.eye(2)).astype(complex)
    M = U @ np.diag([0.9, 0.5, 0.7, 0.2])
    V = unitary_approx(M)
    assert np.allclose(V.conj().T @ V, np.eye(4))
    assert np.allclose(V, U)


def test_unitary_approx_requires_square():
    with pytest.raises(ValueError):
        unitary_approx(np.ones((2, 3)))
