"""
Small linear-algebra and geometry utilities used across the package.
"""
from __future__ import annotations

import numpy as np
import scipy.linalg
from typing import Optional, Tuple


def rot2(theta: float) -> np.ndarray:
    """2D rotation matrix."""
    c, s = np.cos(theta), np.sin(theta)
    return np.array([[c, -s], [s, c]], dtype=float)


def as_to_bs(a1: np.ndarray, a2: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Given 2D real-space basis (a1,a2), return reciprocal basis (b1,b2)
    such that a_i · b_j = 2π δ_ij.
    """
    a1 = np.asarray(a1, dtype=float).ravel()
    a2 = np.asarray(a2, dtype=float).ravel()
    if a1.shape != (2,) or a2.shape != (2,):
        raise ValueError("Lattice vectors must be 2-vectors.")
    det = a1[0] * a2[1] - a1[1] * a2[0]
    scale = max(np.linalg.norm(a1) * np.linalg.norm(a2), np.finfo(float).tiny)
    if abs(det) < 1e-12 * scale:
        raise ValueError(f"Degenerate lattice vectors {a1}, {a2} (zero determinant).")
    b1 = 2 * np.pi * np.array([a2[1], -a2[0]]) / det
    b2 = 2 * np.pi * np.array([-a1[1], a1[0]]) / det
    return b1, b2


def bs_to_as(b1: np.ndarray, b2: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Inverse of `as_to_bs`. In 2D the reciprocal map is its own inverse."""
    return as_to_bs(b1, b2)


class DiagonalMatrix:
    """
    A diagonal operator stored as its diagonal only.

    Supports `D @ X`, `X @ D`, left division `D.solve(X)` (D \\ X) and right
    division `X / D` without materialising the dense N×N matrix.
    """

    # numpy defers binary operators (X @ D, X / D) to this class
    __array_ufunc__ = None

    def __init__(self, diag):
        self.diag = np.asarray(diag, dtype=complex).ravel()

    @property
    def shape(self) -> Tuple[int, int]:
        n = self.diag.shape[0]
        return (n, n)

    def __len__(self) -> int:
        return self.diag.shape[0]

    def __getitem__(self, ij):
        i, j = ij
        return self.diag[i] if i == j else 0.0

    def __matmul__(self, X):
        X = np.asarray(X)
        if X.ndim == 1:
            return self.diag * X
        return self.diag[:, None] * X

    def __rmatmul__(self, X):
        X = np.asarray(X)
        if X.ndim == 1:
            return X * self.diag
        return X * self.diag[None, :]

    def __rtruediv__(self, X):
        X = np.asarray(X)
        if X.ndim == 1:
            return X / self.diag
        return X / self.diag[None, :]

    def solve(self, X):
        """Left division D \\ X, provided for callers; the solver itself only multiplies."""
        X = np.asarray(X)
        if X.ndim == 1:
            return X / self.diag
        return X / self.diag[:, None]

    def toarray(self) -> np.ndarray:
        return np.diag(self.diag)


def _as_columns(data: np.ndarray) -> Tuple[np.ndarray, bool]:
    data = np.asarray(data, dtype=complex)
    if data.ndim == 1:
        return data[:, None], True
    if data.ndim != 2:
        raise ValueError("data must be a vector or a matrix of column vectors.")
    return data, False


def _weighting_or_identity(weighting: Optional[np.ndarray], n: int) -> np.ndarray:
    if weighting is None:
        return np.eye(n, dtype=complex)
    weighting = np.asarray(weighting)
    if weighting.shape != (n, n):
        raise ValueError(f"weighting has shape {weighting.shape}, expected {(n, n)}.")
    return weighting


def normalise(data: np.ndarray, weighting: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Rescale each column to unit weighted norm sqrt(|<x, W x>|).

    Parameters
    ----------
    data : (N,) or (N, d) complex
    weighting : (N, N) Hermitian, defaults to the identity.
    """
    cols, was_vector = _as_columns(data)
    W = _weighting_or_identity(weighting, cols.shape[0])
    norms = np.sqrt(np.abs(np.einsum("ij,ij->j", cols.conj(), W @ cols)))
    out = cols / DiagonalMatrix(norms)
    return out[:, 0] if was_vector else out


def orthonormalise(data: np.ndarray, weighting: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Gram–Schmidt orthonormalisation with respect to <x, W y>.

    Implemented as a Cholesky factorisation of the weighted Gram matrix
    S = X† W X = L L†, so X L^{-†} has the same span, the same ordering as
    classical Gram–Schmidt, and S = I.
    """
    cols, was_vector = _as_columns(data)
    W = _weighting_or_identity(weighting, cols.shape[0])
    S = cols.conj().T @ W @ cols
    S = 0.5 * (S + S.conj().T)
    L = scipy.linalg.cholesky(S, lower=True)
    # X L^{-†} = (L^{-1} X†)†
    out = scipy.linalg.solve_triangular(L, cols.conj().T, lower=True).conj().T
    return out[:, 0] if was_vector else out


def unitary_approx(M: np.ndarray) -> np.ndarray:
    """
    Closest unitary matrix to M: M = U Σ V† -> U V†.
    """
    M = np.asarray(M, dtype=complex)
    if M.ndim != 2 or M.shape[0] != M.shape[1]:
        raise ValueError("unitary_approx expects a square matrix.")
    U, _, Vh = scipy.linalg.svd(M)
    return U @ Vh


def is_hermitian(A: np.ndarray, tol: float = 1e-10) -> bool:
    A = np.asarray(A)
    scale = max(np.abs(A).max(initial=0.0), 1.0)
    return bool(np.allclose(A, A.conj().T, atol=tol * scale, rtol=0.0))
