"""
Symmetry operators acting on plane-wave coefficients and symmetry eigenvalues.

This module focuses on point-group bookkeeping:
- the integer action of a point operation on the reciprocal basis (b1,b2)
- representation matrices in the plane-wave basis (permutation + phase)
- diagonalising a symmetry inside a (degenerate) eigenspace

A symmetry {g|τ} acts on a field as ψ(r) -> ψ(g⁻¹(r - τ)). On a plane wave
exp(i K·r) this gives exp(-i gK·τ) exp(i gK·r), so the representation is a
relabelling K -> gK followed by a phase for non-symmorphic operations. At a
high-symmetry point g k = k + G0 the image is shifted back by G0 so that the
transformed state lives at the original k.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import List, Sequence, Tuple

import numpy as np
import scipy.linalg
import scipy.sparse as sp

from .eigenmode import Eigenmode, HilbertSpace, State, _relabel, overlaps
from .lattice import PlaneWaveBasis
from .utils import normalise, rot2


@dataclass(frozen=True)
class SymmetryOperator:
    """Point operation `R` (2x2, cartesian) with optional fractional translation.

    `translation` is given in fractional real-space coordinates (t1, t2),
    i.e. τ = t1 a1 + t2 a2; leave it at zero for symmorphic operations.
    Calling the operator on a k-vector applies R.
    """

    name: str
    R: np.ndarray
    translation: Tuple[float, float] = (0.0, 0.0)
    tol: float = 1e-6

    def __post_init__(self) -> None:
        R = np.asarray(np.real(self.R), float)
        if R.shape != (2, 2):
            raise ValueError("R must be a 2x2 real matrix.")
        if not np.allclose(R.T @ R, np.eye(2), atol=1e-8):
            raise ValueError(f"{self.name}: R must be orthogonal.")
        object.__setattr__(self, "R", R)
        t = tuple(float(x) for x in np.asarray(self.translation, float).ravel())
        if len(t) != 2:
            raise ValueError("translation must have two fractional components.")
        object.__setattr__(self, "translation", t)

    def __call__(self, k: np.ndarray) -> np.ndarray:
        return self.R @ np.asarray(k, dtype=float)

    @property
    def is_symmorphic(self) -> bool:
        return not np.any(self.translation)

    # -------------------------
    # Integer action on (p,q)
    # -------------------------
    def integer_action(self, basis: PlaneWaveBasis) -> np.ndarray:
        """Integer matrix M with R (p b1 + q b2) = p' b1 + q' b2, (p',q') = M (p,q).

        Raises if R does not map (b1,b2) to integer combinations, i.e. if the
        operation is not a symmetry of the lattice.
        """
        B = np.column_stack([basis.b1, basis.b2])
        M_float = np.linalg.inv(B) @ self.R @ B
        M = np.rint(M_float).astype(int)
        if not np.allclose(M_float, M, atol=self.tol):
            raise ValueError(f"{self.name} does not map (b1,b2) to integer combos.")
        return M

    def translation_cart(self, basis: PlaneWaveBasis) -> np.ndarray:
        a1, a2 = basis.a1a2
        return self.translation[0] * a1 + self.translation[1] * a2

    def k_shift(self, basis: PlaneWaveBasis, k: np.ndarray) -> np.ndarray:
        """Reciprocal lattice vector G0 = R k - k; raises if k is not invariant."""
        k = np.asarray(k, dtype=float)
        G0 = self(k) - k
        if not basis.is_reciprocal_vector(G0, tol=self.tol):
            raise ValueError(
                f"k = {k} is not invariant under {self.name} (R k - k = {G0} is not a reciprocal lattice vector)."
            )
        return G0

    # -------------------------
    # Full plane-wave rep matrix
    # -------------------------
    def rep_matrix(self, basis: PlaneWaveBasis, k: np.ndarray) -> sp.csr_matrix:
        """Representation matrix at a (symmetry-invariant) k in the plane-wave basis.

        D[j, i] = exp(-i gK_i·τ) if plane wave i maps onto plane wave j.
        Plane waves mapped outside the truncation have no image (empty column).
        """
        self.integer_action(basis)
        G0 = self.k_shift(basis, k)
        tau = None if self.is_symmorphic else self.translation_cart(basis)
        _, src, dst, phases = _relabel(basis, k, lambda q: self(q) - G0, tau, tol=self.tol)
        return sp.csr_matrix((phases, (dst, src)), shape=(basis.size, basis.size), dtype=complex)


identity = SymmetryOperator("E", np.eye(2))
C2 = SymmetryOperator("C2", rot2(2 * np.pi / 2))
C3 = SymmetryOperator("C3", rot2(2 * np.pi / 3))
C4 = SymmetryOperator("C4", rot2(2 * np.pi / 4))
C6 = SymmetryOperator("C6", rot2(2 * np.pi / 6))
# mirror_x flips x, mirror_y flips y
mirror_x = SymmetryOperator("mirror_x", np.diag([-1.0, 1.0]))
mirror_y = SymmetryOperator("mirror_y", np.diag([1.0, -1.0]))
inversion = SymmetryOperator("I", -np.eye(2))


# ----------------------------------------------------------------------
# Symmetry eigenmodes
# ----------------------------------------------------------------------

def symmetry_transform(state: State, symmetry: SymmetryOperator) -> State:
    """Apply `symmetry` to a mode or space, returning it at the original k."""
    D = symmetry.rep_matrix(state.basis, state.k)
    return replace(state, data=D @ state.data)


def _restricted_symmetry(space: HilbertSpace, symmetry: SymmetryOperator) -> np.ndarray:
    """Matrix O[m,n] = <x_m| g x_n> of the symmetry restricted to the space."""
    return overlaps(space, symmetry_transform(space, symmetry))


def symmetry_eigenmodes(space: HilbertSpace, symmetry: SymmetryOperator) -> List[Eigenmode]:
    """
    Diagonalise `symmetry` inside `space`.

    Returns Eigenmodes whose `eigenvalue` is the symmetry eigenvalue. The
    order is that of the eigensolver; compare eigenvalue sets, not positions.
    """
    O = _restricted_symmetry(space, symmetry)
    vals, vecs = scipy.linalg.eig(O)
    data = normalise(space.data @ vecs, space.weighting)
    return [
        Eigenmode(space.k, vals[n], data[:, n], space.weighting, space.basis, symmetry.name)
        for n in range(len(vals))
    ]


def symmetry_eigvals(space: HilbertSpace, symmetry: SymmetryOperator) -> np.ndarray:
    """Eigenvalues of `symmetry` restricted to `space`."""
    return scipy.linalg.eigvals(_restricted_symmetry(space, symmetry))


def match_eigvals(
    results: Sequence[complex],
    expected: Sequence[complex],
    tol_percent: float = 1.0,
) -> bool:
    """
    Compare two sets of unit-modulus eigenvalues irrespective of order.

    Both sets are sorted by phase and `results` is cyclically shifted until
    every phase difference is below `tol_percent` percent of 2π.
    """
    results = np.asarray(results, dtype=complex).ravel()
    expected = np.asarray(expected, dtype=complex).ravel()
    if results.shape != expected.shape:
        return False
    results = results[np.argsort(np.angle(results), kind="stable")]
    expected = expected[np.argsort(np.angle(expected), kind="stable")]
    for _ in range(len(results)):
        percentage_error = np.angle(results / expected) / (2 * np.pi) * 100
        if np.all(np.abs(percentage_error) < tol_percent):
            return True
        results = np.roll(results, 1)
    return False
