"""
Plane-wave expansion solver for 2D photonic crystals.

For in-plane propagation Maxwell's equations decouple into two scalar
problems. In the plane-wave basis, with Kx, Ky the diagonal matrices of
(k + G)_x and (k + G)_y and [f] the convolution matrix of f:

    TE (H_z):  (Kx [ε]^-1 Kx + Ky [ε]^-1 Ky) h = ω² [μ] h
    TM (E_z):  (Kx [μ]^-1 Kx + Ky [μ]^-1 Ky) e = ω² [ε] e

Each polarisation only differs in its assembly rule; the generalized
eigenproblem A x = λ B x is then solved by one shared code path. The
right-hand side B is the weighting of the resulting modes, and eigenvectors
are normalised so that x† B x = 1.

Units: lengths in lattice units, c = 1, so eigenvalues are angular
frequencies ω = sqrt(λ).
"""
from __future__ import annotations

from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import scipy.linalg

from .config import SolverParameters
from .eigenmode import Eigenmode
from .geometry import Geometry, convmat
from .lattice import KPoint, PlaneWaveBasis, get_k
from .utils import DiagonalMatrix, is_hermitian, normalise


class Polarisation(Enum):
    TE = "TE"
    TM = "TM"

    @property
    def label(self) -> str:
        """Field component the polarisation is decomposed in."""
        return _FIELD_LABELS[self]

    def assemble(self, Kx: DiagonalMatrix, Ky: DiagonalMatrix, solver: "Solver") -> Tuple[np.ndarray, np.ndarray]:
        """Left and right hand sides (A, B) of the generalized eigenproblem."""
        return _ASSEMBLY[self](Kx, Ky, solver)

    @staticmethod
    def parse(value: Union["Polarisation", str]) -> "Polarisation":
        if isinstance(value, Polarisation):
            return value
        try:
            return Polarisation(str(value).upper())
        except ValueError:
            raise ValueError(
                f"Unknown polarisation '{value}'. Allowed values: {[p.value for p in Polarisation]}"
            ) from None


TE = Polarisation.TE
TM = Polarisation.TM


def _assemble_te(Kx: DiagonalMatrix, Ky: DiagonalMatrix, solver: "Solver") -> Tuple[np.ndarray, np.ndarray]:
    inv = solver.epc_inv
    A = Kx @ inv @ Kx + Ky @ inv @ Ky
    return A, solver.muc


def _assemble_tm(Kx: DiagonalMatrix, Ky: DiagonalMatrix, solver: "Solver") -> Tuple[np.ndarray, np.ndarray]:
    inv = solver.muc_inv
    A = Kx @ inv @ Kx + Ky @ inv @ Ky
    return A, solver.epc


_ASSEMBLY: Dict[Polarisation, Callable[..., Tuple[np.ndarray, np.ndarray]]] = {
    Polarisation.TE: _assemble_te,
    Polarisation.TM: _assemble_tm,
}

_FIELD_LABELS: Dict[Polarisation, str] = {
    Polarisation.TE: "H_z",
    Polarisation.TM: "E_z",
}


def _hermitised(A: np.ndarray) -> np.ndarray:
    """Remove rounding-level anti-Hermitian parts of (numerically) Hermitian A."""
    if is_hermitian(A):
        return 0.5 * (A + A.conj().T)
    return A


class Solver:
    """
    Plane-wave basis and convolution matrices of one geometry.

    Use `Solver(geometry, cutoff)` for a circular truncation or
    `Solver(geometry, cutoff_b1, cutoff_b2)` for a rhombic one; the second
    form may also be spelled `Solver(geometry, cutoff_b1=..., cutoff_b2=...)`.
    The convolution matrices (and their inverses) are computed once and reused
    by every call to `solve`, for either polarisation.
    """

    def __init__(self, geometry: Geometry, cutoff: Optional[int] = None,
                 cutoff_b2: Optional[int] = None, *, cutoff_b1: Optional[int] = None, verbose: bool = False):
        if cutoff_b1 is not None:
            if cutoff is not None:
                raise ValueError("Give the first cutoff either as `cutoff` or as `cutoff_b1`, not both.")
            if cutoff_b2 is None:
                raise ValueError("`cutoff_b1` needs `cutoff_b2`.")
            cutoff = cutoff_b1
        if cutoff is None:
            raise ValueError("A plane-wave cutoff is required.")
        if cutoff_b2 is None:
            basis = PlaneWaveBasis.circular(geometry.a1, geometry.a2, cutoff)
        else:
            basis = PlaneWaveBasis.rhombic(geometry.a1, geometry.a2, cutoff, cutoff_b2)
        if not geometry.matches(basis):
            raise ValueError("Plane-wave basis does not match the geometry's lattice vectors.")

        if verbose:
            print(f"Building convolution matrices for {basis.size} plane waves...")
        self.geometry = geometry
        self.basis = basis
        self.epc = _hermitised(convmat(geometry.ep, basis))
        self.muc = _hermitised(convmat(geometry.mu, basis))
        self.epc_inv = _hermitised(np.linalg.inv(self.epc))
        self.muc_inv = _hermitised(np.linalg.inv(self.muc))
        if verbose:
            print("Done with convolution matrices")

    @classmethod
    def from_parameters(cls, geometry: Geometry, params: SolverParameters, *, verbose: bool = False) -> "Solver":
        params.validate()
        if params.is_circular:
            return cls(geometry, cutoff=params.cutoff, verbose=verbose)
        return cls(geometry, cutoff_b1=params.cutoff_b1, cutoff_b2=params.cutoff_b2, verbose=verbose)

    def weighting(self, polarisation: Union[Polarisation, str]) -> np.ndarray:
        """Inner-product weighting of modes of the given polarisation."""
        polarisation = Polarisation.parse(polarisation)
        return self.muc if polarisation is Polarisation.TE else self.epc

    def __repr__(self) -> str:
        return f"Solver(plane_waves={self.basis.size}, grid={self.geometry.shape})"


def solve(solver: Solver, k: KPoint, polarisation: Union[Polarisation, str]) -> List[Eigenmode]:
    """
    Solve for all eigenmodes at a single k.

    Parameters
    ----------
    k : cartesian (2,) vector or BrillouinZoneCoordinate
    polarisation : Polarisation or "TE"/"TM"

    Returns
    -------
    modes : list of Eigenmode sorted by ascending frequency
    """
    polarisation = Polarisation.parse(polarisation)
    basis = solver.basis
    k = get_k(k, basis)
    Kx = DiagonalMatrix(k[0] + basis.kxs)
    Ky = DiagonalMatrix(k[1] + basis.kys)
    A, B = polarisation.assemble(Kx, Ky, solver)
    A = _hermitised(A)

    if is_hermitian(A) and is_hermitian(B):
        # eigenvectors come back B-orthonormal
        lam, vecs = scipy.linalg.eigh(A, B)
        freqs = np.sqrt(np.clip(lam, 0.0, None))
    else:
        lam, vecs = scipy.linalg.eig(A, B)
        vecs = normalise(vecs, B)
        freqs = np.sqrt(lam.astype(complex))
    idx = np.argsort(np.real(freqs), kind="stable")
    freqs = freqs[idx]
    vecs = vecs[:, idx]

    return [
        Eigenmode(k, freq, vecs[:, n], B, basis, polarisation.label)
        for n, freq in enumerate(freqs)
    ]


def solve_kpoints(
    solver: Solver,
    ks: Sequence[KPoint],
    polarisation: Union[Polarisation, str],
    bands: Optional[int] = None,
    *,
    verbose: bool = False,
) -> Tuple[np.ndarray, List[List[Eigenmode]]]:
    """
    Solve for eigenmodes on many k points.

    Returns
    -------
    freqs : (Nk, nbands) real frequencies
    modes : list (Nk) of lists of the kept Eigenmodes
    """
    freqs_all = []
    modes_all = []
    for ik, k in enumerate(ks):
        if verbose:
            print(f"Solving k-point {ik + 1}/{len(ks)}")
        modes = solve(solver, k, polarisation)
        if bands is not None:
            if bands > len(modes):
                raise ValueError(f"Requested {bands} bands, but only {len(modes)} available.")
            modes = modes[:bands]
        freqs_all.append([mode.frequency for mode in modes])
        modes_all.append(modes)
    return np.asarray(freqs_all, dtype=float), modes_all
