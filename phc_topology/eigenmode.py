"""
Eigenmodes, Hilbert spaces and their weighted inner product.

Every coefficient vector carries the weighting matrix W that defines its
inner product <x, y> = x† W y, together with the plane-wave basis and the
Bloch wavevector k it is expressed in. Nothing here mutates its inputs:
normalisation and transformations return new objects.

- Eigenmode: one solved Bloch mode
- HilbertSpace: a set of column vectors at one k (e.g. degenerate bands)
- Eigenspace: orthonormalised HilbertSpace built from a list of Eigenmodes
- overlap / overlaps: weighted inner products with consistency checks
- transform: relabel plane-wave coefficients under an affine k-map
- get_field: reconstruct the real-space Bloch field
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .lattice import PlaneWaveBasis
from .utils import normalise, orthonormalise


@dataclass(frozen=True, eq=False)
class Eigenmode:
    """
    A Bloch mode in the plane-wave basis.

    `eigenvalue` is the normalised frequency for solved modes and the
    symmetry eigenvalue for modes returned by `symmetry_eigenmodes`.
    """
    k: np.ndarray             # (2,)
    eigenvalue: complex
    data: np.ndarray          # (N,)
    weighting: np.ndarray     # (N, N)
    basis: PlaneWaveBasis
    label: str = ""

    def __post_init__(self) -> None:
        k = np.asarray(self.k, dtype=float).ravel()
        data = np.asarray(self.data, dtype=complex).ravel()
        if data.shape[0] != self.basis.size:
            raise ValueError(f"data has length {data.shape[0]}, basis has {self.basis.size} plane waves.")
        if np.shape(self.weighting) != (self.basis.size, self.basis.size):
            raise ValueError(f"weighting has shape {np.shape(self.weighting)}, expected {(self.basis.size,) * 2}.")
        object.__setattr__(self, "k", k)
        object.__setattr__(self, "data", data)

    @property
    def frequency(self) -> float:
        return float(np.real(self.eigenvalue))

    def normalised(self) -> "Eigenmode":
        return replace(self, data=normalise(self.data, self.weighting))


@dataclass(frozen=True, eq=False)
class HilbertSpace:
    """
    Span of the columns of `data` at wavevector `k`.

    The columns are expressed in `basis` and the inner product is given by
    `weighting`.
    """
    k: np.ndarray             # (2,)
    data: np.ndarray          # (N, d)
    weighting: np.ndarray     # (N, N)
    basis: PlaneWaveBasis
    label: str = ""

    def __post_init__(self) -> None:
        data = np.asarray(self.data, dtype=complex)
        if data.ndim == 1:
            data = data[:, None]
        if data.ndim != 2 or data.shape[0] != self.basis.size:
            raise ValueError(f"data must be ({self.basis.size}, d), got {data.shape}.")
        object.__setattr__(self, "k", np.asarray(self.k, dtype=float).ravel())
        object.__setattr__(self, "data", data)

    @property
    def size(self) -> int:
        """Number of vectors spanning the space."""
        return self.data.shape[1]

    def modes(self) -> List[Eigenmode]:
        return [
            Eigenmode(self.k, np.nan, self.data[:, n], self.weighting, self.basis, self.label)
            for n in range(self.size)
        ]

    def rotated(self, U: np.ndarray) -> "HilbertSpace":
        """Same space, new frame data @ U."""
        return replace(self, data=self.data @ U)


State = Union[Eigenmode, HilbertSpace]


def Eigenspace(modes: Sequence[Eigenmode], label: str = "") -> HilbertSpace:
    """
    Orthonormalised HilbertSpace spanned by `modes`.

    All modes must share the same k, basis and weighting.
    """
    modes = list(modes)
    if not modes:
        raise ValueError("An Eigenspace needs at least one mode.")
    first = modes[0]
    for mode in modes[1:]:
        _check_compatible(first, mode)
        if not np.allclose(first.k, mode.k):
            raise ValueError(f"Modes at different k cannot form an Eigenspace: {first.k} vs {mode.k}.")
    data = np.stack([mode.data for mode in modes], axis=1)
    data = orthonormalise(data, first.weighting)
    return HilbertSpace(first.k, data, first.weighting, first.basis, label or first.label)


# ----------------------------------------------------------------------
# Inner products
# ----------------------------------------------------------------------

def _check_compatible(a: State, b: State) -> None:
    if not a.basis.same_as(b.basis):
        raise ValueError("Cannot compare states expressed in different plane-wave bases.")
    if a.weighting is b.weighting:
        return
    if np.shape(a.weighting) != np.shape(b.weighting) or not np.allclose(a.weighting, b.weighting):
        raise ValueError("Cannot compare states with different weightings (different solvers or polarisations).")


def overlap(a: Eigenmode, b: Eigenmode) -> complex:
    """Weighted inner product <a|b> = a† W b."""
    _check_compatible(a, b)
    return complex(np.vdot(a.data, b.weighting @ b.data))


def overlaps(a: HilbertSpace, b: HilbertSpace) -> np.ndarray:
    """Matrix of weighted inner products O[m,n] = <a_m|b_n>."""
    _check_compatible(a, b)
    return a.data.conj().T @ b.weighting @ b.data


# ----------------------------------------------------------------------
# Transformations
# ----------------------------------------------------------------------

def _relabel(
    basis: PlaneWaveBasis,
    k: np.ndarray,
    k_map: Callable[[np.ndarray], np.ndarray],
    translation: Optional[np.ndarray] = None,
    tol: float = 1e-6,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Plane-wave relabelling induced by an affine k-map.

    The map is split into its linear part L(x) = k_map(x) - k_map(0) and the
    reciprocal lattice vector k_map(0). The plane wave k + G_i goes to
    L(k + G_i), which is re-expressed relative to the new wavevector
    k' = k_map(k) as k' + G'_j.

    Returns
    -------
    k_new : (2,)
    src, dst : index arrays, coefficient src[n] moves to dst[n]
    phases : (len(dst),) phase factors exp(-i (k' + G'_j)·τ) (ones if no translation)
    """
    k = np.asarray(k, dtype=float)
    offset = np.asarray(k_map(np.zeros(2)), dtype=float)
    if not basis.is_reciprocal_vector(offset, tol=tol):
        raise ValueError(f"k_map(0) = {offset} is not a reciprocal lattice vector; k_map must be a lattice symmetry.")
    k_new = np.asarray(k_map(k), dtype=float)

    src, dst = [], []
    for i, K in enumerate(k[None, :] + basis.ks):
        G_new = np.asarray(k_map(K), dtype=float) - offset - k_new
        pq = basis.integer_coords(G_new, tol=tol)
        if pq is None:
            raise ValueError(f"k_map sends plane wave {basis.pq[i]} off the reciprocal lattice.")
        j = basis.index_pq(*pq)
        if j is None:
            continue  # truncated away
        src.append(i)
        dst.append(j)
    src = np.asarray(src, dtype=int)
    dst = np.asarray(dst, dtype=int)

    if translation is None:
        phases = np.ones(dst.shape[0], dtype=complex)
    else:
        tau = np.asarray(translation, dtype=float).ravel()
        phases = np.exp(-1j * ((k_new[None, :] + basis.ks[dst]) @ tau))
    return k_new, src, dst, phases


def transform(
    state: State,
    k_map: Callable[[np.ndarray], np.ndarray],
    translation: Optional[np.ndarray] = None,
) -> State:
    """
    Transform a mode (or every vector of a space) under an affine k-map.

    Examples
    --------
    Shift by a reciprocal lattice vector (same field, new label k + b):

        transform(mode, lambda k: k + basis.b1)

    Rotate by the 2x2 matrix R (field rotated with the crystal):

        transform(mode, lambda k: R @ k)

    The weighting of the result is the weighting of the input: the k-map is
    assumed to be a symmetry of the crystal, under which the (k-independent)
    convolution matrices are invariant. Coefficients mapped outside the
    truncated basis are dropped.
    """
    k_new, src, dst, phases = _relabel(state.basis, state.k, k_map, translation)
    data = np.zeros_like(state.data)
    data[dst, ...] = phases.reshape((-1,) + (1,) * (state.data.ndim - 1)) * state.data[src, ...]
    return replace(state, k=k_new, data=data)


def get_field(mode: Eigenmode, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
    """
    Real-space Bloch field sum_i c_i exp(i (k + G_i)·r) at points (xs, ys).

    The field component is the one the polarisation decomposes (H_z for TE,
    E_z for TM); see `mode.label`.
    """
    xs = np.asarray(xs, dtype=float)
    ys = np.asarray(ys, dtype=float)
    kx = mode.k[0] + mode.basis.kxs
    ky = mode.k[1] + mode.basis.kys
    phase = np.exp(1j * (np.multiply.outer(xs, kx) + np.multiply.outer(ys, ky)))
    return phase @ mode.data
