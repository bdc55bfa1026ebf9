"""
Wilson loops (non-abelian Berry phases) of degenerate eigenspaces.

Given spaces S_1 ... S_n along a closed path in k-space, the overlap
matrices O_i = <S_i|S_{i+1}> are projected onto the nearest unitary
U_i = unitary_approx(O_i) and multiplied around the loop,

    W = U_1 U_2 ... U_{n-1}.

The eigenvalues of W lie on the unit circle and do not depend on the
gauge (the frames chosen for each S_i).

A loop may close on the starting point itself or on the starting point
shifted by a reciprocal lattice vector G (e.g. k0 -> k0 + b2). In both cases
the final space is replaced by the first space relabelled to k0 + G, so the
loop operator only depends on the first frame through conjugation.
"""
from __future__ import annotations

from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import scipy.linalg

from .eigenmode import Eigenspace, HilbertSpace, overlaps, transform
from .lattice import KPoint, get_k
from .solver import Polarisation, Solver, solve
from .utils import unitary_approx


def unitary_overlaps(a: HilbertSpace, b: HilbertSpace) -> np.ndarray:
    """Nearest unitary to the overlap matrix <a|b>."""
    return unitary_approx(overlaps(a, b))


def _closed_loop(spaces: Sequence[HilbertSpace]) -> List[HilbertSpace]:
    spaces = list(spaces)
    if len(spaces) < 2:
        raise ValueError("A Wilson loop needs at least two spaces (the last one closing the loop).")
    d = spaces[0].size
    for n, space in enumerate(spaces):
        if space.size != d:
            raise ValueError(f"All spaces must have the same dimension; space {n} has {space.size}, expected {d}.")
    first, last = spaces[0], spaces[-1]
    G = last.k - first.k
    if not first.basis.is_reciprocal_vector(G):
        raise ValueError(
            f"Loop is not closed: last k {last.k} differs from first k {first.k} by a non-reciprocal vector."
        )
    closing = transform(first, lambda k: k + G)
    return spaces[:-1] + [closing]


def wilson_matrix(spaces: Sequence[HilbertSpace]) -> np.ndarray:
    """Product of unitary overlaps around the closed loop."""
    loop = _closed_loop(spaces)
    W = np.eye(loop[0].size, dtype=complex)
    for a, b in zip(loop[:-1], loop[1:]):
        W = W @ unitary_overlaps(a, b)
    return W


def wilson_gauge(spaces: Sequence[HilbertSpace]) -> Tuple[np.ndarray, np.ndarray, List[HilbertSpace]]:
    """
    Wilson-loop eigenvalues and the parallel-transport gauge.

    Each frame is rotated so that the unitary overlap with the previous frame
    is the identity. Going round the loop the frames accumulate the Wilson
    loop W; finally all frames are rotated into the eigenbasis of W, so that

        unitary_overlaps(gauge[i], gauge[i+1]) ≈ I
        overlaps(gauge[-1], gauge[0]) ≈ diag(vals)    (loops closing on k0)

    Returns
    -------
    vals : (d,) Wilson-loop eigenvalues
    vecs : (d, d) unitary eigenvectors (columns), from the complex Schur form
    gauge : list of HilbertSpace, one per input space
    """
    loop = _closed_loop(spaces)
    gauge = [loop[0]]
    for space in loop[1:]:
        U = unitary_overlaps(gauge[-1], space)
        gauge.append(space.rotated(U.conj().T))
    # unitary_approx(V O) = V unitary_approx(O) for unitary V, so the rotation
    # needed at step i is the product U_1 ... U_i; at the last step it is W
    W = U

    # W is unitary (normal), so its Schur form is diagonal and Z is unitary
    # even when eigenvalues are degenerate
    T, Z = scipy.linalg.schur(W, output="complex")
    vals = np.diag(T).copy()
    gauge = [frame.rotated(Z) for frame in gauge]
    return vals, Z, gauge


def wilson_eigvals(spaces: Sequence[HilbertSpace]) -> np.ndarray:
    """Wilson-loop eigenvalues (on the unit circle)."""
    return scipy.linalg.eigvals(wilson_matrix(spaces))


def _band_indices(bands: Union[slice, Sequence[int]]) -> Union[slice, List[int]]:
    if isinstance(bands, slice):
        return bands
    return [int(b) for b in bands]


def _select(modes: list, bands: Union[slice, List[int]]) -> list:
    if isinstance(bands, slice):
        return modes[bands]
    return [modes[b] for b in bands]


def wilson_loop_winding(
    solver: Solver,
    ks: Sequence[KPoint],
    polarisation: Union[Polarisation, str],
    bands: Union[slice, Sequence[int]],
    n_outer: int = 10,
    n_inner: int = 20,
    inner_vector: Optional[np.ndarray] = None,
    *,
    verbose: bool = False,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Wilson-loop spectrum along an outer path.

    For every point k0 on the piecewise linear path through `ks`
    (`n_outer` points per segment), the Wilson loop of `bands` is computed
    along the straight inner path k0 -> k0 + `inner_vector` (default b2)
    sampled with `n_inner` points.

    Returns
    -------
    dists : (n_points,) cumulative distance along the outer path
    phases : (n_points, d) Wilson-loop eigen-phases in (-π, π], sorted
    """
    if n_outer < 1 or n_inner < 2:
        raise ValueError("n_outer must be >= 1 and n_inner >= 2.")
    basis = solver.basis
    bands = _band_indices(bands)
    inner = basis.b2 if inner_vector is None else np.asarray(inner_vector, dtype=float)
    corners = [get_k(k, basis) for k in ks]
    if len(corners) < 2:
        raise ValueError("The outer path needs at least two k-points.")

    outer = []
    for a, b in zip(corners[:-1], corners[1:]):
        for t in np.linspace(0, 1, n_outer, endpoint=False):
            outer.append((1 - t) * a + t * b)
    outer.append(corners[-1])
    outer = np.asarray(outer)
    dists = np.concatenate([[0.0], np.cumsum(np.linalg.norm(np.diff(outer, axis=0), axis=1))])

    phases = []
    for i, k0 in enumerate(outer):
        if verbose:
            print(f"Wilson loop {i + 1}/{len(outer)} at k = {k0}")
        spaces = [
            Eigenspace(_select(solve(solver, k0 + t * inner, polarisation), bands))
            for t in np.linspace(0, 1, n_inner)
        ]
        phases.append(np.sort(np.angle(wilson_eigvals(spaces))))
    return dists, np.asarray(phases)
