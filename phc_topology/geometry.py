"""
Unit-cell geometry and Fourier convolution matrices.

A Geometry samples the permittivity ε(x,y) and permeability μ(x,y) of one
unit cell on a grid of fractional positions

    r_ij = s_i a1 + t_j a2,   s_i = i/n1,  t_j = j/n2,

wrapped into [-1/2, 1/2) so that the origin is always a sample point. Grid
index (i, j) therefore corresponds to fractional position (i/n1, j/n2) modulo
the lattice, which is what the 2D FFT in `convmat` assumes.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Tuple

import numpy as np

from .config import GridParameters
from .lattice import PlaneWaveBasis
from .utils import as_to_bs

MaterialFunction = Callable[[np.ndarray, np.ndarray], np.ndarray]


def _samples(length: float, d: float) -> int:
    return max(1, int(round(length / d)))


def _fractional_grid(n: int) -> np.ndarray:
    s = np.arange(n) / n
    return (s + 0.5) % 1.0 - 0.5


def _evaluate(func: MaterialFunction, xs: np.ndarray, ys: np.ndarray, name: str) -> np.ndarray:
    """Evaluate a material function on coordinate arrays; scalars broadcast."""
    values = np.asarray(func(xs, ys), dtype=complex)
    if values.shape == ():
        return np.full(xs.shape, complex(values))
    if values.shape != xs.shape:
        try:
            values = np.broadcast_to(values, xs.shape).copy()
        except ValueError:
            raise ValueError(
                f"{name}(x, y) returned shape {values.shape}, expected {xs.shape}."
            ) from None
    return values


@dataclass(frozen=True, eq=False)
class Geometry:
    """
    Permittivity and permeability of a 2D unit cell.

    Parameters
    ----------
    epf, muf : callables f(x, y) -> value
        Evaluated once on arrays of cartesian coordinates. They must return
        an array of the same shape or a scalar.
    a1, a2 : real-space lattice vectors
    d1, d2 : sampling resolution along a1 and a2
    """
    epf: MaterialFunction
    muf: MaterialFunction
    a1: np.ndarray
    a2: np.ndarray
    d1: float
    d2: float
    ep: np.ndarray = field(init=False, repr=False)
    mu: np.ndarray = field(init=False, repr=False)
    xs: np.ndarray = field(init=False, repr=False)
    ys: np.ndarray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        a1 = np.asarray(self.a1, dtype=float).ravel()
        a2 = np.asarray(self.a2, dtype=float).ravel()
        as_to_bs(a1, a2)  # raises on degenerate lattice vectors
        if self.d1 <= 0 or self.d2 <= 0:
            raise ValueError("Grid resolution d1, d2 must be positive.")
        object.__setattr__(self, "a1", a1)
        object.__setattr__(self, "a2", a2)

        n1 = _samples(np.linalg.norm(a1), self.d1)
        n2 = _samples(np.linalg.norm(a2), self.d2)
        s, t = np.meshgrid(_fractional_grid(n1), _fractional_grid(n2), indexing="ij")
        xs = s * a1[0] + t * a2[0]
        ys = s * a1[1] + t * a2[1]
        object.__setattr__(self, "xs", xs)
        object.__setattr__(self, "ys", ys)
        object.__setattr__(self, "ep", _evaluate(self.epf, xs, ys, "epf"))
        object.__setattr__(self, "mu", _evaluate(self.muf, xs, ys, "muf"))

    @staticmethod
    def from_parameters(epf: MaterialFunction, muf: MaterialFunction, grid: GridParameters) -> "Geometry":
        grid.validate()
        return Geometry(epf, muf, np.asarray(grid.a1, float), np.asarray(grid.a2, float), grid.d1, grid.d2)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.ep.shape

    @property
    def reciprocal_vectors(self) -> Tuple[np.ndarray, np.ndarray]:
        return as_to_bs(self.a1, self.a2)

    def matches(self, basis: PlaneWaveBasis, tol: float = 1e-8) -> bool:
        """True if `basis` was built from this geometry's lattice vectors."""
        b1, b2 = self.reciprocal_vectors
        return bool(np.allclose(b1, basis.b1, atol=tol) and np.allclose(b2, basis.b2, atol=tol))


def convmat(data: np.ndarray, basis: PlaneWaveBasis) -> np.ndarray:
    """
    Convolution matrix of a sampled unit-cell field.

    Returns C with C[i,j] = f_hat(G_i - G_j), the Fourier coefficient of the
    field at the difference of plane waves i and j, i.e. the matrix of
    "multiply by f" in the plane-wave basis.

    Parameters
    ----------
    data : (n1, n2) field sampled at fractional positions (i/n1, j/n2)
    basis : PlaneWaveBasis
    """
    data = np.asarray(data, dtype=complex)
    if data.ndim != 2:
        raise ValueError(f"data must be a 2D array, got shape {data.shape}.")
    n1, n2 = data.shape
    dft = np.fft.fft2(data) / (n1 * n2)

    dp = np.subtract.outer(basis.ps, basis.ps)
    dq = np.subtract.outer(basis.qs, basis.qs)
    # dp and dp - n1 share an FFT bin, so differences must fit in (-n/2, n/2)
    if dp.size and (2 * np.abs(dp).max() >= n1 or 2 * np.abs(dq).max() >= n2):
        raise ValueError(
            f"Sampling grid {data.shape} is too coarse for the plane-wave basis "
            f"(needs more than {2 * np.abs(dp).max()} x {2 * np.abs(dq).max()} samples)."
        )
    return dft[dp % n1, dq % n2]
