"""
Reciprocal lattice, plane-wave truncation and Brillouin-zone coordinates.

Fields are expanded in plane waves labelled by reciprocal lattice vectors
G = p b1 + q b2 (with a finite truncation).

This module constructs:
- the reciprocal basis (b1,b2) from the real-space lattice vectors
- the truncated integer lattice (p,q), either in a circle or a rhombus
- mapping from (p,q) <-> linear index

The order of (p,q) fixed here is the coefficient ordering of every mode
built from the basis.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from typing import Dict, Optional, Tuple, Union

import numpy as np

from .utils import as_to_bs, bs_to_as


@dataclass(frozen=True, eq=False)
class PlaneWaveBasis:
    b1: np.ndarray        # (2,)
    b2: np.ndarray        # (2,)
    ps: np.ndarray        # (N,) int
    qs: np.ndarray        # (N,) int
    kxs: np.ndarray = field(init=False)
    kys: np.ndarray = field(init=False)
    index_of: Dict[Tuple[int, int], int] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        b1 = np.asarray(self.b1, dtype=float).ravel()
        b2 = np.asarray(self.b2, dtype=float).ravel()
        ps = np.asarray(self.ps, dtype=int).ravel()
        qs = np.asarray(self.qs, dtype=int).ravel()
        if b1.shape != (2,) or b2.shape != (2,):
            raise ValueError("b1 and b2 must be 2-vectors.")
        if ps.shape != qs.shape:
            raise ValueError(f"ps and qs must have equal length, got {ps.size} and {qs.size}.")
        object.__setattr__(self, "b1", b1)
        object.__setattr__(self, "b2", b2)
        object.__setattr__(self, "ps", ps)
        object.__setattr__(self, "qs", qs)
        object.__setattr__(self, "kxs", ps * b1[0] + qs * b2[0])
        object.__setattr__(self, "kys", ps * b1[1] + qs * b2[1])

        index_of: Dict[Tuple[int, int], int] = {}
        for idx, (p, q) in enumerate(zip(ps, qs)):
            key = (int(p), int(q))
            if key in index_of:
                raise ValueError(f"Plane wave {key} appears twice in the basis.")
            index_of[key] = idx
        object.__setattr__(self, "index_of", index_of)

    @property
    def size(self) -> int:
        return self.ps.shape[0]

    def __len__(self) -> int:
        return self.size

    @cached_property
    def ks(self) -> np.ndarray:
        """(N,2) cartesian plane-wave vectors."""
        return np.stack([self.kxs, self.kys], axis=1)

    @cached_property
    def pq(self) -> np.ndarray:
        """(N,2) integer labels."""
        return np.stack([self.ps, self.qs], axis=1)

    @cached_property
    def a1a2(self) -> Tuple[np.ndarray, np.ndarray]:
        return bs_to_as(self.b1, self.b2)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    @staticmethod
    def circular(a1: np.ndarray, a2: np.ndarray, cutoff: int) -> "PlaneWaveBasis":
        """
        Plane waves truncated in a circle of diameter `cutoff` Brillouin zones.

        Increasing the `cutoff` increases the number of plane waves. It is
        assumed that |b1| == |b2|.
        """
        if int(cutoff) != cutoff or int(cutoff) % 2 != 1:
            raise ValueError(f"cutoff must be an odd integer, got {cutoff}.")
        cutoff = int(cutoff)
        b1, b2 = as_to_bs(a1, a2)
        if not np.isclose(np.linalg.norm(b1), np.linalg.norm(b2)):
            raise ValueError(
                f"Circular truncation needs |b1| == |b2|, got {np.linalg.norm(b1):.6g} "
                f"and {np.linalg.norm(b2):.6g}; use the rhombic truncation instead."
            )
        radius = np.linalg.norm(b1) * cutoff / 2
        ps, qs = [], []
        for p in range(-cutoff, cutoff + 1):
            for q in range(-cutoff, cutoff + 1):
                k = p * b1 + q * b2
                if np.linalg.norm(k) <= radius:
                    ps.append(p)
                    qs.append(q)
        return PlaneWaveBasis(b1, b2, np.array(ps, int), np.array(qs, int))

    @staticmethod
    def rhombic(a1: np.ndarray, a2: np.ndarray, cutoff_b1: int, cutoff_b2: int) -> "PlaneWaveBasis":
        """
        Plane waves truncated in a rhombus with side lengths `cutoff_b1` and
        `cutoff_b2` in the b1 and b2 directions.
        """
        for name, value in (("cutoff_b1", cutoff_b1), ("cutoff_b2", cutoff_b2)):
            if int(value) != value or int(value) % 2 != 1:
                raise ValueError(f"{name} must be an odd integer, got {value}.")
        P = int(cutoff_b1) // 2
        Q = int(cutoff_b2) // 2
        pp, qq = np.meshgrid(np.arange(-P, P + 1), np.arange(-Q, Q + 1), indexing="ij")
        b1, b2 = as_to_bs(a1, a2)
        return PlaneWaveBasis(b1, b2, pp.ravel(), qq.ravel())

    # ------------------------------------------------------------------
    # Coordinates
    # ------------------------------------------------------------------
    def frac_coords(self, k_cart: np.ndarray) -> np.ndarray:
        """
        Convert k from cartesian to fractional coordinates (k = k1 b1 + k2 b2).
        """
        a1, a2 = self.a1a2
        k_cart = np.asarray(k_cart, dtype=float)
        return np.stack([k_cart @ a1, k_cart @ a2], axis=-1) / (2 * np.pi)

    def cart_coords(self, k_frac: np.ndarray) -> np.ndarray:
        """Convert fractional coordinates to cartesian."""
        k_frac = np.asarray(k_frac, dtype=float)
        return k_frac[..., 0:1] * self.b1 + k_frac[..., 1:2] * self.b2

    def integer_coords(self, k_cart: np.ndarray, tol: float = 1e-6) -> Optional[np.ndarray]:
        """Integer (p,q) of a reciprocal lattice vector, or None if `k_cart` is not one."""
        frac = self.frac_coords(k_cart)
        rounded = np.rint(frac)
        if not np.allclose(frac, rounded, atol=tol):
            return None
        return rounded.astype(int)

    def is_reciprocal_vector(self, k_cart: np.ndarray, tol: float = 1e-6) -> bool:
        return self.integer_coords(k_cart, tol=tol) is not None

    def index_pq(self, p: int, q: int) -> Optional[int]:
        """Linear index of plane wave (p,q), or None if truncated away."""
        return self.index_of.get((int(p), int(q)))

    def same_as(self, other: "PlaneWaveBasis") -> bool:
        """True if both bases label the same plane waves in the same order."""
        if self is other:
            return True
        return (
            self.size == other.size
            and np.array_equal(self.ps, other.ps)
            and np.array_equal(self.qs, other.qs)
            and np.allclose(self.b1, other.b1)
            and np.allclose(self.b2, other.b2)
        )


@dataclass(frozen=True)
class BrillouinZoneCoordinate:
    """
    A labelled coordinate in the Brillouin zone.

    `p` and `q` are the coefficients of the reciprocal lattice vectors b1 and
    b2, so `BrillouinZoneCoordinate(0.5, 0)` is on the edge of the first
    Brillouin zone. The cartesian k-vector is given by `get_k(coord, basis)`.
    """
    p: float
    q: float
    label: str = ""


KPoint = Union[np.ndarray, Tuple[float, float], BrillouinZoneCoordinate]


def get_k(coord: KPoint, basis: PlaneWaveBasis) -> np.ndarray:
    """
    Cartesian k of a BrillouinZoneCoordinate in a particular basis,
    k = p*b1 + q*b2. Cartesian 2-vectors are passed through.
    """
    if isinstance(coord, BrillouinZoneCoordinate):
        return coord.p * basis.b1 + coord.q * basis.b2
    k = np.asarray(coord, dtype=float).ravel()
    if k.shape != (2,):
        raise ValueError(f"k must be a 2-vector, got shape {k.shape}.")
    return k
