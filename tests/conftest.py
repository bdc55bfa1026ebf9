"""
Shared crystals for the test-suite.

- homogeneous media with random ε, μ on a square lattice
- a Wu & Hu (PRL 114, 223901, 2015) type crystal: triangular lattice of
  hexagonal clusters of six dielectric rods, expanded (R = a/2.9) so that
  it is in the topological phase; TM polarisation
"""
from __future__ import annotations

from types import SimpleNamespace

import numpy as np
import pytest

from phc_topology import BrillouinZoneCoordinate, Geometry, Solver, TM


def make_homogeneous(ep: float, mu: float, d: float = 0.01) -> Geometry:
    a1 = np.array([1.0, 0.0])
    a2 = np.array([0.0, 1.0])
    return Geometry(lambda x, y: ep, lambda x, y: mu, a1, a2, d, d)


def make_wu_geometry(R: float = 1 / 2.9, ep: float = 11.7, d: float = 0.01, shift=(0.0, 0.0)) -> Geometry:
    """Wu-Hu crystal, optionally translated by `shift` (fractional coordinates)."""
    a1 = np.array([1.0, 0.0])
    a2 = np.array([-0.5, np.sqrt(3) / 2])
    r = R / 3
    angles = np.arange(6) * np.pi / 3
    centres = [R * np.array([np.cos(t), np.sin(t)]) for t in angles]
    tau = shift[0] * a1 + shift[1] * a2
    images = [n1 * a1 + n2 * a2 for n1 in (-1, 0, 1) for n2 in (-1, 0, 1)]

    def epf(x, y):
        inside = np.zeros(np.shape(x), dtype=bool)
        for c in centres:
            for image in images:
                cx, cy = c + image + tau
                inside |= (x - cx) ** 2 + (y - cy) ** 2 < r ** 2
        return np.where(inside, ep, 1.0)

    return Geometry(epf, lambda x, y: 1.0, a1, a2, d, d)


@pytest.fixture(scope="session")
def wu_topo():
    geometry = make_wu_geometry()
    solver = Solver(geometry, 11)
    return SimpleNamespace(
        geometry=geometry,
        solver=solver,
        polarisation=TM,
        G=BrillouinZoneCoordinate(0.0, 0.0, "Γ"),
        K=BrillouinZoneCoordinate(1 / 3, 1 / 3, "K"),
        # b2/2 is symmetric under C2, mirror_x and mirror_y for this lattice
        M=BrillouinZoneCoordinate(0.0, 0.5, "M"),
    )


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
