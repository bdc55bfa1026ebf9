from __future__ import annotations

import numpy as np
import pytest

from conftest import make_wu_geometry
from phc_topology import (Eigenspace, Solver, match_eigvals, overlaps, solve, transform,
                          unitary_overlaps, wilson_eigvals, wilson_gauge, wilson_loop_winding, wilson_matrix)


def _random_unitary(rng, n):
    Q, R = np.linalg.qr(rng.normal(size=(n, n)) + 1j * rng.normal(size=(n, n)))
    return Q * (np.diag(R) / np.abs(np.diag(R)))


@pytest.fixture(scope="module")
def small_loop(wu_topo):
    """Bands 1-3 around a small square, closed on its starting point."""
    k0 = np.array([0.3, 0.2])
    ks = [k0, k0 + [0.1, 0.0], k0 + [0.1, 0.1], k0 + [0.0, 0.1]]
    spaces = [Eigenspace(solve(wu_topo.solver, k, wu_topo.polarisation)[:3]) for k in ks]
    return spaces + [spaces[0]]


def test_parallel_transport_gauge(small_loop):
    vals, vecs, gauge = wilson_gauge(small_loop)
    assert len(gauge) == len(small_loop)
    assert np.allclose(np.abs(vals), 1)
    assert np.allclose(vecs.conj().T @ vecs, np.eye(3))
    # adjacent frames are parallel transported ...
    for a, b in zip(gauge[:-1], gauge[1:]):
        assert np.allclose(unitary_overlaps(a, b), np.eye(3))
    # ... and the loop closes with the Wilson-loop eigenvalues
    assert np.allclose(overlaps(gauge[-1], gauge[0]), np.diag(vals))


def test_gauge_eigvals_match_wilson_matrix(small_loop):
    vals, _, _ = wilson_gauge(small_loop)
    W = wilson_matrix(small_loop)
    assert np.allclose(W.conj().T @ W, np.eye(3))
    assert match_eigvals(vals, wilson_eigvals(small_loop), tol_percent=0.01)


def test_gauge_invariance(small_loop, rng):
    U = _random_unitary(rng, 3)
    first = small_loop[0].rotated(U)
    rotated = [first] + small_loop[1:-1] + [first]
    assert match_eigvals(wilson_eigvals(rotated), wilson_eigvals(small_loop), tol_percent=0.01)


def test_trivial_loop(small_loop):
    space = small_loop[0]
    assert np.allclose(wilson_eigvals([space, space]), 1)
    vals, _, gauge = wilson_gauge([space, space])
    assert np.allclose(vals, 1)
    assert len(gauge) == 2


def test_loop_errors(wu_topo, small_loop):
    with pytest.raises(ValueError):
        wilson_eigvals(small_loop[:1])
    # open loop
    with pytest.raises(ValueError):
        wilson_eigvals(small_loop[:-1])
    # mismatched dimensions
    two_bands = Eigenspace(solve(wu_topo.solver, small_loop[1].k, wu_topo.polarisation)[:2])
    with pytest.raises(ValueError):
        wilson_gauge([small_loop[0], two_bands, small_loop[0]])


def test_loop_closing_on_reciprocal_vector(wu_topo):
    solver, polarisation = wu_topo.solver, wu_topo.polarisation
    b2 = solver.basis.b2
    k0 = 0.5 * solver.basis.b1
    ts = np.linspace(0, 1, 20)
    spaces = [Eigenspace(solve(solver, k0 + t * b2, polarisation)[:1]) for t in ts]
    vals = wilson_eigvals(spaces)
    assert np.isclose(abs(vals[0]), 1)
    # C2 symmetry quantises the Berry phase along this line to 0 or π
    assert abs(vals[0].imag) < 1e-2

    # the closing space only fixes the end point of the loop
    shifted = transform(spaces[0], lambda k: k + b2)
    assert np.allclose(shifted.k, spaces[-1].k)
    assert np.isclose(wilson_eigvals(spaces[:-1] + [shifted])[0], vals[0])


@pytest.mark.parametrize(
    "shift, factor",
    [
        ((0.0, 0.25), -1j),
        ((0.0, 0.5), -1.0),
        ((0.25, 0.0), 1.0),
    ],
)
def test_translated_crystal_wilson_spectrum(wu_topo, shift, factor):
    # translating the crystal by τ multiplies a loop along b2 by exp(-i b2·τ)
    def band_one_loop(solver):
        k0 = 0.5 * solver.basis.b1
        ks = [k0 + t * solver.basis.b2 for t in np.linspace(0, 1, 20)]
        return wilson_eigvals([Eigenspace(solve(solver, k, wu_topo.polarisation)[:1]) for k in ks])

    vals = band_one_loop(wu_topo.solver)
    translated = Solver(make_wu_geometry(shift=shift), 11)
    translated_vals = band_one_loop(translated)
    assert np.isclose(translated_vals[0], factor * vals[0], atol=1e-3)
    # the reference loop is real, so the translated spectrum is pinned to ±factor
    assert match_eigvals(translated_vals, [factor * np.sign(vals[0].real)])


def test_wilson_loop_winding(wu_topo, capsys):
    dists, phases = wilson_loop_winding(
        wu_topo.solver, [wu_topo.G, wu_topo.M], wu_topo.polarisation, bands=[1, 2],
        n_outer=2, n_inner=4, verbose=True,
    )
    assert dists.shape == (3,)
    assert phases.shape == (3, 2)
    assert dists[0] == 0 and np.all(np.diff(dists) > 0)
    assert np.isclose(dists[-1], np.linalg.norm(0.5 * wu_topo.solver.basis.b2))
    assert np.all(np.diff(phases, axis=1) >= 0)
    assert np.all(np.abs(phases) <= np.pi + 1e-12)
    assert "Wilson loop 3/3" in capsys.readouterr().out

    with pytest.raises(ValueError):
        wilson_loop_winding(wu_topo.solver, [wu_topo.G], wu_topo.polarisation, bands=slice(0, 1))
    with pytest.raises(ValueError):
        wilson_loop_winding(wu_topo.solver, [wu_topo.G, wu_topo.M], wu_topo.polarisation,
                            bands=slice(0, 1), n_inner=1)
