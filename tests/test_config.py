from __future__ import annotations

import numpy as np
import pytest

from phc_topology import GridParameters, Solver, SolverParameters, Geometry, solve


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(cutoff=4),
        dict(cutoff=None),
        dict(cutoff=7, cutoff_b1=3, cutoff_b2=5),
        dict(cutoff=None, cutoff_b1=3, cutoff_b2=4),
        dict(cutoff=None, cutoff_b1=3),
        dict(polarisation="XY"),
    ],
)
def test_invalid_solver_parameters(kwargs):
    with pytest.raises(ValueError):
        SolverParameters(**kwargs).validate()


def test_valid_solver_parameters():
    SolverParameters().validate()
    params = SolverParameters(cutoff=None, cutoff_b1=3, cutoff_b2=5, polarisation="TE")
    params.validate()
    assert not params.is_circular


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(d1=0.0),
        dict(d2=-0.1),
        dict(a1=(1.0, 0.0), a2=(2.0, 0.0)),
        dict(a1=(1.0, 0.0, 0.0)),
    ],
)
def test_invalid_grid_parameters(kwargs):
    with pytest.raises(ValueError):
        GridParameters(**kwargs).validate()


def test_parameters_json_roundtrip(tmp_path):
    grid = GridParameters(a1=(1.0, 0.0), a2=(-0.5, np.sqrt(3) / 2), d1=0.02, d2=0.02)
    solver = SolverParameters(cutoff=None, cutoff_b1=5, cutoff_b2=3, polarisation="TE")
    grid.to_json(str(tmp_path / "grid.json"))
    solver.to_json(str(tmp_path / "solver.json"))
    assert GridParameters.from_json(str(tmp_path / "grid.json")) == grid
    assert SolverParameters.from_json(str(tmp_path / "solver.json")) == solver


def test_solver_from_parameters():
    geometry = Geometry.from_parameters(lambda x, y: 2.0, lambda x, y: 1.0, GridParameters(d1=0.05, d2=0.05))
    assert geometry.shape == (20, 20)

    solver = Solver.from_parameters(geometry, SolverParameters(cutoff=None, cutoff_b1=3, cutoff_b2=5))
    assert solver.basis.size == 15

    solver = Solver.from_parameters(geometry, SolverParameters(cutoff=3))
    assert solver.basis.size == 9

    with pytest.raises(ValueError):
        Solver.from_parameters(geometry, SolverParameters(cutoff=2))


@pytest.mark.parametrize("polarisation, label", [("TE", "H_z"), ("TM", "E_z")])
def test_polarisation_is_passed_on_to_solve(tmp_path, polarisation, label):
    path = str(tmp_path / "solver.json")
    SolverParameters(cutoff=3, polarisation=polarisation).to_json(path)
    params = SolverParameters.from_json(path)
    geometry = Geometry.from_parameters(lambda x, y: 2.0, lambda x, y: 1.0, GridParameters(d1=0.05, d2=0.05))
    solver = Solver.from_parameters(geometry, params)
    modes = solve(solver, [1.0, 0.0], params.polarisation)
    assert modes[0].label == label
    assert np.isclose(modes[0].eigenvalue, 1 / np.sqrt(2.0))
