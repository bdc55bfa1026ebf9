"""
phc_topology: plane-wave expansion of 2D photonic crystals + topological invariants.

Modules:
- config: parameter dataclasses (grid sampling, plane-wave truncation)
- utils: reciprocal lattices, diagonal operators, weighted orthonormalisation
- lattice: plane-wave basis and Brillouin-zone coordinates
- geometry: sampled permittivity/permeability and convolution matrices
- solver: TE/TM generalized eigenproblems
- eigenmode: eigenmodes, Hilbert spaces, overlaps and k-space transforms
- symmetry: symmetry operators and symmetry eigenvalues
- wilson: Wilson loops and the parallel-transport gauge
"""
from .config import GridParameters, SolverParameters
from .utils import as_to_bs, bs_to_as, DiagonalMatrix, normalise, orthonormalise, unitary_approx
from .lattice import PlaneWaveBasis, BrillouinZoneCoordinate, get_k
from .geometry import Geometry, convmat
from .solver import Polarisation, TE, TM, Solver, solve, solve_kpoints
from .eigenmode import Eigenmode, HilbertSpace, Eigenspace, overlap, overlaps, transform, get_field
from .symmetry import (SymmetryOperator, identity, C2, C3, C4, C6, mirror_x, mirror_y, inversion,
                       symmetry_transform, symmetry_eigenmodes, symmetry_eigvals, match_eigvals)
from .wilson import (unitary_overlaps, wilson_matrix, wilson_gauge, wilson_eigvals,
                     wilson_loop_winding)

__all__ = [
    "GridParameters", "SolverParameters",
    "as_to_bs", "bs_to_as", "DiagonalMatrix", "normalise", "orthonormalise", "unitary_approx",
    "PlaneWaveBasis", "BrillouinZoneCoordinate", "get_k",
    "Geometry", "convmat",
    "Polarisation", "TE", "TM", "Solver", "solve", "solve_kpoints",
    "Eigenmode", "HilbertSpace", "Eigenspace", "overlap", "overlaps", "transform", "get_field",
    "SymmetryOperator", "identity", "C2", "C3", "C4", "C6", "mirror_x", "mirror_y", "inversion",
    "symmetry_transform", "symmetry_eigenmodes", "symmetry_eigvals", "match_eigvals",
    "unitary_overlaps", "wilson_matrix", "wilson_gauge", "wilson_eigvals",
    "wilson_loop_winding",
]
