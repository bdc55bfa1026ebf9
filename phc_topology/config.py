"""
Configuration and parameter objects.

This module is intentionally "dumb": it only defines dataclasses and light
validation. No physics is computed here.

Design goals
------------
- Avoid hidden globals: a run is fully described by a GridParameters (how the
  unit cell is sampled) and a SolverParameters (how k-space is truncated).
- Make runs reproducible: parameters can be saved/loaded as JSON.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Tuple
import json

import numpy as np


POLARISATIONS = ("TE", "TM")


def _is_odd(n: Optional[int]) -> bool:
    return n is not None and int(n) == n and int(n) % 2 == 1


@dataclass(frozen=True)
class GridParameters:
    """
    Real-space description of the unit cell.

    Notes on units
    --------------
    Lengths are in units of the lattice constant; frequencies returned by the
    solver are then angular frequencies with c = 1.
    """
    a1: Tuple[float, float] = (1.0, 0.0)
    a2: Tuple[float, float] = (0.0, 1.0)
    # sampling resolution along a1 and a2 (real-space length per sample)
    d1: float = 0.01
    d2: float = 0.01

    def validate(self) -> None:
        if len(self.a1) != 2 or len(self.a2) != 2:
            raise ValueError("Lattice vectors must be 2-vectors.")
        if self.d1 <= 0 or self.d2 <= 0:
            raise ValueError("Grid resolution d1, d2 must be positive.")
        a1 = np.asarray(self.a1, float)
        a2 = np.asarray(self.a2, float)
        if abs(a1[0] * a2[1] - a1[1] * a2[0]) < 1e-12:
            raise ValueError("Lattice vectors a1, a2 are degenerate.")

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["a1"] = [float(x) for x in self.a1]
        d["a2"] = [float(x) for x in self.a2]
        return d

    def to_json(self, path: str) -> None:
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2, sort_keys=True)

    @staticmethod
    def from_json(path: str) -> "GridParameters":
        with open(path, "r") as f:
            d = json.load(f)
        d["a1"] = tuple(d["a1"])
        d["a2"] = tuple(d["a2"])
        return GridParameters(**d)


@dataclass(frozen=True)
class SolverParameters:
    """
    Parameters controlling the plane-wave truncation and the polarisation.

    Exactly one truncation policy must be given:
    - `cutoff`: circle of diameter `cutoff` Brillouin zones (needs |b1| == |b2|)
    - `cutoff_b1`, `cutoff_b2`: rhombus with these side lengths
    All cutoffs must be odd so the truncation is symmetric about the origin.

    `polarisation` is run metadata: a Solver serves both polarisations, so
    callers pass it on to `solve` / `solve_kpoints` themselves.
    """
    cutoff: Optional[int] = 7
    cutoff_b1: Optional[int] = None
    cutoff_b2: Optional[int] = None
    polarisation: str = "TM"

    @property
    def is_circular(self) -> bool:
        return self.cutoff is not None

    def validate(self) -> None:
        rhombic = (self.cutoff_b1 is not None) or (self.cutoff_b2 is not None)
        if self.is_circular == rhombic:
            raise ValueError("Specify either `cutoff` or both `cutoff_b1` and `cutoff_b2`.")
        if self.is_circular:
            if not _is_odd(self.cutoff):
                raise ValueError(f"cutoff must be an odd integer, got {self.cutoff}.")
        else:
            for name in ("cutoff_b1", "cutoff_b2"):
                value = getattr(self, name)
                if not _is_odd(value):
                    raise ValueError(f"{name} must be an odd integer, got {value}.")
        if self.polarisation not in POLARISATIONS:
            raise ValueError(
                f"Unknown polarisation '{self.polarisation}'. Allowed values: {list(POLARISATIONS)}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self, path: str) -> None:
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2, sort_keys=True)

    @staticmethod
    def from_json(path: str) -> "SolverParameters":
        with open(path, "r") as f:
            d = json.load(f)
        return SolverParameters(**d)
