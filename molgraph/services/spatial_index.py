"""Uniform 3-D grid bucketing for neighbor queries."""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from molgraph.config import SPATIAL_CELL_SIZE
from molgraph.model.state import Atom

CellKey = Tuple[int, int, int]


def atom_coordinates(atoms: Sequence[Atom]) -> np.ndarray:
    """Return an ``(n, 3)`` float array of atom coordinates."""
    return np.array([(atom.x, atom.y, atom.z) for atom in atoms], dtype=float).reshape(-1, 3)


@dataclass(frozen=True, eq=False)
class SpatialHashGrid:
    """Atoms bucketed by ``floor(coordinate / cell_size)`` per axis.

    The grid is a value: it is built from one atom sequence and never
    updated. Build a new grid when coordinates change.

    Attributes
    ----------
    cell_size
        Edge length of a cubic cell in Angstroms.
    coords
        ``(n, 3)`` coordinate array the grid was built from.
    cell_keys
        Cell key of every atom, by atom index.
    cells
        Atom indices per occupied cell, in ascending order.
    """

    cell_size: float
    coords: np.ndarray
    cell_keys: Tuple[CellKey, ...]
    cells: Dict[CellKey, Tuple[int, ...]]

    @classmethod
    def build(
        cls, atoms: Sequence[Atom], cell_size: float = SPATIAL_CELL_SIZE
    ) -> "SpatialHashGrid":
        """Bucket atoms into a new grid.

        Parameters
        ----------
        atoms
            Atoms to index; positions in the sequence are the indices
            returned by queries.
        cell_size
            Cell edge length in Angstroms.

        Returns
        -------
        SpatialHashGrid
            Grid over ``atoms``.

        Raises
        ------
        ValueError
            If ``cell_size`` is not positive.
        """

        if not cell_size > 0:
            raise ValueError(f"cell_size must be positive, got {cell_size}")
        coords = atom_coordinates(atoms)
        keys = np.floor(coords / cell_size).astype(np.int64)
        cell_keys = tuple(tuple(row) for row in keys.tolist())
        buckets: Dict[CellKey, List[int]] = {}
        for index, key in enumerate(cell_keys):
            buckets.setdefault(key, []).append(index)
        cells = {key: tuple(members) for key, members in buckets.items()}
        return cls(cell_size=float(cell_size), coords=coords, cell_keys=cell_keys, cells=cells)

    def __len__(self) -> int:
        return len(self.cell_keys)

    def neighbors(self, atom_index: int, radius: Optional[float] = None) -> List[int]:
        """Return candidate neighbors of an atom.

        Parameters
        ----------
        atom_index
            Index of the query atom.
        radius
            Search radius; defaults to one cell. The atom's cell and
            ``ceil(radius / cell_size)`` cells in every direction are scanned.
            A non-finite radius scans one cell.

        Returns
        -------
        list of int
            Indices of atoms in the scanned cells, excluding the query atom.
            No distance filter is applied, so callers must check distances.
            Empty for an out-of-range index.
        """

        if atom_index < 0 or atom_index >= len(self.cell_keys):
            return []
        reach = 1
        if radius is not None and math.isfinite(radius):
            reach = max(1, int(math.ceil(radius / self.cell_size)))
        cx, cy, cz = self.cell_keys[atom_index]
        found: List[int] = []
        for dx in range(-reach, reach + 1):
            for dy in range(-reach, reach + 1):
                for dz in range(-reach, reach + 1):
                    members = self.cells.get((cx + dx, cy + dy, cz + dz))
                    if not members:
                        continue
                    found.extend(index for index in members if index != atom_index)
        return found

    def neighbors_at(self, x: float, y: float, z: float, radius: float) -> List[int]:
        """Return indices of atoms within ``radius`` of a point.

        Parameters
        ----------
        x, y, z
            Query position in Angstroms.
        radius
            Search radius in Angstroms.

        Returns
        -------
        list of int
            Atom indices whose distance to the point is at most ``radius``,
            in ascending order. An infinite radius returns every atom and NaN
            returns none.
        """

        if math.isnan(radius) or radius < 0 or not self.cell_keys:
            return []
        if math.isinf(radius):
            return list(range(len(self.cell_keys)))
        reach = int(math.ceil(radius / self.cell_size))
        cx = math.floor(x / self.cell_size)
        cy = math.floor(y / self.cell_size)
        cz = math.floor(z / self.cell_size)
        candidates: List[int] = []
        for dx in range(-reach, reach + 1):
            for dy in range(-reach, reach + 1):
                for dz in range(-reach, reach + 1):
                    candidates.extend(self.cells.get((cx + dx, cy + dy, cz + dz), ()))
        if not candidates:
            return []
        indices = np.array(sorted(candidates), dtype=np.int64)
        diff = self.coords[indices] - np.array([x, y, z], dtype=float)
        dist_sq = (diff * diff).sum(axis=1)
        return indices[dist_sq <= radius * radius].tolist()

    def stats(self) -> Dict[str, float]:
        """Return occupancy statistics.

        Returns
        -------
        dict
            ``cellCount``, ``avgAtomsPerCell`` and ``maxAtomsInCell``.
        """

        cell_count = len(self.cells)
        if not cell_count:
            return {"cellCount": 0, "avgAtomsPerCell": 0.0, "maxAtomsInCell": 0}
        sizes = [len(members) for members in self.cells.values()]
        return {
            "cellCount": cell_count,
            "avgAtomsPerCell": sum(sizes) / cell_count,
            "maxAtomsInCell": max(sizes),
        }
