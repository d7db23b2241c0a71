"""Distance-based bond inference."""

from __future__ import annotations

import logging
import time
from typing import Dict, List, Sequence

import numpy as np

from molgraph.config import (
    BOND_TOLERANCE,
    MIN_BOND_DISTANCE,
    SPATIAL_CELL_SIZE,
    SPATIAL_INDEX_THRESHOLD,
)
from molgraph.model.state import Atom, Bond
from molgraph.services.elements import covalent_radius
from molgraph.services.spatial_index import SpatialHashGrid, atom_coordinates

logger = logging.getLogger(__name__)

_MIN_DISTANCE_SQ = MIN_BOND_DISTANCE * MIN_BOND_DISTANCE


def infer_bonds(atoms: Sequence[Atom], tolerance: float = BOND_TOLERANCE) -> List[Bond]:
    """Infer single bonds from interatomic distances.

    Two atoms are bonded when their distance exceeds the 0.4 A floor and
    is at most the sum of their covalent radii plus ``tolerance``.

    Parameters
    ----------
    atoms
        Atoms in index order.
    tolerance
        Slack added to the covalent radius sum, in Angstroms.

    Returns
    -------
    list of Bond
        Bonds of order 1 sorted by ``(atom1_index, atom2_index)``; empty for
        empty input.

    Notes
    -----
    Up to 500 atoms every pair is compared. Larger inputs use a spatial hash
    with 3.0 A cells and only compare atoms in adjacent cells, which finds
    every bond shorter than one cell.
    """

    if not atoms:
        return []
    start = time.perf_counter()
    if len(atoms) > SPATIAL_INDEX_THRESHOLD:
        bonds = infer_bonds_spatial(atoms, tolerance)
        strategy = "spatial"
    else:
        bonds = infer_bonds_brute_force(atoms, tolerance)
        strategy = "all-pairs"
    logger.debug(
        "Inferred %d bonds for %d atoms (%s, %.3fs)",
        len(bonds),
        len(atoms),
        strategy,
        time.perf_counter() - start,
    )
    return bonds


def infer_bonds_brute_force(
    atoms: Sequence[Atom], tolerance: float = BOND_TOLERANCE
) -> List[Bond]:
    """Infer bonds by comparing every pair of atoms.

    Parameters
    ----------
    atoms
        Atoms in index order.
    tolerance
        Slack added to the covalent radius sum, in Angstroms.

    Returns
    -------
    list of Bond
        Bonds sorted by ``(atom1_index, atom2_index)``.
    """

    coords = atom_coordinates(atoms)
    radii = _radii(atoms)
    bonds: List[Bond] = []
    natoms = len(atoms)
    for i in range(natoms - 1):
        candidates = np.arange(i + 1, natoms, dtype=np.int64)
        for j in _bonded_partners(coords, radii, i, candidates, tolerance):
            bonds.append(Bond(atom1_index=i, atom2_index=int(j), order=1))
    return bonds


def infer_bonds_spatial(
    atoms: Sequence[Atom],
    tolerance: float = BOND_TOLERANCE,
    cell_size: float = SPATIAL_CELL_SIZE,
) -> List[Bond]:
    """Infer bonds comparing only atoms in neighboring grid cells.

    Parameters
    ----------
    atoms
        Atoms in index order.
    tolerance
        Slack added to the covalent radius sum, in Angstroms.
    cell_size
        Grid cell edge length; bonds longer than this can be missed.

    Returns
    -------
    list of Bond
        Bonds sorted by ``(atom1_index, atom2_index)``.
    """

    grid = SpatialHashGrid.build(atoms, cell_size=cell_size)
    coords = grid.coords
    radii = _radii(atoms)
    bonds: List[Bond] = []
    for i in range(len(atoms)):
        higher = sorted(j for j in grid.neighbors(i) if j > i)
        if not higher:
            continue
        candidates = np.array(higher, dtype=np.int64)
        for j in _bonded_partners(coords, radii, i, candidates, tolerance):
            bonds.append(Bond(atom1_index=i, atom2_index=int(j), order=1))
    return bonds


def _radii(atoms: Sequence[Atom]) -> np.ndarray:
    cache: Dict[str, float] = {}
    values = []
    for atom in atoms:
        radius = cache.get(atom.element)
        if radius is None:
            radius = covalent_radius(atom.element)
            cache[atom.element] = radius
        values.append(radius)
    return np.array(values, dtype=float)


def _bonded_partners(
    coords: np.ndarray,
    radii: np.ndarray,
    i: int,
    candidates: np.ndarray,
    tolerance: float,
) -> np.ndarray:
    diff = coords[candidates] - coords[i]
    dist_sq = (diff * diff).sum(axis=1)
    limit = radii[i] + radii[candidates] + tolerance
    # A negative cutoff never bonds.
    mask = (limit > 0) & (dist_sq > _MIN_DISTANCE_SQ) & (dist_sq <= limit * limit)
    return candidates[mask]
