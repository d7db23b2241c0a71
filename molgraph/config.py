"""Static configuration for parsing and bond inference."""

from __future__ import annotations

from typing import Dict, Tuple

APP_NAME = "molgraph"

DEFAULT_MOLECULE_NAME = "Molecule"
UNKNOWN_ELEMENT = "X"

# Bond inference, distances in Angstroms.
BOND_TOLERANCE = 0.45
MIN_BOND_DISTANCE = 0.4
DEFAULT_COVALENT_RADIUS = 1.5

# Above this atom count inference switches to the spatial hash.
SPATIAL_INDEX_THRESHOLD = 500
# The spatial path only finds bonds shorter than one cell.
SPATIAL_CELL_SIZE = 3.0

PROGRESS_ATOM_THRESHOLD = 10000

MAX_FILE_SIZE = 100 * 1024 * 1024

FORMAT_EXTENSIONS: Dict[str, str] = {
    ".pdb": "pdb",
    ".ent": "pdb",
    ".sdf": "sdf",
    ".sd": "sdf",
    ".mol": "sdf",
    ".xyz": "xyz",
}

# 0-based [start, end) column slices.
PDB_COLUMNS: Dict[str, Tuple[int, int]] = {
    "record": (0, 6),
    "serial": (6, 11),
    "atom_name": (12, 16),
    "residue_name": (17, 21),
    "chain_id": (21, 22),
    "residue_number": (22, 26),
    "x": (30, 38),
    "y": (38, 46),
    "z": (46, 54),
    "occupancy": (54, 60),
    "temp_factor": (60, 66),
    "element": (76, 78),
}

PDB_CONECT_FIELDS: Tuple[Tuple[int, int], ...] = (
    (6, 11),
    (11, 16),
    (16, 21),
    (21, 26),
    (26, 31),
)

SDF_COLUMNS: Dict[str, Tuple[int, int]] = {
    "atom_count": (0, 3),
    "bond_count": (3, 6),
    "atom_x": (0, 10),
    "atom_y": (10, 20),
    "atom_z": (20, 30),
    "atom_element": (31, 34),
    "bond_atom1": (0, 3),
    "bond_atom2": (3, 6),
    "bond_order": (6, 9),
}

SDF_END_MARKER = "M  END"

# Secondary structure ranges: chain and residue number at each end.
PDB_HELIX_COLUMNS: Dict[str, Tuple[int, int]] = {
    "start_chain": (19, 20),
    "start_residue": (21, 25),
    "end_chain": (31, 32),
    "end_residue": (33, 37),
}

PDB_SHEET_COLUMNS: Dict[str, Tuple[int, int]] = {
    "start_chain": (21, 22),
    "start_residue": (22, 26),
    "end_chain": (32, 33),
    "end_residue": (33, 37),
}
