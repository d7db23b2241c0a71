"""Parser for plain XYZ coordinate files."""

from __future__ import annotations

import logging
from typing import List

from molgraph.config import BOND_TOLERANCE, DEFAULT_MOLECULE_NAME
from molgraph.errors import FormatError
from molgraph.model.state import Atom, Molecule
from molgraph.services.bonds import infer_bonds as infer_bonds_from_distance
from molgraph.services.elements import normalize_symbol

logger = logging.getLogger(__name__)


def parse_xyz(
    text: str,
    infer_bonds: bool = True,
    tolerance: float = BOND_TOLERANCE,
) -> Molecule:
    """Parse XYZ text into a molecule.

    Blank lines are dropped before the count and comment lines are read.

    Parameters
    ----------
    text
        Raw XYZ text.
    infer_bonds
        Infer bonds from distances.
    tolerance
        Bond inference tolerance in Angstroms.

    Returns
    -------
    Molecule
        Parsed molecule named after the comment line.

    Raises
    ------
    FormatError
        If the count line is missing or invalid, or an atom line is malformed.
    """

    lines = [line for line in (text or "").splitlines() if line.strip()]
    if len(lines) < 2:
        raise FormatError("too_short", "Invalid XYZ format: file too short")
    try:
        atom_count = int(lines[0].strip())
    except ValueError:
        raise FormatError(
            "bad_counts", "Invalid XYZ format: cannot parse atom count", lines[0]
        ) from None
    name = lines[1].strip() or DEFAULT_MOLECULE_NAME

    atoms: List[Atom] = []
    for line_index in range(2, min(2 + atom_count, len(lines))):
        parts = lines[line_index].split()
        if len(parts) < 4:
            raise FormatError(
                "bad_atom", f"Invalid XYZ format: malformed atom line at {line_index + 1}"
            )
        try:
            x, y, z = float(parts[1]), float(parts[2]), float(parts[3])
        except ValueError:
            raise FormatError(
                "bad_atom",
                f"Invalid XYZ format: cannot parse coordinates at line {line_index + 1}",
            ) from None
        atoms.append(
            Atom(index=len(atoms), element=normalize_symbol(parts[0]), x=x, y=y, z=z)
        )

    bonds = infer_bonds_from_distance(atoms, tolerance) if infer_bonds else []
    logger.debug("Parsed XYZ '%s': atoms=%d bonds=%d", name, len(atoms), len(bonds))
    return Molecule(name=name, atoms=tuple(atoms), bonds=tuple(bonds), source_format="xyz")
