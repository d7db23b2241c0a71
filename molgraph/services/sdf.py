"""Parser for MDL Molfile V2000 (SDF) records."""

from __future__ import annotations

import logging
from typing import List, Set, Tuple

from molgraph.config import DEFAULT_MOLECULE_NAME, SDF_COLUMNS, SDF_END_MARKER
from molgraph.errors import FormatError
from molgraph.model.state import Atom, Bond, Molecule, make_bond
from molgraph.services.elements import normalize_symbol

logger = logging.getLogger(__name__)

_ATOM_BLOCK_START = 4
_KEPT_BOND_ORDERS = (1, 2, 3)


def parse_sdf(text: str) -> Molecule:
    """Parse the first Molfile record of SDF text.

    Parameters
    ----------
    text
        Raw SDF/MOL text.

    Returns
    -------
    Molecule
        Atoms of the atom block and the explicit bonds of the bond block.

    Raises
    ------
    FormatError
        If the text has fewer than 4 lines, the counts line is unreadable,
        or the atom or bond block is shorter than declared.
    """

    lines = (text or "").splitlines()
    if len(lines) < 4:
        raise FormatError("too_short", "Invalid SDF format: file too short")

    name = lines[0].strip() or DEFAULT_MOLECULE_NAME
    atom_count, bond_count = _parse_counts(lines[3])

    atoms: List[Atom] = []
    for offset in range(atom_count):
        line_index = _ATOM_BLOCK_START + offset
        line = _block_line(lines, line_index, "atom")
        try:
            x, y, z, element = _parse_atom_record(line)
        except ValueError as exc:
            raise FormatError(
                "bad_atom",
                f"Invalid SDF format: cannot parse coordinates at line {line_index + 1}",
                str(exc),
            ) from exc
        atoms.append(Atom(index=offset, element=element, x=x, y=y, z=z))

    bonds: List[Bond] = []
    warnings: List[str] = []
    seen: Set[Tuple[int, int]] = set()
    bond_block_start = _ATOM_BLOCK_START + atom_count
    for offset in range(bond_count):
        line_index = bond_block_start + offset
        line = _block_line(lines, line_index, "bond")
        try:
            first, second, order = _parse_bond_record(line)
        except ValueError:
            warnings.append(f"line {line_index + 1}: unreadable bond record")
            continue
        if not (0 <= first < atom_count and 0 <= second < atom_count) or first == second:
            warnings.append(
                f"line {line_index + 1}: invalid bond atoms {first + 1}-{second + 1}"
            )
            continue
        bond = make_bond(first, second, order if order in _KEPT_BOND_ORDERS else 1)
        if bond.pair in seen:
            warnings.append(
                f"line {line_index + 1}: duplicate bond {first + 1}-{second + 1}"
            )
            continue
        seen.add(bond.pair)
        bonds.append(bond)

    for message in warnings:
        logger.debug("Skipped SDF record: %s", message)
    logger.debug(
        "Parsed SDF '%s': atoms=%d bonds=%d skipped=%d",
        name,
        len(atoms),
        len(bonds),
        len(warnings),
    )
    return Molecule(
        name=name,
        atoms=tuple(atoms),
        bonds=tuple(bonds),
        warnings=tuple(warnings),
        source_format="sdf",
    )


def _columns(line: str, *names: str) -> List[str]:
    fields = []
    for name in names:
        start, end = SDF_COLUMNS[name]
        fields.append(line[start:end].strip())
    return fields


def _parse_counts(line: str) -> Tuple[int, int]:
    try:
        atom_count, bond_count = (
            int(value) for value in _columns(line, "atom_count", "bond_count")
        )
    except ValueError:
        parts = line.split()
        try:
            atom_count, bond_count = int(parts[0]), int(parts[1])
        except (IndexError, ValueError):
            raise FormatError(
                "bad_counts",
                "Invalid SDF format: cannot parse atom/bond counts",
                line,
            ) from None
    if atom_count < 0 or bond_count < 0:
        raise FormatError(
            "bad_counts", "Invalid SDF format: cannot parse atom/bond counts", line
        )
    return atom_count, bond_count


def _block_line(lines: List[str], line_index: int, kind: str) -> str:
    if line_index >= len(lines) or lines[line_index].rstrip() == SDF_END_MARKER:
        raise FormatError(
            "truncated", f"Invalid SDF format: missing {kind} at line {line_index + 1}"
        )
    return lines[line_index]


def _parse_atom_record(line: str) -> Tuple[float, float, float, str]:
    x_raw, y_raw, z_raw, element = _columns(line, "atom_x", "atom_y", "atom_z", "atom_element")
    try:
        x, y, z = float(x_raw), float(y_raw), float(z_raw)
    except ValueError:
        element = ""
    if not element:
        parts = line.split()
        if len(parts) < 4:
            raise ValueError(f"expected x, y, z and element in '{line.strip()}'")
        x, y, z = float(parts[0]), float(parts[1]), float(parts[2])
        element = parts[3]
    return x, y, z, normalize_symbol(element)


def _parse_bond_record(line: str) -> Tuple[int, int, int]:
    try:
        first, second, order = (
            int(value) for value in _columns(line, "bond_atom1", "bond_atom2", "bond_order")
        )
    except ValueError:
        parts = line.split()
        if len(parts) < 3:
            raise ValueError(f"expected two atoms and an order in '{line.strip()}'") from None
        first, second, order = int(parts[0]), int(parts[1]), int(parts[2])
    return first - 1, second - 1, order
