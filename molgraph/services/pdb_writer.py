"""PDB formatting utilities."""

from __future__ import annotations

from typing import Dict, List, Sequence

from molgraph.errors import PdbWriterError
from molgraph.model.state import Atom, Molecule

_MAX_SERIAL = 99999
_MIN_SERIAL = -9999
_MAX_RESID = 9999
_MIN_RESID = -999
_CONECT_PARTNERS_PER_LINE = 4


def _format_atom_name(name: str, element: str) -> str:
    name = (name or element or "").strip()
    if len(name) >= 4:
        return name[:4]
    if len(element) == 1:
        return f" {name:<3}"
    return f"{name:<4}"


def _format_resname(resname: str) -> str:
    resname = (resname or "").strip()
    return f"{resname[:4]:<4}"


def _format_element(element: str) -> str:
    element = (element or "").strip()
    if not element:
        return "  "
    if len(element) == 1:
        return f" {element.upper()}"
    return element[0].upper() + element[1].lower()


def _format_coordinate(value: float) -> str:
    text = f"{value:8.3f}"
    if len(text) > 8:
        raise PdbWriterError(
            "pdb_format_failed", "Coordinate does not fit the PDB field", value
        )
    return text


def _format_resid(value: int) -> str:
    if not _MIN_RESID <= value <= _MAX_RESID:
        raise PdbWriterError(
            "pdb_format_failed", "Residue number does not fit the PDB field", value
        )
    return f"{value:4d}"


def _assign_serials(atoms: Sequence[Atom]) -> List[int]:
    serials = [atom.serial for atom in atoms]
    if None in serials or len(set(serials)) != len(serials):
        serials = [atom.index + 1 for atom in atoms]
    if serials and (max(serials) > _MAX_SERIAL or min(serials) < _MIN_SERIAL):
        raise PdbWriterError(
            "pdb_format_failed", "Too many atoms for the PDB serial field", len(atoms)
        )
    return serials


def write_pdb(molecule: Molecule) -> str:
    """Build PDB text for a molecule.

    Parameters
    ----------
    molecule
        Molecule to format. Atom serials are kept when they are present and
        unique, otherwise atoms are renumbered from 1.

    Returns
    -------
    str
        HEADER, ATOM/HETATM and CONECT records ending in ``END`` and a newline.

    Raises
    ------
    PdbWriterError
        If atom data does not fit the fixed-column layout.
    """

    atoms = molecule.atoms
    serials = _assign_serials(atoms)
    lines: List[str] = []
    if molecule.name:
        lines.append(f"HEADER    {molecule.name}")
    for atom, serial in zip(atoms, serials):
        try:
            record = "HETATM" if atom.is_hetero else "ATOM  "
            name = _format_atom_name(atom.name, atom.element)
            resname = _format_resname(atom.residue_name)
            chain = (atom.chain_id or " ")[:1]
            resid = int(atom.residue_number) if atom.residue_number is not None else 1
            occ = float(atom.occupancy)
            temp = float(atom.temp_factor) if atom.temp_factor is not None else 0.0
            element = _format_element(atom.element)
        except (AttributeError, TypeError, ValueError) as exc:
            raise PdbWriterError("pdb_format_failed", "Invalid atom data", str(exc)) from exc

        line = (
            f"{record}"
            f"{serial:5d} "
            f"{name}"
            f" "
            f"{resname}"
            f"{chain}"
            f"{_format_resid(resid)}"
            f"    "
            f"{_format_coordinate(atom.x)}"
            f"{_format_coordinate(atom.y)}"
            f"{_format_coordinate(atom.z)}"
            f"{occ:6.2f}{temp:6.2f}"
            f"          "
            f"{element:>2}"
        )
        lines.append(line)

    partners: Dict[int, List[int]] = {}
    for bond in molecule.bonds:
        if not (0 <= bond.atom1_index < len(atoms) and 0 <= bond.atom2_index < len(atoms)):
            raise PdbWriterError(
                "pdb_format_failed", "Bond references a missing atom", bond.pair
            )
        partners.setdefault(bond.atom1_index, []).append(bond.atom2_index)
    for source in sorted(partners):
        targets = sorted(partners[source])
        for start in range(0, len(targets), _CONECT_PARTNERS_PER_LINE):
            chunk = targets[start:start + _CONECT_PARTNERS_PER_LINE]
            fields = "".join(f"{serials[target]:5d}" for target in chunk)
            lines.append(f"CONECT{serials[source]:5d}{fields}")
    lines.append("END")
    return "\n".join(lines) + "\n"
