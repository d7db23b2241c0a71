"""Parser for the fixed-column PDB record subset."""

from __future__ import annotations

from dataclasses import replace
import logging
import math
import re
from typing import Dict, List, Optional, Sequence, Set, Tuple

from molgraph.config import (
    BOND_TOLERANCE,
    DEFAULT_MOLECULE_NAME,
    PDB_COLUMNS,
    PDB_CONECT_FIELDS,
    PDB_HELIX_COLUMNS,
    PDB_SHEET_COLUMNS,
    UNKNOWN_ELEMENT,
)
from molgraph.errors import FormatError
from molgraph.model.state import (
    AssemblyTransform,
    Atom,
    BiologicalAssembly,
    Bond,
    Molecule,
    make_bond,
)
from molgraph.services.bonds import infer_bonds as infer_bonds_from_distance
from molgraph.services.elements import guess_element, normalize_symbol

logger = logging.getLogger(__name__)

# (kind, chain, first residue, last residue)
SecondaryRange = Tuple[str, str, int, int]

_BIOMT_PATTERN = re.compile(r"BIOMT([123])\s+(\d+)\s+(.+)")


def parse_pdb(
    text: str,
    infer_bonds: bool = True,
    tolerance: float = BOND_TOLERANCE,
) -> Molecule:
    """Parse PDB text into a molecule.

    Parameters
    ----------
    text
        Raw PDB text.
    infer_bonds
        Infer bonds from distances when the file has no usable CONECT
        records.
    tolerance
        Bond inference tolerance in Angstroms.

    Returns
    -------
    Molecule
        Atoms of the first model in file order, with CONECT bonds when
        present, otherwise inferred (or no) bonds. HELIX/SHEET ranges set
        each atom's ``secondary_structure`` and REMARK 350 BIOMT records
        become ``assemblies``.

    Raises
    ------
    FormatError
        If no ATOM/HETATM record could be parsed. ``details`` lists the
        records that were skipped.
    """

    header_name: Optional[str] = None
    compound_name: Optional[str] = None
    atoms: List[Atom] = []
    serial_to_index: Dict[int, int] = {}
    connect_records: List[List[int]] = []
    ranges: List[SecondaryRange] = []
    remark_350: List[str] = []
    warnings: List[str] = []
    after_first_model = False

    for line_no, line in enumerate((text or "").splitlines(), start=1):
        record = _field(line, "record").strip()
        if record == "END":
            break
        if record == "HEADER":
            header_name = line[6:].strip() or header_name
        elif record == "COMPND":
            if compound_name is None:
                compound_name = _compound_name(line)
        elif record == "HELIX":
            _append_range(ranges, "helix", line, PDB_HELIX_COLUMNS)
        elif record == "SHEET":
            _append_range(ranges, "sheet", line, PDB_SHEET_COLUMNS)
        elif record == "REMARK":
            if line.startswith("REMARK 350"):
                remark_350.append(line[10:].strip())
        elif record in ("ATOM", "HETATM"):
            if after_first_model:
                continue
            try:
                atom = _parse_atom_line(line, len(atoms), record == "HETATM")
            except ValueError as exc:
                message = f"line {line_no}: skipped {record} record ({exc})"
                logger.debug("%s", message)
                warnings.append(message)
                continue
            if atom.serial is not None:
                serial_to_index[atom.serial] = atom.index
            atoms.append(atom)
        elif record == "ENDMDL":
            after_first_model = True
        elif record == "CONECT":
            serials = _parse_connect_line(line)
            if len(serials) >= 2:
                connect_records.append(serials)

    if not atoms:
        raise FormatError(
            "no_atoms",
            "No valid atoms found in PDB file. The file may be malformed or empty.",
            warnings or None,
        )

    if ranges:
        atoms = [
            replace(atom, secondary_structure=_secondary_structure(atom, ranges))
            for atom in atoms
        ]
    assemblies = _parse_assemblies(remark_350)
    name = header_name or compound_name or DEFAULT_MOLECULE_NAME

    bonds = _connect_bonds(connect_records, serial_to_index)
    if bonds:
        origin = "CONECT"
    elif infer_bonds:
        bonds = infer_bonds_from_distance(atoms, tolerance)
        origin = "inferred"
    else:
        origin = "none"
    logger.debug(
        "Parsed PDB '%s': atoms=%d bonds=%d (%s) skipped=%d assemblies=%d",
        name,
        len(atoms),
        len(bonds),
        origin,
        len(warnings),
        len(assemblies),
    )
    return Molecule(
        name=name,
        atoms=tuple(atoms),
        bonds=tuple(bonds),
        warnings=tuple(warnings),
        source_format="pdb",
        assemblies=assemblies,
    )


def _field(line: str, column: str) -> str:
    start, end = PDB_COLUMNS[column]
    return line[start:end]


def _coordinate(line: str, column: str) -> float:
    raw = _field(line, column).strip()
    if not raw:
        raise ValueError(f"missing {column} coordinate")
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"invalid {column} coordinate '{raw}'") from None
    if not math.isfinite(value):
        raise ValueError(f"invalid {column} coordinate '{raw}'")
    return value


def _optional_int(raw: str) -> Optional[int]:
    raw = raw.strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _optional_float(raw: str) -> Optional[float]:
    raw = raw.strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def _element(line: str) -> str:
    symbol = _field(line, "element").strip()
    if symbol and symbol.isalpha():
        return normalize_symbol(symbol)
    return guess_element(_field(line, "atom_name")) or UNKNOWN_ELEMENT


def _parse_atom_line(line: str, index: int, is_hetero: bool) -> Atom:
    x = _coordinate(line, "x")
    y = _coordinate(line, "y")
    z = _coordinate(line, "z")
    occupancy = _optional_float(_field(line, "occupancy"))
    return Atom(
        index=index,
        element=_element(line),
        x=x,
        y=y,
        z=z,
        serial=_optional_int(_field(line, "serial")),
        name=_field(line, "atom_name").strip(),
        residue_name=_field(line, "residue_name").strip(),
        residue_number=_optional_int(_field(line, "residue_number")),
        chain_id=_field(line, "chain_id").strip(),
        is_hetero=is_hetero,
        occupancy=occupancy if occupancy is not None else 1.0,
        temp_factor=_optional_float(_field(line, "temp_factor")),
    )


def _parse_connect_line(line: str) -> List[int]:
    serials: List[int] = []
    for position, (start, end) in enumerate(PDB_CONECT_FIELDS):
        value = _optional_int(line[start:end])
        if value is None:
            if position == 0:
                return []
            continue
        serials.append(value)
    return serials


def _connect_bonds(
    records: Sequence[List[int]], serial_to_index: Dict[int, int]
) -> List[Bond]:
    bonds: List[Bond] = []
    seen: Set[Tuple[int, int]] = set()
    for serials in records:
        source = serial_to_index.get(serials[0])
        if source is None:
            continue
        for serial in serials[1:]:
            partner = serial_to_index.get(serial)
            if partner is None or partner == source:
                continue
            bond = make_bond(source, partner)
            if bond.pair in seen:
                continue
            seen.add(bond.pair)
            bonds.append(bond)
    return bonds


def _compound_name(line: str) -> Optional[str]:
    content = line[10:].strip()
    if not content.upper().startswith("MOLECULE:"):
        return None
    return content[len("MOLECULE:"):].strip().rstrip(";").strip() or None


def _append_range(
    ranges: List[SecondaryRange],
    kind: str,
    line: str,
    columns: Dict[str, Tuple[int, int]],
) -> None:
    def _slice(key: str) -> str:
        start, end = columns[key]
        return line[start:end]

    first = _optional_int(_slice("start_residue"))
    last = _optional_int(_slice("end_residue"))
    if first is None or last is None:
        logger.debug("Ignoring %s record without residue range: %r", kind.upper(), line)
        return
    chain = _slice("start_chain").strip() or _slice("end_chain").strip()
    ranges.append((kind, chain, first, last))


def _secondary_structure(atom: Atom, ranges: Sequence[SecondaryRange]) -> Optional[str]:
    if not atom.chain_id or atom.residue_number is None:
        return None
    for kind, chain, first, last in ranges:
        if chain == atom.chain_id and first <= atom.residue_number <= last:
            return kind
    return "coil"


def _parse_assemblies(remarks: Sequence[str]) -> Tuple[BiologicalAssembly, ...]:
    order: List[str] = []
    chains_by_operator: Dict[Tuple[str, int], Tuple[str, ...]] = {}
    rows_by_operator: Dict[Tuple[str, int], Dict[int, Tuple[float, ...]]] = {}
    current_id = "1"
    current_chains: Tuple[str, ...] = ()

    for content in remarks:
        if content.startswith("BIOMOLECULE:"):
            current_id = content[len("BIOMOLECULE:"):].strip()
            if current_id not in order:
                order.append(current_id)
            continue
        if "APPLY THE FOLLOWING TO CHAINS:" in content:
            listed = content.split("CHAINS:", 1)[1]
            current_chains = tuple(chain.strip() for chain in listed.split(",") if chain.strip())
            continue
        match = _BIOMT_PATTERN.search(content)
        if match is None:
            continue
        try:
            values = tuple(float(value) for value in match.group(3).split())
        except ValueError:
            logger.debug("Ignoring BIOMT row with non-numeric values: %r", content)
            continue
        if len(values) < 4:
            continue
        key = (current_id, int(match.group(2)))
        if current_id not in order:
            order.append(current_id)
        if key not in rows_by_operator:
            rows_by_operator[key] = {}
            chains_by_operator[key] = current_chains
        rows_by_operator[key][int(match.group(1))] = values[:4]

    assemblies: List[BiologicalAssembly] = []
    for assembly_id in order:
        transforms = []
        for key, rows in rows_by_operator.items():
            if key[0] != assembly_id or len(rows) != 3:
                continue
            matrix = rows[1] + rows[2] + rows[3] + (0.0, 0.0, 0.0, 1.0)
            transforms.append(
                AssemblyTransform(
                    assembly_id=assembly_id,
                    operator_id=key[1],
                    chain_ids=chains_by_operator[key],
                    matrix=matrix,
                )
            )
        if transforms:
            assemblies.append(BiologicalAssembly(id=assembly_id, transforms=tuple(transforms)))
    return tuple(assemblies)
