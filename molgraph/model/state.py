"""Dataclasses for the canonical molecule model."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, Mapping, Optional, Tuple

from molgraph.config import DEFAULT_MOLECULE_NAME


@dataclass(frozen=True)
class Atom:
    """An atom with element identity and Cartesian coordinates.

    Attributes
    ----------
    index
        0-based position in the molecule's atom sequence.
    element
        Canonical element symbol (``"Fe"``, not ``"FE"``).
    x, y, z
        Coordinates in Angstroms.
    serial
        Serial number from the source file, if any.
    name
        Atom name from the source file.
    residue_name
        Residue code, empty when absent.
    residue_number
        Residue sequence number, if any.
    chain_id
        Chain identifier, empty when absent.
    is_hetero
        True for atoms read from HETATM records.
    occupancy
        Occupancy factor.
    temp_factor
        Temperature factor, if any.
    secondary_structure
        ``"helix"``, ``"sheet"`` or ``"coil"`` when the source file declares
        HELIX or SHEET ranges, otherwise ``None``.
    """

    index: int
    element: str
    x: float
    y: float
    z: float
    serial: Optional[int] = None
    name: str = ""
    residue_name: str = ""
    residue_number: Optional[int] = None
    chain_id: str = ""
    is_hetero: bool = False
    occupancy: float = 1.0
    temp_factor: Optional[float] = None
    secondary_structure: Optional[str] = None

    @property
    def coords(self) -> Tuple[float, float, float]:
        """Return ``(x, y, z)``."""
        return (self.x, self.y, self.z)

    def to_dict(self) -> Dict[str, object]:
        """Serialize the atom for the offload protocol.

        Returns
        -------
        dict
            JSON-ready atom payload.
        """
        return {
            "index": self.index,
            "element": self.element,
            "x": self.x,
            "y": self.y,
            "z": self.z,
            "serial": self.serial,
            "name": self.name,
            "residueName": self.residue_name,
            "residueNumber": self.residue_number,
            "chainId": self.chain_id,
            "isHetero": self.is_hetero,
            "occupancy": self.occupancy,
            "tempFactor": self.temp_factor,
            "secondaryStructure": self.secondary_structure,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, object], position: int) -> "Atom":
        """Build an atom from a protocol payload.

        Parameters
        ----------
        payload
            Mapping with at least ``element``, ``x``, ``y`` and ``z``.
        position
            Position of the payload in its list, used when no index is given.

        Returns
        -------
        Atom
            Parsed atom.

        Raises
        ------
        KeyError
            If a required key is missing.
        TypeError, ValueError
            If a field cannot be converted.
        """
        index = payload.get("index", payload.get("id"))
        serial = payload.get("serial")
        residue_number = payload.get("residueNumber")
        temp_factor = payload.get("tempFactor")
        occupancy = payload.get("occupancy")
        secondary_structure = payload.get("secondaryStructure")
        return cls(
            index=int(index) if index is not None else position,
            element=str(payload["element"]),
            x=float(payload["x"]),
            y=float(payload["y"]),
            z=float(payload["z"]),
            serial=int(serial) if serial is not None else None,
            name=str(payload.get("name") or ""),
            residue_name=str(payload.get("residueName") or ""),
            residue_number=int(residue_number) if residue_number is not None else None,
            chain_id=str(payload.get("chainId") or ""),
            is_hetero=bool(payload.get("isHetero", False)),
            occupancy=float(occupancy) if occupancy is not None else 1.0,
            temp_factor=float(temp_factor) if temp_factor is not None else None,
            secondary_structure=(
                str(secondary_structure) if secondary_structure is not None else None
            ),
        )


@dataclass(frozen=True)
class Bond:
    """An undirected bond, stored with ``atom1_index < atom2_index``.

    Attributes
    ----------
    atom1_index
        Lower atom index.
    atom2_index
        Higher atom index.
    order
        Bond order (1, 2 or 3).
    """

    atom1_index: int
    atom2_index: int
    order: int = 1

    @property
    def pair(self) -> Tuple[int, int]:
        """Return ``(atom1_index, atom2_index)``."""
        return (self.atom1_index, self.atom2_index)

    def to_dict(self) -> Dict[str, object]:
        """Serialize the bond for the offload protocol.

        Returns
        -------
        dict
            JSON-ready bond payload.
        """
        return {
            "atom1Index": self.atom1_index,
            "atom2Index": self.atom2_index,
            "order": self.order,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> "Bond":
        """Build a canonical bond from a protocol payload."""
        return make_bond(
            int(payload["atom1Index"]),
            int(payload["atom2Index"]),
            int(payload.get("order", 1) or 1),
        )


def make_bond(first: int, second: int, order: int = 1) -> Bond:
    """Return a bond in canonical direction.

    Parameters
    ----------
    first, second
        Atom indices in any order; must differ.
    order
        Bond order.

    Returns
    -------
    Bond
        Bond with the lower index first.

    Raises
    ------
    ValueError
        If both indices are equal.
    """

    if first == second:
        raise ValueError(f"Bond endpoints must differ (atom {first})")
    if first > second:
        first, second = second, first
    return Bond(atom1_index=first, atom2_index=second, order=order)


@dataclass(frozen=True)
class AssemblyTransform:
    """One symmetry operator of a biological assembly.

    Attributes
    ----------
    assembly_id
        Identifier of the owning assembly.
    operator_id
        Operator number within the assembly.
    chain_ids
        Chains the operator applies to.
    matrix
        Row-major 4x4 matrix: three BIOMT rows plus ``0, 0, 0, 1``.
    """

    assembly_id: str
    operator_id: int
    chain_ids: Tuple[str, ...]
    matrix: Tuple[float, ...]

    def to_dict(self) -> Dict[str, object]:
        return {
            "assemblyId": self.assembly_id,
            "operatorId": self.operator_id,
            "chainIds": list(self.chain_ids),
            "matrix": list(self.matrix),
        }


@dataclass(frozen=True)
class BiologicalAssembly:
    """A biological assembly declared by REMARK 350 records.

    Attributes
    ----------
    id
        Assembly identifier from the ``BIOMOLECULE:`` line.
    transforms
        Complete operators in file order.
    """

    id: str
    transforms: Tuple[AssemblyTransform, ...] = ()

    @property
    def copy_count(self) -> int:
        return len(self.transforms)

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "copyCount": self.copy_count,
            "transforms": [transform.to_dict() for transform in self.transforms],
        }


@dataclass(frozen=True)
class Molecule:
    """Immutable snapshot of a parsed structure.

    Attributes
    ----------
    name
        Molecule name from the file header or title.
    atoms
        Atoms in file order.
    bonds
        Bonds between atoms of this molecule.
    warnings
        Messages for records that were skipped during parsing.
    source_format
        Format the molecule was parsed from.
    assemblies
        Biological assemblies with at least one complete operator (PDB only).
    """

    name: str = DEFAULT_MOLECULE_NAME
    atoms: Tuple[Atom, ...] = ()
    bonds: Tuple[Bond, ...] = ()
    warnings: Tuple[str, ...] = field(default=(), compare=False)
    source_format: Optional[str] = None
    assemblies: Tuple[BiologicalAssembly, ...] = ()

    def with_bonds(self, bonds: Iterable[Bond]) -> "Molecule":
        """Return a copy with a complete replacement bond list."""
        return replace(self, bonds=tuple(bonds))

    def to_dict(self) -> Dict[str, object]:
        """Serialize the molecule.

        Returns
        -------
        dict
            JSON-ready molecule payload.
        """
        return {
            "name": self.name,
            "format": self.source_format,
            "atoms": [atom.to_dict() for atom in self.atoms],
            "bonds": [bond.to_dict() for bond in self.bonds],
            "warnings": list(self.warnings),
            "assemblies": [assembly.to_dict() for assembly in self.assemblies],
        }
